# calibration.py — fit C1..C4 of the sheet-flow model to observed ds(t)
import logging

import numpy as np
import pandas as pd
from scipy.optimize import minimize, minimize_scalar

from .context import build_context
from .errors import ConfigurationError, SheetFlowError
from .run import run_context

logger = logging.getLogger(__name__)

COEFFS = ("C1", "C2", "C3", "C4")


class cal_SheetFlow(object):
    """
    forcing : Forcing record (T, U, dUdt, H, Px, B)
    d50     : median grain size [m]
    w       : fall velocity [m/s]
    beta    : bed slope angle [rad]
    ds0     : initial sheet-flow thickness [m]
    calib   : starting coefficients [C1, C2, C3, C4]
    """

    def __init__(self, forcing, d50: float, w: float, beta: float = 0.0, ds0: float = 0.0,
                 calib=(1.0, 1.0, 1.0, 1.0), **solver_opts):
        self.forcing = forcing
        self.ds0 = ds0
        self.calib = np.asarray(calib, dtype=float).copy()
        self.solver_opts = solver_opts
        self.ctx = build_context(d50=d50, w=w, beta=beta, calib=self.calib, **forcing.as_kwargs())

        # observations
        self.data = False
        self.t_obs = None
        self.ds_obs = None

        self.result = None

    # ---------- data ----------
    def add_data(self, path: str):
        """Load observed sheet-flow thickness from a CSV with columns t, ds [m]."""
        df = pd.read_csv(path)
        if "t" not in df.columns or "ds" not in df.columns:
            raise ConfigurationError("Observation CSV needs columns 't' and 'ds'.")
        return self.set_data(pd.to_numeric(df["t"], errors="coerce").to_numpy(),
                             pd.to_numeric(df["ds"], errors="coerce").to_numpy())

    def set_data(self, t, ds):
        t = np.asarray(t, dtype=float)
        ds = np.asarray(ds, dtype=float)
        m = np.isfinite(t) & np.isfinite(ds) & (t >= self.ctx.T[0]) & (t <= self.ctx.t_end)
        if not np.any(m):
            raise ConfigurationError("No observations inside the forcing record.")
        self.t_obs = t[m]
        self.ds_obs = ds[m]
        self.data = True
        return self

    # ---------- model ----------
    def run_model(self, calib=None):
        """Run with ``calib`` (or the current coefficients) and keep the result."""
        calib = self.calib if calib is None else calib
        self.result = run_context(self.ctx.with_calibration(calib), self.ds0, **self.solver_opts)
        return self.result

    def _ds_at_obs(self, result) -> np.ndarray:
        return np.interp(self.t_obs, result.t, result.ds)

    # ---------- SSE objective ----------
    def _sse(self, values, names) -> float:
        calib = self.calib.copy()
        for name, v in zip(names, np.atleast_1d(values)):
            calib[COEFFS.index(name)] = v
        if not np.all(np.isfinite(calib)) or np.any(calib < 0):
            return 1e30
        try:
            result = run_context(self.ctx.with_calibration(calib), self.ds0, **self.solver_opts)
        except SheetFlowError as e:
            logger.debug("Run failed for %s: %s", dict(zip(names, np.atleast_1d(values))), e)
            return 1e30
        diff = self._ds_at_obs(result) - self.ds_obs
        return float(np.sum(diff * diff))

    # ---------- calibration ----------
    def calibrate(self, params=("C1", "C2", "C4"), bounds=None, options=None):
        """Estimate the coefficients in ``params`` by minimising SSE in ds.

        One coefficient uses a bounded scalar search, several use L-BFGS-B.
        Returns the full calibrated vector [C1, C2, C3, C4].
        """
        if not self.data:
            raise RuntimeError("No observations. Call add_data() or set_data() first.")
        params = tuple(params)
        unknown = [p for p in params if p not in COEFFS]
        if unknown or not params:
            raise ConfigurationError(f"params must be a non-empty subset of {COEFFS}, got {params}.")
        if bounds is None:
            bounds = [(0.0, 10.0)] * len(params)
        if len(bounds) != len(params):
            raise ConfigurationError("One (lo, hi) bound is needed per calibrated coefficient.")

        if len(params) == 1:
            res = minimize_scalar(self._sse, method="bounded", bounds=bounds[0], args=(params,),
                                  options=options or {"xatol": 1e-3, "maxiter": 200})
            best = np.atleast_1d(res.x)
        else:
            x0 = [np.clip(self.calib[COEFFS.index(p)], lo, hi) for p, (lo, hi) in zip(params, bounds)]
            res = minimize(self._sse, x0, args=(params,), method="L-BFGS-B", bounds=bounds,
                           options=options or {"maxiter": 200})
            best = np.atleast_1d(res.x)
        if not res.success:
            logger.warning("Calibration did not converge: %s", getattr(res, "message", ""))

        for name, v in zip(params, best):
            self.calib[COEFFS.index(name)] = float(v)
        logger.info("Calibrated %s", dict(zip(COEFFS, self.calib)))
        self.run_model()
        return self.calib.copy()

    # ---------- metrics ----------
    def metrics(self, result=None):
        """RMSE and R^2 of modelled vs observed ds."""
        result = self.result if result is None else result
        if not self.data or result is None:
            return None, None
        resid = self.ds_obs - self._ds_at_obs(result)
        rmse = float(np.sqrt(np.mean(resid**2)))
        ss_res = float(np.sum(resid**2))
        ss_tot = float(np.sum((self.ds_obs - np.mean(self.ds_obs))**2))
        r2 = float(1.0 - ss_res/ss_tot) if ss_tot > 0 else None
        return rmse, r2
