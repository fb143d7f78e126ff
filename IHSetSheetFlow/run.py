from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
import pandas as pd
import xarray as xr

from .context import Context, build_context
from .driver import MAX_STEP, Trajectory, integrate
from .errors import ConfigurationError
from .postprocess import derive_fields

__all__ = ["SheetFlowResult", "run_model", "run_context"]

logger = logging.getLogger(__name__)

OUTPUTS = ("ds", "db", "tau", "f", "U0", "Shields", "Sleath")


@dataclass(frozen=True, eq=False)
class SheetFlowResult:
    """Model outputs aligned with the input time vector.

    ``valid`` is False as soon as any sample failed; ``bad`` flags those
    samples. ``trajectory`` keeps the raw solver samples for inspection.
    """

    t: np.ndarray
    ds: np.ndarray
    db: np.ndarray
    tau: np.ndarray
    f: np.ndarray
    U0: np.ndarray
    Shields: np.ndarray
    Sleath: np.ndarray
    ufric: np.ndarray
    bad: np.ndarray
    trajectory: Trajectory

    @property
    def valid(self) -> bool:
        return not bool(np.any(self.bad))

    @property
    def n_resets(self) -> int:
        return self.trajectory.n_resets

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame({name: getattr(self, name) for name in OUTPUTS + ("ufric",)}, index=self.t)
        df.index.name = "t"
        return df

    def to_dataset(self) -> xr.Dataset:
        units = {"ds": "m", "db": "m", "tau": "Pa", "f": "1", "U0": "m s-1",
                 "Shields": "1", "Sleath": "1", "ufric": "m s-1"}
        ds = xr.Dataset(
            {name: ("t", getattr(self, name), {"units": units[name]}) for name in OUTPUTS + ("ufric",)},
            coords={"t": ("t", self.t, {"units": "s"})},
        )
        ds.attrs["n_resets"] = self.n_resets
        ds.attrs["valid"] = int(self.valid)
        return ds


def _progress(t: float) -> None:
    logger.info("Integrating from t = %.3f s", t)


def run_context(ctx: Context, ds0: float, *, mute: bool = True,
                on_inversion_error: str = "raise",
                observer: Callable[[float], None] | None = None,
                **solver_opts) -> SheetFlowResult:
    """Run the model on an already validated :class:`Context`."""
    if on_inversion_error not in ("raise", "mask"):
        raise ConfigurationError("on_inversion_error must be 'raise' or 'mask'.")
    if not (np.isfinite(ds0) and ds0 >= 0):
        raise ConfigurationError(f"ds0 must be non-negative, got {ds0}.")

    if observer is None and not mute:
        observer = _progress

    traj = integrate(ctx, ds0, observer=observer, **solver_opts)
    fields = derive_fields(ctx, traj, strict=(on_inversion_error == "raise"))
    if not mute:
        logger.info("Done: %d segments, %d resets.", len(traj.segments), traj.n_resets)

    return SheetFlowResult(
        t=fields.t, ds=fields.ds, db=fields.db, tau=fields.tau, f=fields.f,
        U0=fields.U0, Shields=fields.Shields, Sleath=fields.Sleath,
        ufric=fields.ufric, bad=fields.bad, trajectory=traj,
    )


def run_model(T, U, dUdt, H, Px, B, d50: float, w: float, beta: float, ds0: float,
              calib=(1.0, 1.0, 1.0, 1.0), mute: bool = True, *,
              on_inversion_error: str = "raise",
              observer: Callable[[float], None] | None = None,
              method: str = "BDF", rtol: float = 1e-6, atol: float = 1e-8,
              max_step: float = MAX_STEP,
              should_stop: Callable[[], bool] | None = None,
              timeout: float | None = None) -> SheetFlowResult:
    """Boundary layer and sheet-flow evolution under oscillatory forcing.

    Parameters
    ----------
    T : array
        Time [s], strictly increasing.
    U, dUdt, H, Px, B : array
        Depth-mean velocity [m/s], its time derivative [m/s2], water depth [m],
        pressure gradient [Pa/m] and local bed slope [-], same length as T.
    d50 : float
        Median grain diameter [m].
    w : float
        Fall velocity [m/s].
    beta : float
        Bed slope angle [rad], positive upward in the direction of positive U.
    ds0 : float
        Initial sheet-flow thickness [m].
    calib : sequence of 4 floats
        Calibration coefficients [C1, C2, C3, C4].
    mute : bool
        If False, segment start times are logged at INFO level.
    on_inversion_error : {"raise", "mask"}
        What to do when the free-stream velocity cannot be recovered for a
        sample: raise, or return NaN there with ``result.valid`` False.

    Returns
    -------
    SheetFlowResult
        ds [m], db [m], tau [Pa], f [-], U0 [m/s], Shields [-], Sleath [-].
    """
    ctx = build_context(T, U, dUdt, H, Px, B, d50=d50, w=w, beta=beta, calib=calib)
    return run_context(ctx, ds0, mute=mute, on_inversion_error=on_inversion_error,
                       observer=observer, method=method, rtol=rtol, atol=atol,
                       max_step=max_step, should_stop=should_stop, timeout=timeout)
