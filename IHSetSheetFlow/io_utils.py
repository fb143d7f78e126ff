from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
import xarray as xr

from .context import RHO
from .errors import ConfigurationError

__all__ = ["Forcing", "read_forcing_csv", "read_forcing_netcdf", "synthetic_forcing"]

FORCING_VARS = ("U", "dUdt", "H", "Px", "B")


@dataclass(frozen=True, eq=False)
class Forcing:
    """Near-bed forcing series sharing the time vector ``T``."""

    T: np.ndarray
    U: np.ndarray
    dUdt: np.ndarray
    H: np.ndarray
    Px: np.ndarray
    B: np.ndarray

    def as_kwargs(self) -> dict:
        return {"T": self.T, "U": self.U, "dUdt": self.dUdt, "H": self.H, "Px": self.Px, "B": self.B}

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({k: getattr(self, k) for k in FORCING_VARS}, index=pd.Index(self.T, name="t"))


def _complete(T, cols: dict) -> Forcing:
    """Fill optional series: dUdt by finite differences, Px and B with zeros."""
    T = np.asarray(T, dtype=float)
    if "U" not in cols or "H" not in cols:
        raise ConfigurationError("Forcing needs at least the U and H series.")
    U = np.asarray(cols["U"], dtype=float)
    dUdt = cols.get("dUdt")
    dUdt = np.gradient(U, T) if dUdt is None else np.asarray(dUdt, dtype=float)
    zeros = np.zeros_like(T)
    Px = np.asarray(cols["Px"], dtype=float) if cols.get("Px") is not None else zeros
    B = np.asarray(cols["B"], dtype=float) if cols.get("B") is not None else zeros.copy()
    return Forcing(T=T, U=U, dUdt=dUdt, H=np.asarray(cols["H"], dtype=float), Px=Px, B=B)


def read_forcing_csv(path, time_col: str = "t") -> Forcing:
    """Read forcing from a CSV with columns t, U, H and optionally dUdt, Px, B."""
    df = pd.read_csv(path)
    missing = {time_col, "U", "H"} - set(df.columns)
    if missing:
        raise ConfigurationError(f"Columns {sorted(missing)} not found in {path}.")
    df = df.apply(pd.to_numeric, errors="coerce").dropna(subset=[time_col, "U", "H"])
    cols = {k: df[k].to_numpy() for k in FORCING_VARS if k in df.columns}
    return _complete(df[time_col].to_numpy(), cols)


def read_forcing_netcdf(path, time_var: str = "t") -> Forcing:
    """Read forcing from a netCDF file holding 1-D variables over ``time_var``."""
    with xr.open_dataset(path) as ds:
        if time_var not in ds:
            raise ConfigurationError(f"Variable '{time_var}' not found in {path}.")
        T = ds[time_var].values
        if np.issubdtype(T.dtype, np.datetime64):
            T = (T - T[0]) / np.timedelta64(1, "s")
        cols = {k: ds[k].values for k in FORCING_VARS if k in ds}
    return _complete(T, cols)


def synthetic_forcing(duration: float, dt: float, amplitude: float = 1.0, period: float = 5.0,
                      depth: float = 1.0, with_pressure: bool = False, rho: float = RHO) -> Forcing:
    """Sinusoidal forcing U = A sin(2 pi t / P) over a flat bed.

    With ``with_pressure`` the pressure gradient of the free stream,
    Px = -rho dU/dt, is included; otherwise Px = 0.
    """
    T = np.arange(0.0, duration + 0.5 * dt, dt)
    omega = 2.0 * np.pi / period
    U = amplitude * np.sin(omega * T)
    dUdt = amplitude * omega * np.cos(omega * T)
    Px = -rho * dUdt if with_pressure else np.zeros_like(T)
    return Forcing(T=T, U=U, dUdt=dUdt, H=np.full_like(T, depth), Px=Px, B=np.zeros_like(T))
