from __future__ import annotations # type hints - avoids circular reference

from dataclasses import dataclass, replace

import numpy as np

from .errors import ConfigurationError

__all__ = ["Context", "build_context", "PAD_SECONDS"]

# physical constants
KAPPA = 0.40            # von Karman constant [-]
RHO = 1025.0            # sea water density [kg/m3]
RHO_S = 2650.0          # sediment density [kg/m3]
GRAVITY = 9.81          # [m/s2]
CB = 0.60               # bed concentration [-]
PHI_DEG = 30.0          # internal friction angle [deg]

PAD_SECONDS = 100.0     # flat extrapolation point appended after T[-1]


@dataclass(frozen=True, eq=False)
class Context:
    """Immutable bundle of forcing, sediment parameters and constants.

    The forcing arrays carry one extra sample at ``T[-1] + PAD_SECONDS``
    holding the last real values, so linear interpolation never leaves the
    table. ``t_end`` is the last real time sample.
    """

    T: np.ndarray
    U: np.ndarray
    dUdt: np.ndarray
    H: np.ndarray
    Px: np.ndarray
    B: np.ndarray
    t_end: float
    d50: float
    w: float
    sin_beta: float
    cos_beta: float
    C1: float = 1.0
    C2: float = 1.0
    C3: float = 1.0
    C4: float = 1.0
    kappa: float = KAPPA
    rho: float = RHO
    rho_s: float = RHO_S
    g: float = GRAVITY
    cb: float = CB
    tan_phi: float = float(np.tan(np.deg2rad(PHI_DEG)))

    # ---------- derived constants ----------
    @property
    def h_cut(self) -> float:
        """Depth below which the bed is treated as dry (no shear)."""
        return self.d50

    @property
    def s(self) -> float:
        return self.rho_s / self.rho

    @property
    def submerged_weight(self) -> float:
        """(rho_s - rho) * g  [N/m3]"""
        return (self.rho_s - self.rho) * self.g

    @property
    def n_samples(self) -> int:
        """Number of real (unpadded) time samples."""
        return self.T.size - 1

    def with_calibration(self, calib) -> "Context":
        """Copy of this context with new C1..C4 (used by the calibration loop)."""
        C1, C2, C3, C4 = _check_calib(calib)
        return replace(self, C1=C1, C2=C2, C3=C3, C4=C4)


# ---------- validation ----------
def _as_series(name: str, values, n: int | None) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if n is not None and arr.size != n:
        raise ConfigurationError(
            f"{name} has {arr.size} samples but T has {n}."
        )
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} contains non-finite values.")
    return arr


def _check_calib(calib) -> tuple[float, float, float, float]:
    c = np.asarray(calib, dtype=float).ravel()
    if c.size != 4:
        raise ConfigurationError(f"calib must hold 4 coefficients [C1, C2, C3, C4], got {c.size}.")
    if not np.all(np.isfinite(c)):
        raise ConfigurationError("calib contains non-finite values.")
    if np.any(c < 0):
        raise ConfigurationError("Calibration coefficients must be non-negative.")
    return float(c[0]), float(c[1]), float(c[2]), float(c[3])


def _pad(arr: np.ndarray) -> np.ndarray:
    out = np.append(arr, arr[-1])
    out.setflags(write=False)
    return out


def build_context(T, U, dUdt, H, Px, B, d50: float, w: float, beta: float,
                  calib=(1.0, 1.0, 1.0, 1.0)) -> Context:
    """Validate the raw inputs and freeze them into a :class:`Context`.

    Raises
    ------
    ConfigurationError
        On mismatched array lengths, a time vector that is not strictly
        increasing, non-finite values, or non-positive ``d50`` / ``w``.
    """
    T = _as_series("T", T, None)
    if T.size < 2:
        raise ConfigurationError("T needs at least two samples.")
    if np.any(np.diff(T) <= 0):
        raise ConfigurationError("T must be strictly increasing.")

    n = T.size
    U = _as_series("U", U, n)
    dUdt = _as_series("dUdt", dUdt, n)
    H = _as_series("H", H, n)
    Px = _as_series("Px", Px, n)
    B = _as_series("B", B, n)

    if not (np.isfinite(d50) and d50 > 0):
        raise ConfigurationError(f"d50 must be positive, got {d50}.")
    if not (np.isfinite(w) and w > 0):
        raise ConfigurationError(f"w must be positive, got {w}.")
    if not np.isfinite(beta) or abs(beta) >= np.pi / 2:
        raise ConfigurationError(f"beta must lie in (-pi/2, pi/2) rad, got {beta}.")

    C1, C2, C3, C4 = _check_calib(calib)

    T_pad = np.append(T, T[-1] + PAD_SECONDS)
    T_pad.setflags(write=False)

    return Context(
        T=T_pad, U=_pad(U), dUdt=_pad(dUdt), H=_pad(H), Px=_pad(Px), B=_pad(B),
        t_end=float(T[-1]), d50=float(d50), w=float(w),
        sin_beta=float(np.sin(beta)), cos_beta=float(np.cos(beta)),
        C1=C1, C2=C2, C3=C3, C4=C4,
    )
