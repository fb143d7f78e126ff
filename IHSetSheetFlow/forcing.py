from __future__ import annotations

from typing import NamedTuple

import numpy as np

from .context import Context

__all__ = ["ForcingSample", "interpolate_forcing", "flow_sign", "reference_sign"]

# |U| below this is treated as slack water when picking a segment's direction
U_TOL = 1e-9


class ForcingSample(NamedTuple):
    U: np.ndarray | float
    dUdt: np.ndarray | float
    H: np.ndarray | float
    Px: np.ndarray | float
    B: np.ndarray | float


def interpolate_forcing(ctx: Context, t) -> ForcingSample:
    """Linear interpolation of all forcing series at ``t`` (scalar or array).

    Beyond ``ctx.T[-1]`` the padded sample keeps values flat.
    """
    if np.ndim(t) == 0:
        t = float(t)
        return ForcingSample(
            float(np.interp(t, ctx.T, ctx.U)),
            float(np.interp(t, ctx.T, ctx.dUdt)),
            float(np.interp(t, ctx.T, ctx.H)),
            float(np.interp(t, ctx.T, ctx.Px)),
            float(np.interp(t, ctx.T, ctx.B)),
        )
    t = np.asarray(t, dtype=float)
    return ForcingSample(*(np.interp(t, ctx.T, arr) for arr in (ctx.U, ctx.dUdt, ctx.H, ctx.Px, ctx.B)))


def velocity_at(ctx: Context, t):
    return np.interp(t, ctx.T, ctx.U)


def flow_sign(ctx: Context, t) -> int:
    """Sign of the depth-mean velocity at ``t``: +1, 0 or -1."""
    return int(np.sign(velocity_at(ctx, float(t))))


def reference_sign(ctx: Context, t: float) -> int:
    """Flow direction of the half cycle starting at ``t``.

    Taken from ``U(t)`` itself, or at slack water from the first forcing
    sample after ``t`` whose velocity is not slack; 0 when the remaining
    record has no flow at all.
    """
    u = float(velocity_at(ctx, t))
    if abs(u) > 2.0 * U_TOL:
        return int(np.sign(u))
    after = ctx.T > t
    moving = after & (np.abs(ctx.U) > U_TOL)
    idx = np.flatnonzero(moving)
    if idx.size == 0:
        return 0
    return int(np.sign(ctx.U[idx[0]]))
