from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .context import Context
from .driver import Trajectory
from .sheetflow import boundary_layer_thickness, free_stream_velocity, roughness_length

__all__ = ["collapse_duplicates", "derive_fields", "DerivedFields"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class DerivedFields:
    t: np.ndarray
    Z: np.ndarray
    ds: np.ndarray
    db: np.ndarray
    U0: np.ndarray
    ufric: np.ndarray
    tau: np.ndarray
    f: np.ndarray
    Shields: np.ndarray
    Sleath: np.ndarray
    bad: np.ndarray


def collapse_duplicates(t: np.ndarray, *values: np.ndarray):
    """Average every series over samples sharing the same time.

    At a reset the pre- and post-reset values are both one-sided limits;
    their mean is the representative value at that instant.
    """
    t_unique, inverse, counts = np.unique(t, return_inverse=True, return_counts=True)
    out = []
    for v in values:
        out.append(np.bincount(inverse, weights=v, minlength=t_unique.size) / counts)
    return (t_unique, *out)


def derive_fields(ctx: Context, traj: Trajectory, strict: bool = True) -> DerivedFields:
    """Interpolate the trajectory onto the input grid and compute outputs.

    With ``strict`` a failed free-stream inversion raises
    :class:`~IHSetSheetFlow.errors.VelocityInversionError`; otherwise the
    failed samples are NaN and flagged in ``bad``.
    """
    tq, Zq, dsq = collapse_duplicates(traj.t, traj.Z, traj.Y * ctx.d50)

    T = ctx.T[:-1]
    U = ctx.U[:-1]
    H = ctx.H[:-1]
    Px = ctx.Px[:-1]

    Z = np.interp(T, tq, Zq)
    # solver noise can push a vanishing layer marginally below zero
    ds = np.maximum(np.interp(T, tq, dsq), 0.0)

    z0 = roughness_length(ctx, ds)
    db = boundary_layer_thickness(z0, Z)
    if strict:
        U0 = free_stream_velocity(ctx, U, H, Z, z0, db)
        bad = np.zeros(T.size, dtype=bool)
    else:
        U0, bad = free_stream_velocity(ctx, U, H, Z, z0, db, strict=False)
        if np.any(bad):
            logger.warning("Free stream velocity inversion failed at %d of %d samples.", int(bad.sum()), T.size)

    ufric = np.where(H < ctx.h_cut, 0.0, U0 * ctx.kappa / Z)
    tau = ctx.rho * ufric ** 2 * np.sign(U)
    with np.errstate(divide="ignore", invalid="ignore"):
        f = np.where(U0 != 0.0, 2.0 * ufric ** 2 / U0 ** 2, 0.0)
    shields = np.abs(tau) / (ctx.submerged_weight * ctx.d50)
    sleath = -Px / ctx.submerged_weight

    if np.any(bad):
        f = np.where(bad, np.nan, f)

    return DerivedFields(t=T.copy(), Z=Z, ds=ds, db=db, U0=U0, ufric=ufric, tau=tau,
                         f=f, Shields=shields, Sleath=sleath, bad=bad)
