# =============================================================
# Oscillatory boundary layer + sheet-flow layer – kernel model
# =============================================================
#
# • Z = ln(1 + db/z0)   boundary layer log-ratio
# • Y = ds/d50          dimensionless sheet-flow thickness
#
#   u(y) = uf/kappa * ln(1 + y/z0)          (0 < y < db)
#   d/dt[U0 z0 F(Z)] = kappa^2 U0|U0| / Z^2  (momentum integral)
#   dY/dt = (w/d50) * uf/(uf + w) * (Yeq - Y)
#
# -------------------------------------------------------------

from __future__ import annotations # type hints - avoids circular reference

import numpy as np

from .context import Context
from .errors import NumericalDivergence, VelocityInversionError
from .forcing import U_TOL, interpolate_forcing, velocity_at

__all__ = [
    "Z_MIN",
    "Z_MAX",
    "roughness_length",
    "boundary_layer_thickness",
    "initial_log_ratio",
    "free_stream_velocity",
    "equilibrium_sheet_thickness",
    "derivatives",
    "segment_event",
    "event_kind",
]

Z_MIN = 1e-4            # valid range of the log-ratio state
Z_MAX = 50.0
EPS_U = 1e-3            # velocity regularisation of U'/U near slack water [m/s]
DB0_FACTOR = 0.01       # initial boundary layer thickness db0 = d50/100


# ---------- geometry ----------
def roughness_length(ctx: Context, ds):
    """Nikuradse roughness length z0 = (2.5 d50 + 0.5 C3 ds) / 30."""
    return (2.50 * ctx.d50 + 0.50 * ctx.C3 * np.asarray(ds, dtype=float)) / 30.0


def boundary_layer_thickness(z0, Z):
    """db = z0 (e^Z - 1)."""
    return z0 * np.expm1(Z)


def initial_log_ratio(ctx: Context, ds0: float) -> float:
    """Z0 from db0 = d50/100 and the roughness of the initial sheet layer.

    The same Z0 is used after every reset.
    """
    z0 = roughness_length(ctx, ds0)
    db0 = DB0_FACTOR * ctx.d50
    return float(np.log1p(db0 / z0))


def _shape_factors(Z):
    """F(Z) = (e^Z - 1 - Z)/Z and its derivative F'(Z)."""
    if abs(Z) < 1e-4:
        return Z / 2.0 + Z * Z / 6.0, 0.5 + Z / 3.0
    em1 = np.expm1(Z)
    F = (em1 - Z) / Z
    Fp = (Z * (em1 + 1.0) - em1) / (Z * Z)
    return F, Fp


# ---------- free stream velocity ----------
def _velocity_ratio(H, Z, z0, db):
    """U0/U from the depth-integrated profile.

    Log profile below h = min(db, H) and uniform U0 above it; the depth mean
    must equal the forcing velocity U:

        U H = U0 [ ((z0 + h) ln(1 + h/z0) - h)/Z + H - h ]
    """
    H = np.asarray(H, dtype=float)
    h = np.minimum(db, H)
    Zh = np.log1p(h / z0)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        D = ((z0 + h) * Zh - h) / Z + H - h
        return H / D


def free_stream_velocity(ctx: Context, U, H, Z, z0, db, strict: bool = True):
    """Invert the depth-mean relation for U0 at every sample.

    Dry samples (H < h_cut) return U0 = 0. With ``strict`` a sample whose
    inversion is not finite and positive raises :class:`VelocityInversionError`;
    otherwise ``(U0, bad)`` is returned with NaN at the failed samples.
    """
    U = np.atleast_1d(np.asarray(U, dtype=float))
    H = np.atleast_1d(np.asarray(H, dtype=float))
    Z = np.broadcast_to(np.asarray(Z, dtype=float), U.shape)
    ratio = np.atleast_1d(_velocity_ratio(H, Z, z0, db))
    wet = H >= ctx.h_cut

    ok = np.isfinite(ratio) & (ratio > 0)
    bad = wet & ~ok
    U0 = np.where(wet & ok, U * np.where(ok, ratio, 0.0), 0.0)
    if strict:
        if np.any(bad):
            idx = int(np.flatnonzero(bad)[0])
            raise VelocityInversionError(
                f"Free stream velocity inversion failed at sample {idx} "
                f"(H={H[idx]:.4g} m, Z={Z[idx]:.4g}).",
                index=idx,
            )
        return U0
    U0 = np.where(bad, np.nan, U0)
    return U0, bad


# ---------- sheet flow ----------
def equilibrium_sheet_thickness(ctx: Context, uf, U, dUdt, Px, B):
    """Instantaneous equilibrium Y_eq = ds_eq/d50.

    Weighted sum of a grain-inertia term (C1), a submerged-weight
    (Mohr-Coulomb) term (C2) and an acceleration/bore term (C4).
    """
    uf = np.abs(uf)
    theta = uf ** 2 / ((ctx.s - 1.0) * ctx.g * ctx.d50)
    sleath = -np.asarray(Px, dtype=float) / ctx.submerged_weight

    inertia = theta * uf / ctx.w
    # upslope flow also lifts the grains against gravity
    resist = ctx.tan_phi * ctx.cos_beta + np.sign(U) * (ctx.sin_beta + B * ctx.cos_beta)
    resist = np.maximum(resist, 0.05 * ctx.tan_phi)
    weight = theta / (ctx.cb * resist)
    accel = (np.abs(dUdt) / ((ctx.s - 1.0) * ctx.g) + np.abs(sleath)) / (ctx.cb * ctx.tan_phi)

    return ctx.C1 * inertia + ctx.C2 * weight + ctx.C4 * accel


# ---------- ODE right-hand side ----------
def derivatives(t: float, state, ctx: Context) -> np.ndarray:
    """(dZ/dt, dY/dt) at time ``t``.

    Raises
    ------
    NumericalDivergence
        If the state or the derivatives are not finite.
    """
    Z, Y = float(state[0]), float(state[1])
    if not (np.isfinite(Z) and np.isfinite(Y)):
        raise NumericalDivergence(f"Non-finite state Z={Z}, Y={Y} at t={t:.6g} s.")

    U, dUdt, H, Px, B = interpolate_forcing(ctx, t)
    if H < ctx.h_cut:
        # dry bed: no shear, frozen state
        return np.zeros(2)

    ds = Y * ctx.d50
    z0 = float(roughness_length(ctx, ds))
    db = z0 * np.expm1(Z)
    U0 = U * float(_velocity_ratio(H, Z, z0, db))
    uf = U0 * ctx.kappa / Z

    Yeq = equilibrium_sheet_thickness(ctx, uf, U, dUdt, Px, B)
    mobility = abs(uf) / (abs(uf) + ctx.w)
    dY = (ctx.w / ctx.d50) * mobility * (Yeq - Y)

    dz0 = 0.50 * ctx.C3 * ctx.d50 * dY / 30.0
    F, Fp = _shape_factors(Z)
    accel = U * dUdt / (U * U + EPS_U * EPS_U)
    dZ = (ctx.kappa ** 2 * abs(U0) / Z ** 2 - F * z0 * accel - F * dz0) / (z0 * Fp)

    out = np.array([dZ, dY], dtype=float)
    if not np.all(np.isfinite(out)):
        raise NumericalDivergence(
            f"Non-finite derivatives (dZ={dZ}, dY={dY}) at t={t:.6g} s, Z={Z:.4g}, Y={Y:.4g}."
        )
    return out


# ---------- events ----------
def segment_event(t: float, state, ctx: Context, sign: int) -> float:
    """Positive inside a segment, crosses zero when the segment must end.

    ``sign`` is the flow direction of the segment; the flow term vanishes
    once the velocity has reversed past the slack tolerance. Z leaving
    [Z_MIN, Z_MAX] also ends the segment.
    """
    Z = state[0]
    g = min(Z - Z_MIN, Z_MAX - Z)
    if sign:
        g = min(g, sign * float(velocity_at(ctx, t)) + U_TOL)
    return g


def event_kind(t: float, state, ctx: Context, sign: int) -> str:
    """Which term of :func:`segment_event` ended the segment."""
    Z = state[0]
    g_domain = min(Z - Z_MIN, Z_MAX - Z)
    if sign:
        g_flow = sign * float(velocity_at(ctx, t)) + U_TOL
        if g_flow <= g_domain:
            return "reversal"
    return "domain"
