"""Segment-by-segment integration of the sheet-flow model.

Each segment runs the stiff solver from the current time to the end of the
record and stops at the first flow reversal (or when Z leaves its valid
range). The boundary layer is then reset to ``Z0`` while the sheet-flow
thickness carries over, and the next segment starts from that state.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
from scipy.integrate import solve_ivp

from .context import Context
from .errors import IntegrationCancelled, NumericalDivergence
from .forcing import U_TOL, reference_sign
from .sheetflow import derivatives, event_kind, initial_log_ratio, segment_event

__all__ = ["Segment", "Trajectory", "integrate"]

logger = logging.getLogger(__name__)

MAX_STEP = 0.05          # [s] resolves the oscillatory forcing
MAX_STALLS = 10          # consecutive zero-length segments tolerated


def _readonly(arr) -> np.ndarray:
    out = np.array(arr, dtype=float)
    out.setflags(write=False)
    return out


@dataclass(frozen=True, eq=False)
class Segment:
    """One solver run: samples from its start to its stop.

    ``stop`` is ``"reversal"``, ``"domain"`` or ``"end"``.
    """

    t: np.ndarray
    Z: np.ndarray
    Y: np.ndarray
    sign: int
    stop: str

    @property
    def t_start(self) -> float:
        return float(self.t[0])

    @property
    def t_stop(self) -> float:
        return float(self.t[-1])


@dataclass
class Trajectory:
    """Ordered (t, Z, Y) samples assembled from successive segments.

    A reset time appears twice: the end of one segment (pre-reset) and the
    start of the next (post-reset, Z = Z0).
    """

    Z0: float
    segments: list[Segment] = field(default_factory=list)

    def append(self, segment: Segment) -> None:
        self.segments.append(segment)

    def _stack(self, name: str) -> np.ndarray:
        if not self.segments:
            return np.empty(0)
        return np.concatenate([getattr(s, name) for s in self.segments])

    @property
    def t(self) -> np.ndarray:
        return self._stack("t")

    @property
    def Z(self) -> np.ndarray:
        return self._stack("Z")

    @property
    def Y(self) -> np.ndarray:
        return self._stack("Y")

    def reset_times(self, kind: str | None = None) -> np.ndarray:
        """Times at which the state was reset, optionally of one kind only."""
        return np.array([
            s.t_stop for s in self.segments
            if s.stop != "end" and (kind is None or s.stop == kind)
        ])

    @property
    def n_resets(self) -> int:
        return sum(1 for s in self.segments if s.stop != "end")


def _segment_event(sign: int):
    def event(t, y, ctx):
        return segment_event(t, y, ctx, sign)

    event.terminal = True
    event.direction = -1
    return event


def _runs_out_at_end(ctx: Context, sign: int) -> bool:
    """True when the flow of a ``sign`` segment reaches slack on the last sample.

    The solver only sees ``[t, t_end]``, so a reversal whose crossing falls
    on ``t_end`` itself never fires the event.
    """
    if not sign:
        return False
    n = ctx.n_samples
    return sign * ctx.U[n - 2] > U_TOL and sign * ctx.U[n - 1] <= U_TOL


def integrate(ctx: Context, ds0: float, *,
              method: str = "BDF",
              rtol: float = 1e-6,
              atol: float = 1e-8,
              max_step: float = MAX_STEP,
              observer: Callable[[float], None] | None = None,
              should_stop: Callable[[], bool] | None = None,
              timeout: float | None = None,
              max_segments: int = 100_000) -> Trajectory:
    """Integrate (Z, Y) over the whole record, resetting Z at each event.

    Parameters
    ----------
    ctx : Context
        Validated forcing and parameters.
    ds0 : float
        Initial sheet-flow thickness [m].
    method, rtol, atol, max_step :
        Passed to :func:`scipy.integrate.solve_ivp`.
    observer : callable, optional
        Called with the start time of every segment.
    should_stop : callable, optional
        Polled between segments; returning True cancels the run.
    timeout : float, optional
        Wall-clock budget in seconds, checked between segments.
    max_segments : int
        Upper bound on the number of segments.

    Raises
    ------
    NumericalDivergence
        Non-finite derivatives or states, a solver failure, or a run that
        stops making progress.
    IntegrationCancelled
        When ``should_stop`` returns True or ``timeout`` is exceeded.
    """
    Z0 = initial_log_ratio(ctx, ds0)
    t = float(ctx.T[0])
    y = np.array([Z0, ds0 / ctx.d50], dtype=float)
    traj = Trajectory(Z0=Z0)

    clock0 = time.monotonic()
    stalls = 0
    while True:
        if should_stop is not None and should_stop():
            raise IntegrationCancelled(f"Run cancelled at t={t:.6g} s.")
        if timeout is not None and time.monotonic() - clock0 >= timeout:
            raise IntegrationCancelled(f"Run exceeded {timeout} s at t={t:.6g} s.")
        if len(traj.segments) >= max_segments:
            raise NumericalDivergence(f"More than {max_segments} segments; stopped at t={t:.6g} s.")

        if observer is not None:
            observer(t)

        sign = reference_sign(ctx, t)
        sol = solve_ivp(derivatives, (t, ctx.t_end), y, method=method,
                        events=_segment_event(sign), args=(ctx,),
                        max_step=max_step, rtol=rtol, atol=atol)
        if sol.status == -1:
            raise NumericalDivergence(f"Solver failed at t={sol.t[-1]:.6g} s: {sol.message}")
        if not np.all(np.isfinite(sol.y)):
            raise NumericalDivergence(f"Non-finite state in segment starting at t={t:.6g} s.")

        t_stop = float(sol.t[-1])
        y_stop = sol.y[:, -1]
        if sol.status == 0:
            if not _runs_out_at_end(ctx, sign):
                traj.append(Segment(_readonly(sol.t), _readonly(sol.y[0]), _readonly(sol.y[1]), sign, "end"))
                return traj
            kind = "reversal"
        else:
            kind = event_kind(t_stop, y_stop, ctx, sign)
        traj.append(Segment(_readonly(sol.t), _readonly(sol.y[0]), _readonly(sol.y[1]), sign, kind))
        logger.debug("Reset (%s) at t=%.6g s: Z=%.4g -> %.4g, Y=%.4g", kind, t_stop, y_stop[0], Z0, y_stop[1])

        if t_stop - t <= 1e-12 * max(1.0, abs(t)):
            stalls += 1
            if stalls > MAX_STALLS:
                raise NumericalDivergence(f"Integration stalled at t={t_stop:.6g} s.")
        else:
            stalls = 0

        t = t_stop
        y = np.array([Z0, y_stop[1]], dtype=float)
        if t >= ctx.t_end:
            # event on the last sample: close with the post-reset state
            traj.append(Segment(_readonly([t]), _readonly([y[0]]), _readonly([y[1]]), sign, "end"))
            return traj
