import numpy as np
import pytest

from IHSetSheetFlow.context import build_context
from IHSetSheetFlow.driver import Segment, Trajectory
from IHSetSheetFlow.errors import VelocityInversionError
from IHSetSheetFlow.postprocess import collapse_duplicates, derive_fields

D50 = 2e-4


def test_duplicate_times_are_averaged():
    t = np.array([0.0, 1.0, 2.0, 2.0, 3.0])
    Z = np.array([0.1, 2.0, 8.0, 0.2, 1.0])
    Y = np.array([1.0, 2.0, 3.0, 3.0, 4.0])
    tq, Zq, Yq = collapse_duplicates(t, Z, Y)
    np.testing.assert_array_equal(tq, [0.0, 1.0, 2.0, 3.0])
    np.testing.assert_allclose(Zq, [0.1, 2.0, 4.1, 1.0])
    np.testing.assert_allclose(Yq, [1.0, 2.0, 3.0, 4.0])


def _ctx():
    T = np.array([0.0, 1.0, 2.0, 3.0])
    return build_context(T=T, U=[0.5, 0.5, -0.5, -0.5], dUdt=np.zeros(4), H=[1.0, 1.0, 1e-5, 1.0],
                         Px=[10.0, 0.0, -10.0, 0.0], B=np.zeros(4), d50=D50, w=0.02, beta=0.0)


def _traj(Z):
    seg = Segment(np.array([0.0, 1.5, 3.0]), np.asarray(Z, dtype=float), np.array([1.0, 1.0, 1.0]), 1, "end")
    return Trajectory(Z0=0.1, segments=[seg])


def test_fields_from_handmade_trajectory():
    ctx = _ctx()
    out = derive_fields(ctx, _traj([2.0, 2.0, 2.0]))
    np.testing.assert_array_equal(out.t, ctx.T[:-1])
    np.testing.assert_allclose(out.ds, D50)
    # dry sample
    assert out.ufric[2] == 0.0
    assert out.tau[2] == 0.0
    # friction factor equals 2 (kappa/Z)^2 where there is flow
    np.testing.assert_allclose(out.f[[0, 1, 3]], 2 * (ctx.kappa / 2.0) ** 2)
    assert np.sign(out.tau[0]) == 1 and np.sign(out.tau[3]) == -1
    np.testing.assert_allclose(out.Shields, np.abs(out.tau) / ((ctx.rho_s - ctx.rho) * ctx.g * D50))
    np.testing.assert_allclose(out.Sleath, [-10.0 / ctx.submerged_weight, 0.0, 10.0 / ctx.submerged_weight, 0.0])


def test_failed_inversion_raise_or_mask():
    ctx = _ctx()
    traj = _traj([2.0, np.nan, 2.0])
    with pytest.raises(VelocityInversionError):
        derive_fields(ctx, traj)

    out = derive_fields(ctx, traj, strict=False)
    assert out.bad[1]
    assert np.isnan(out.U0[1]) and np.isnan(out.tau[1])
    assert not out.bad[2]  # dry samples are not failures
