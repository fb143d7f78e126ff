from dataclasses import fields

import numpy as np
import pytest

from IHSetSheetFlow.context import PAD_SECONDS, build_context
from IHSetSheetFlow.errors import ConfigurationError


def _inputs(n=5):
    T = np.linspace(0.0, 1.0, n)
    return dict(T=T, U=np.sin(T), dUdt=np.cos(T), H=np.ones(n), Px=np.zeros(n), B=np.zeros(n))


def test_padding_repeats_last_sample():
    ctx = build_context(d50=2e-4, w=0.02, beta=0.0, **_inputs())
    assert ctx.T.size == 6
    assert ctx.T[-1] == pytest.approx(1.0 + PAD_SECONDS)
    assert ctx.t_end == 1.0
    assert ctx.U[-1] == ctx.U[-2]
    assert ctx.n_samples == 5
    assert ctx.h_cut == 2e-4


def test_context_arrays_are_read_only():
    ctx = build_context(d50=2e-4, w=0.02, beta=0.0, **_inputs())
    with pytest.raises(ValueError):
        ctx.U[0] = 3.0
    with pytest.raises(AttributeError):
        ctx.d50 = 1.0


def test_slope_is_stored_as_sin_cos():
    ctx = build_context(d50=2e-4, w=0.02, beta=0.1, **_inputs())
    assert ctx.sin_beta == pytest.approx(np.sin(0.1))
    assert ctx.cos_beta == pytest.approx(np.cos(0.1))


def test_mismatched_lengths():
    kw = _inputs()
    kw["H"] = np.ones(4)
    with pytest.raises(ConfigurationError, match="H has 4 samples"):
        build_context(d50=2e-4, w=0.02, beta=0.0, **kw)


def test_time_must_increase():
    kw = _inputs()
    kw["T"] = np.array([0.0, 0.5, 0.5, 0.7, 1.0])
    with pytest.raises(ConfigurationError, match="strictly increasing"):
        build_context(d50=2e-4, w=0.02, beta=0.0, **kw)


@pytest.mark.parametrize("d50, w", [(0.0, 0.02), (-1e-4, 0.02), (2e-4, 0.0), (2e-4, -0.1)])
def test_non_positive_scalars(d50, w):
    with pytest.raises(ConfigurationError):
        build_context(d50=d50, w=w, beta=0.0, **_inputs())


def test_calibration_vector_checked():
    with pytest.raises(ConfigurationError, match="4 coefficients"):
        build_context(d50=2e-4, w=0.02, beta=0.0, calib=[1, 1, 1], **_inputs())
    with pytest.raises(ConfigurationError):
        build_context(d50=2e-4, w=0.02, beta=0.0, calib=[1, -1, 1, 1], **_inputs())


def test_configuration_error_is_a_value_error():
    kw = _inputs()
    kw["U"] = np.array([0.0, np.nan, 0.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        build_context(d50=2e-4, w=0.02, beta=0.0, **kw)


def test_with_calibration_keeps_forcing():
    ctx = build_context(d50=2e-4, w=0.02, beta=0.0, **_inputs())
    ctx2 = ctx.with_calibration([2.0, 3.0, 4.0, 5.0])
    assert (ctx2.C1, ctx2.C2, ctx2.C3, ctx2.C4) == (2.0, 3.0, 4.0, 5.0)
    assert ctx2.U is ctx.U
    assert ctx.C1 == 1.0


def test_with_calibration_carries_every_other_field():
    ctx = build_context(d50=3e-4, w=0.03, beta=0.2, **_inputs())
    ctx2 = ctx.with_calibration([0.5, 0.5, 0.5, 0.5])
    for f in fields(ctx):
        if f.name in ("C1", "C2", "C3", "C4"):
            assert getattr(ctx2, f.name) == 0.5
        else:
            assert getattr(ctx2, f.name) is getattr(ctx, f.name), f.name
    with pytest.raises(ConfigurationError):
        ctx.with_calibration([1.0, 1.0])
