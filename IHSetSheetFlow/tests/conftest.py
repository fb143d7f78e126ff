"""Shared forcing fixtures for the sheet-flow test suite."""
import numpy as np
import pytest

from IHSetSheetFlow.io_utils import synthetic_forcing


@pytest.fixture
def wave():
    """U = sin(2 pi t / 5) over 0..10 s, H = 1 m, Px = B = 0."""
    return synthetic_forcing(duration=10.0, dt=0.1, amplitude=1.0, period=5.0, depth=1.0)


@pytest.fixture
def still():
    T = np.arange(0.0, 5.0 + 0.05, 0.1)
    zeros = np.zeros_like(T)
    return dict(T=T, U=zeros, dUdt=zeros, H=np.ones_like(T), Px=zeros, B=zeros)
