"""Custom exceptions for the :mod:`IHSetSheetFlow` package."""
from __future__ import annotations


class SheetFlowError(Exception):
    """Base exception for sheet-flow model errors."""


class ConfigurationError(SheetFlowError, ValueError):
    """Malformed inputs: mismatched lengths, non-monotonic time, bad scalars."""


class NumericalDivergence(SheetFlowError, RuntimeError):
    """Non-finite derivative or state, or a stalled integration."""


class VelocityInversionError(SheetFlowError, ArithmeticError):
    """Free-stream velocity could not be recovered for one sample."""

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message)
        self.index = index


class IntegrationCancelled(SheetFlowError, RuntimeError):
    """The run was stopped by the cancellation hook or the timeout."""


__all__ = [
    "SheetFlowError",
    "ConfigurationError",
    "NumericalDivergence",
    "VelocityInversionError",
    "IntegrationCancelled",
]
