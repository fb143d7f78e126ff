"""IH-SET sheet flow: oscillatory boundary layer and sheet-flow layer model."""
from .calibration import cal_SheetFlow
from .context import Context, build_context
from .errors import (
    ConfigurationError,
    IntegrationCancelled,
    NumericalDivergence,
    SheetFlowError,
    VelocityInversionError,
)
from .io_utils import Forcing, read_forcing_csv, read_forcing_netcdf, synthetic_forcing
from .run import SheetFlowResult, run_context, run_model

__all__ = [
    "cal_SheetFlow",
    "Context",
    "build_context",
    "ConfigurationError",
    "IntegrationCancelled",
    "NumericalDivergence",
    "SheetFlowError",
    "VelocityInversionError",
    "Forcing",
    "read_forcing_csv",
    "read_forcing_netcdf",
    "synthetic_forcing",
    "SheetFlowResult",
    "run_context",
    "run_model",
]
