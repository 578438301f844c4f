"""Core module - data models, types, configuration and exceptions."""

from .models import (
    CommandSpec,
    ConfigureRequest,
    FarmerStats,
    FundingAttempt,
    LaunchConfig,
    LaunchRequest,
    OperationRequest,
    SwapRequest,
    TokenMetadata,
    TokenRequest,
)
from .types import (
    LAMPORTS_PER_SOL,
    Cluster,
    CommandName,
    FundingStatus,
    SwapStyle,
)
from .exceptions import (
    CurveCtlError,
    ConfigurationError,
    IdentityLoadError,
    OperationError,
    TransientNetworkError,
    ValidationError,
)

__all__ = [
    # Models
    "CommandSpec",
    "ConfigureRequest",
    "FarmerStats",
    "FundingAttempt",
    "LaunchConfig",
    "LaunchRequest",
    "OperationRequest",
    "SwapRequest",
    "TokenMetadata",
    "TokenRequest",
    # Types
    "LAMPORTS_PER_SOL",
    "Cluster",
    "CommandName",
    "FundingStatus",
    "SwapStyle",
    # Exceptions
    "CurveCtlError",
    "ConfigurationError",
    "IdentityLoadError",
    "OperationError",
    "TransientNetworkError",
    "ValidationError",
]
