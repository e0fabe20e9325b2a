"""Core - configuration and error types."""

from .config import Settings, get_settings
from .errors import (
    ClientInitError,
    ControlAPIError,
    CredentialBootstrapError,
    DiscoveryError,
    FailoverError,
    OperatorAbort,
    OrchestrationError,
    PollExhaustedError,
    SplitBrainError,
)

__all__ = [
    "Settings",
    "get_settings",
    "FailoverError",
    "ControlAPIError",
    "DiscoveryError",
    "ClientInitError",
    "CredentialBootstrapError",
    "SplitBrainError",
    "PollExhaustedError",
    "OperatorAbort",
    "OrchestrationError",
]
