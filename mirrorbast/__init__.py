"""
Mirrorbast auto-setup: drive two lobby sessions into a started game.
"""

from .backends import PlaywrightSession, PlaywrightViewCoordinator, SessionHandle, ViewCoordinator
from .cancellation import CancellationToken
from .config import AutoSetupConfig
from .errors import (
    AutoSetupError,
    FaultedError,
    InputNotFoundError,
    ResetError,
    SessionUnavailableError,
    SetupCancelledError,
    StepTimeoutError,
)
from .metadata import fetch_deck_metadata
from .models import DeckMetadata, OrchestrationOutcome, Phase, RetryAttempt, SetupTimings
from .orchestrator import AutoSetupOrchestrator
from .run import OrchestrationRun
from .tracing import JsonlTraceSink, NoopTraceSink, Tracer, TraceSink

__version__ = "0.3.0"

__all__ = [
    # Orchestration
    "AutoSetupOrchestrator",
    "AutoSetupConfig",
    "OrchestrationRun",
    "OrchestrationOutcome",
    "CancellationToken",
    "Phase",
    "RetryAttempt",
    "SetupTimings",
    # Backends
    "SessionHandle",
    "ViewCoordinator",
    "PlaywrightSession",
    "PlaywrightViewCoordinator",
    # Errors
    "AutoSetupError",
    "StepTimeoutError",
    "FaultedError",
    "SessionUnavailableError",
    "InputNotFoundError",
    "SetupCancelledError",
    "ResetError",
    # Tracing
    "Tracer",
    "TraceSink",
    "JsonlTraceSink",
    "NoopTraceSink",
    # Metadata
    "DeckMetadata",
    "fetch_deck_metadata",
]
