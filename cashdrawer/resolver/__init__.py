from .backend import LocalShiftBackend, ShiftBackend
from .context import PinningGuard, ResolutionContext
from .http import HttpShiftBackend
from .resolver import CurrentShiftResolver, Resolution, resolve_current
from .session import ShiftSession
from .strategies import DEFAULT_STRATEGIES

__all__ = [
    "CurrentShiftResolver",
    "DEFAULT_STRATEGIES",
    "HttpShiftBackend",
    "LocalShiftBackend",
    "PinningGuard",
    "Resolution",
    "ResolutionContext",
    "ShiftBackend",
    "ShiftSession",
    "resolve_current",
]
