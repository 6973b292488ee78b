"""
touchsync

Align independently recorded videos of one event to a shared timeline,
label touches against it, and export/restore the labeled session.
"""

from touchsync.alignment.clock import ClockState, MasterClock
from touchsync.alignment.sync_range import SyncRange, compute_sync_range
from touchsync.config import SessionConfig
from touchsync.errors import ErrorKind, Result
from touchsync.models.annotation import Annotation, Surface
from touchsync.models.track import Track
from touchsync.session import ImportSummary, Session, SyncProgress
from touchsync.store.annotations import AnnotationStore

__version__ = "0.1.0"

__all__ = [
    # Core
    "Session",
    "SessionConfig",
    "SyncProgress",
    "ImportSummary",
    # Models
    "Track",
    "Annotation",
    "Surface",
    # Alignment
    "SyncRange",
    "compute_sync_range",
    "MasterClock",
    "ClockState",
    # Store
    "AnnotationStore",
    # Results
    "Result",
    "ErrorKind",
]
