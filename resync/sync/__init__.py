"""
Resource synchronization - controllers that keep client state in step with the admin API.
"""

from resync.sync.controller import SyncController
from resync.sync.diagnostics import SyncDiagnostics
from resync.sync.guard import ConcurrencyGuard
from resync.sync.reference import ReferenceDataLoader
from resync.sync.store import ResourceStateStore

__all__ = [
    "ConcurrencyGuard",
    "ReferenceDataLoader",
    "ResourceStateStore",
    "SyncController",
    "SyncDiagnostics",
]
