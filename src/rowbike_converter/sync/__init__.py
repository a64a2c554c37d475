"""Calibration sync between the local store and the remote endpoint."""

from .connectivity import ConnectivityMonitor
from .fingerprint import calibration_fingerprint, hash_samples
from .reconciler import SyncReconciler, SyncState, SyncSummary
from .remote import RemoteCalibrationClient
from .scheduler import AutoSyncScheduler

__all__ = [
    "AutoSyncScheduler",
    "ConnectivityMonitor",
    "RemoteCalibrationClient",
    "SyncReconciler",
    "SyncState",
    "SyncSummary",
    "calibration_fingerprint",
    "hash_samples",
]
