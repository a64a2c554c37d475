"""Presence/absence reconciliation of calibrations between two stores.

A sync pass fingerprints every local and remote calibration, uploads the
ones only the device has and downloads the ones only the remote has.
Calibrations present on both sides are left alone, so a second pass over
unchanged stores does nothing.
"""

import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..db.store import CalibrationStore
from ..exceptions import OfflineError
from ..models import CalibrationProfile
from .connectivity import ConnectivityMonitor
from .fingerprint import calibration_fingerprint
from .remote import RemoteCalibrationClient
from .scheduler import AutoSyncScheduler

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


@dataclass
class SyncSummary:
    """Outcome of one sync pass."""
    uploaded: int = 0
    downloaded: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SyncReconciler:
    """Keeps the local store and the remote endpoint in step.

    Usage:
        reconciler = SyncReconciler(store, remote, ConnectivityMonitor())
        summary = await reconciler.sync_calibrations(user_id)
        dispose = reconciler.setup_auto_sync(user_id, interval_minutes=5)
    """

    def __init__(
        self,
        store: CalibrationStore,
        remote: RemoteCalibrationClient,
        connectivity: Optional[ConnectivityMonitor] = None,
    ):
        self.store = store
        self.remote = remote
        self.connectivity = connectivity or ConnectivityMonitor()
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state is SyncState.SYNCING

    @staticmethod
    def _index(profiles: List[CalibrationProfile]) -> Dict[str, CalibrationProfile]:
        return {calibration_fingerprint(p): p for p in profiles}

    async def sync_calibrations(self, user_id: Optional[str] = None) -> SyncSummary:
        """Run one reconciliation pass.

        Args:
            user_id: Used for logging; the store and remote are already
                scoped to their user.

        Returns:
            SyncSummary with upload and download counts. Per-item failures
            are collected in ``errors`` instead of being raised.

        Raises:
            OfflineError: The connectivity monitor reports offline.
            StorageFailure: The local calibrations could not be listed.
            RemoteRequestFailure: The remote calibrations could not be fetched.
        """
        if not self.connectivity.is_online():
            raise OfflineError()

        user_id = user_id or self.store.user_id
        summary = SyncSummary()
        self._state = SyncState.SYNCING

        try:
            local_map = self._index(self.store.list_all())
            remote_map = self._index(await self.remote.list_calibrations())

            for key, local in local_map.items():
                if key in remote_map:
                    continue
                try:
                    await self.remote.create_calibration(local)
                    summary.uploaded += 1
                except Exception as e:
                    logger.warning(f"Upload of calibration {local.id} failed: {e}")
                    summary.errors.append(f"Failed to upload calibration: {e}")

            for key, cloud in remote_map.items():
                if key in local_map:
                    continue
                try:
                    self.store.save(cloud.without_identity())
                    summary.downloaded += 1
                except Exception as e:
                    logger.warning(f"Download of calibration {cloud.id} failed: {e}")
                    summary.errors.append(f"Failed to download calibration: {e}")
        finally:
            self._state = SyncState.IDLE

        logger.info(
            f"Sync for user {user_id}: {summary.uploaded} uploaded, "
            f"{summary.downloaded} downloaded, {len(summary.errors)} errors"
        )
        return summary

    async def auto_sync(self, user_id: Optional[str] = None) -> Optional[SyncSummary]:
        """Background sync pass. Never raises.

        Returns:
            The summary, or None when the pass was skipped or failed.
        """
        if not self.connectivity.is_online():
            logger.info("Skipping auto-sync: offline")
            return None

        if self.is_syncing:
            logger.info("Skipping auto-sync: a sync is already in progress")
            return None

        try:
            summary = await self.sync_calibrations(user_id)
        except Exception as e:
            logger.error(f"Auto-sync failed: {e}")
            return None

        if summary.has_errors:
            logger.warning(f"Auto-sync completed with errors: {summary.errors}")
        return summary

    def setup_auto_sync(
        self,
        user_id: Optional[str] = None,
        interval_minutes: int = 5,
    ) -> Callable[[], None]:
        """Sync now, every ``interval_minutes`` and whenever the network returns.

        Must be called from a running event loop.

        Returns:
            A function that stops all automatic syncing.
        """
        scheduler = AutoSyncScheduler(self, user_id or self.store.user_id, interval_minutes)
        return scheduler.start()
