"""Persistence gateway: synchronous local store plus best-effort Firestore sync."""

import asyncio
import json
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel

from tvtime_shared import Child, Chore, FamilyDocument
from tvtime_shared.firestore import firestore_to_dict, models_to_firestore

from .errors import RemoteUnavailable
from .firebase_client import RemoteDocument
from .store import CHILDREN_KEY, CHORES_KEY, LAST_MIDNIGHT_CHECK_KEY, LocalStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class SyncStatus(StrEnum):
    SYNCING = "syncing"
    LOCAL = "local"


class PersistenceGateway:
    """Reads and writes family data through the local store and the remote document.

    Local writes always happen first and synchronously. Remote writes are
    fire-and-forget: inside a running event loop they are queued on a single writer
    thread, otherwise they run inline. Remote failures are logged and only
    change the passive sync status.
    """

    def __init__(self, store: LocalStore, remote: RemoteDocument | None = None):
        self._store = store
        self._remote = remote
        self._online = remote is not None
        self._pending: set[asyncio.Future[bool]] = set()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def remote(self) -> RemoteDocument | None:
        return self._remote

    @property
    def sync_status(self) -> SyncStatus:
        if self._remote is not None and self._online:
            return SyncStatus.SYNCING
        return SyncStatus.LOCAL

    def mark_online(self) -> None:
        if self._remote is not None and not self._online:
            logger.info("Firestore reachable again, syncing")
        self._online = self._remote is not None

    def mark_offline(self) -> None:
        if self._online:
            logger.warning("Lost connection to Firestore, switching to local mode")
        self._online = False

    # Reads

    def fetch_remote(self) -> FamilyDocument | None:
        """Read the remote document, or None when disabled, absent or unreachable."""
        if self._remote is None:
            return None
        try:
            document = self._remote.get()
        except RemoteUnavailable:
            logger.warning("Failed to load from Firestore, using local data", exc_info=True)
            self.mark_offline()
            return None
        self.mark_online()
        return document

    def load_children(self, document: FamilyDocument | None = None) -> list[Child]:
        """Children from the remote document if it has them, else from the local store."""
        if document is not None and document.children is not None:
            self.save_local_children(document.children)
            return list(document.children)
        return self._load_local(CHILDREN_KEY, Child)

    def load_chores(self, document: FamilyDocument | None = None) -> list[Chore]:
        """Custom chores from the remote document if it has them, else from the local store."""
        if document is not None and document.custom_chores is not None:
            self.save_local_chores(document.custom_chores)
            return list(document.custom_chores)
        return self._load_local(CHORES_KEY, Chore)

    def load_last_midnight_check(self) -> str | None:
        return self._store.get(LAST_MIDNIGHT_CHECK_KEY)

    def clear_last_midnight_check(self) -> None:
        self._store.remove(LAST_MIDNIGHT_CHECK_KEY)

    def _load_local(self, key: str, model: type[M]) -> list[M]:
        raw = self._store.get(key)
        if not raw:
            return []
        try:
            return [model.model_validate(firestore_to_dict(item)) for item in json.loads(raw)]
        except (AttributeError, TypeError, ValueError):
            logger.exception("Failed to load %s from local store", key)
            return []

    # Writes

    def save_local_children(self, children: Sequence[Child]) -> None:
        self._store.set(CHILDREN_KEY, json.dumps(models_to_firestore(children)))

    def save_local_chores(self, chores: Sequence[Chore]) -> None:
        self._store.set(CHORES_KEY, json.dumps(models_to_firestore(chores)))

    def save_children(self, children: Sequence[Child], last_midnight_check: str | None) -> None:
        """Save children locally, then sync them together with the check date."""
        self.save_local_children(children)
        fields: dict[str, Any] = {"children": models_to_firestore(children)}
        if last_midnight_check is not None:
            fields["lastMidnightCheck"] = last_midnight_check
        self._push(fields)

    def save_chores(self, chores: Sequence[Chore]) -> None:
        self.save_local_chores(chores)
        self._push({"customChores": models_to_firestore(chores)})

    def save_last_midnight_check(self, value: str, sync: bool = True) -> None:
        """Store the last bonus date; sync=False keeps the write on this device."""
        self._store.set(LAST_MIDNIGHT_CHECK_KEY, value)
        if sync:
            self._push({"lastMidnightCheck": value})

    def _push(self, fields: dict[str, Any]) -> None:
        if self._remote is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._online = self._write_remote(self._remote, fields)
            return
        # One worker keeps merge-writes landing in the order they were issued.
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="firestore-writes")
        future = loop.run_in_executor(self._executor, self._write_remote, self._remote, fields)
        self._pending.add(future)
        future.add_done_callback(self._on_write_done)

    def _write_remote(self, remote: RemoteDocument, fields: dict[str, Any]) -> bool:
        try:
            remote.set(fields, merge=True)
        except RemoteUnavailable:
            logger.warning("Error syncing %s to Firestore", ", ".join(sorted(fields)), exc_info=True)
            return False
        logger.debug("Synced %s to cloud", ", ".join(sorted(fields)))
        return True

    def _on_write_done(self, future: asyncio.Future[bool]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Unexpected error syncing to Firestore", exc_info=error)
            self.mark_offline()
        elif future.result():
            self.mark_online()
        else:
            self.mark_offline()

    async def flush(self) -> None:
        """Wait for outstanding remote writes and release the writer thread."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
