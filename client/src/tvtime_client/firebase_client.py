"""Firebase/Firestore client for the shared family document."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

import firebase_admin  # type: ignore[import-untyped]
from firebase_admin import credentials, firestore  # type: ignore[import-untyped]
from google.cloud.firestore import SERVER_TIMESTAMP, Client  # type: ignore[import-untyped]

from tvtime_shared import FamilyDocument
from tvtime_shared.firestore import firestore_to_dict

from .errors import RemoteUnavailable

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[FamilyDocument], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class RemoteDocument(Protocol):
    """The operations the client needs from the remote family document."""

    def get(self) -> FamilyDocument | None: ...

    def set(self, fields: dict[str, Any], merge: bool = True) -> None: ...

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Subscription: ...


def init_firestore(credentials_path: Path) -> Client:
    """Initialize Firebase Admin SDK once and return a Firestore client."""
    try:
        firebase_admin.get_app()
    except ValueError:
        cred = credentials.Certificate(str(credentials_path))
        firebase_admin.initialize_app(cred)
    return firestore.client()


def parse_family_document(data: dict[str, Any]) -> FamilyDocument:
    """Parse a raw Firestore family document."""
    return FamilyDocument.model_validate(firestore_to_dict(data))


class FirestoreFamilyClient:
    """Reads, merge-writes and watches families/{familyId}.

    Every SDK failure surfaces as RemoteUnavailable.
    """

    def __init__(self, db: Client, family_id: str):
        self._db = db
        self._family_id = family_id

    @property
    def family_id(self) -> str:
        return self._family_id

    def _doc_ref(self):
        return self._db.collection("families").document(self._family_id)

    def get(self) -> FamilyDocument | None:
        """Get the family document, or None if it does not exist yet."""
        try:
            doc = self._doc_ref().get()
        except Exception as e:
            raise RemoteUnavailable(f"Failed to read family {self._family_id}") from e
        if not doc.exists:
            return None
        try:
            return parse_family_document(doc.to_dict() or {})
        except ValueError as e:
            raise RemoteUnavailable(f"Unreadable family document {self._family_id}") from e

    def set(self, fields: dict[str, Any], merge: bool = True) -> None:
        """Write fields to the family document, stamping lastUpdated."""
        payload = {**fields, "lastUpdated": SERVER_TIMESTAMP}
        try:
            self._doc_ref().set(payload, merge=merge)
        except Exception as e:
            raise RemoteUnavailable(f"Failed to write family {self._family_id}") from e
        logger.debug("Wrote %s to family %s", ", ".join(sorted(fields)), self._family_id)

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Subscription:
        """Watch the document; on_snapshot fires on every change, own writes included.

        Callbacks run on the SDK's listener thread.
        """

        def callback(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            for snapshot in doc_snapshots:
                if not snapshot.exists:
                    continue
                try:
                    document = parse_family_document(snapshot.to_dict() or {})
                except ValueError as e:
                    on_error(RemoteUnavailable(f"Unreadable snapshot for {self._family_id}: {e}"))
                    continue
                on_snapshot(document)

        try:
            return self._doc_ref().on_snapshot(callback)
        except Exception as e:
            raise RemoteUnavailable(f"Failed to watch family {self._family_id}") from e
