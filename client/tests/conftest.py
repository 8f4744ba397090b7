"""Shared fixtures: temporary store, fake remote document, fake clock and timers."""

from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from tvtime_shared import FamilyDocument
from tvtime_client.app import TVTimeApp
from tvtime_client.config import Config
from tvtime_client.errors import RemoteUnavailable
from tvtime_client.store import LocalStore


class FakeSubscription:
    def __init__(self, remote: "FakeRemote", entry: tuple[Any, Any]):
        self._remote = remote
        self._entry = entry

    def unsubscribe(self) -> None:
        if self._entry in self._remote.subscribers:
            self._remote.subscribers.remove(self._entry)


class FakeRemote:
    """In-memory stand-in for the Firestore family document."""

    def __init__(self, document: FamilyDocument | None = None):
        self.document = document
        self.writes: list[dict[str, Any]] = []
        self.subscribers: list[tuple[Any, Any]] = []
        self.fail = False

    def get(self) -> FamilyDocument | None:
        if self.fail:
            raise RemoteUnavailable("offline")
        return self.document

    def set(self, fields: dict[str, Any], merge: bool = True) -> None:
        if self.fail:
            raise RemoteUnavailable("offline")
        self.writes.append(fields)

    def subscribe(self, on_snapshot, on_error) -> FakeSubscription:
        if self.fail:
            raise RemoteUnavailable("offline")
        entry = (on_snapshot, on_error)
        self.subscribers.append(entry)
        return FakeSubscription(self, entry)

    def push(self, document: FamilyDocument) -> None:
        for on_snapshot, _ in list(self.subscribers):
            on_snapshot(document)

    def push_error(self, error: Exception) -> None:
        for _, on_error in list(self.subscribers):
            on_error(error)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeTimers:
    """Collects call_later requests so tests decide when they fire."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self.scheduled.append((delay, callback))

    def fire_all(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            callback()


@pytest.fixture
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "data")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 15, 9, 30))


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def make_app(
    tmp_path: Path, store: LocalStore, clock: FakeClock, timers: FakeTimers
) -> Callable[..., TVTimeApp]:
    def factory(remote: FakeRemote | None = None, **config: Any) -> TVTimeApp:
        return TVTimeApp(
            Config(data_dir=tmp_path / "data", **config),
            store,
            remote,
            clock=clock,
            call_later=timers.call_later,
        )

    return factory


@pytest.fixture
def app(make_app: Callable[..., TVTimeApp]) -> TVTimeApp:
    return make_app()
