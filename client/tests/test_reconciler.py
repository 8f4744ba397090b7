"""Tests for reconciling remote snapshots with local state."""

import asyncio
from datetime import datetime

from conftest import FakeClock, FakeRemote, FakeTimers

from tvtime_shared import Child, Chore, FamilyDocument
from tvtime_client.app import TVTimeApp
from tvtime_client.persistence import SyncStatus
from tvtime_client.reconciler import Decision, RemoteError, RemoteEvent, RemoteSnapshot
from tvtime_client.store import LAST_MIDNIGHT_CHECK_KEY


def _remote_children(*balances: int) -> list[Child]:
    return [
        Child(id=str(i), name=f"Kid {i}", time_balance=balance, created_at=datetime(2024, 1, 1))
        for i, balance in enumerate(balances)
    ]


def _seed_local(app: TVTimeApp, balance: int, last_check: str | None) -> None:
    child = app.ledger.add_person("Local")
    app.ledger.adjust_time(child.id, "add", balance)  # type: ignore[arg-type]
    if last_check is not None:
        app.store.set(LAST_MIDNIGHT_CHECK_KEY, last_check)


def _local_balances(app: TVTimeApp) -> list[int]:
    return [c.time_balance for c in app.ledger.children]


class TestProcessingGuard:
    def test_push_ignored_while_bonus_in_flight(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")
        app.context.is_processing_bonus = True

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(5), last_midnight_check="2024-01-15")
        )

        assert decision is Decision.IGNORED_PROCESSING
        assert _local_balances(app) == [40]

    def test_push_during_bonus_settle_is_ignored(
        self, app: TVTimeApp, timers: FakeTimers
    ) -> None:
        _seed_local(app, 0, "2024-01-14")
        app.scheduler.check_daily_bonus()
        assert _local_balances(app) == [30]

        stale = FamilyDocument(children=_remote_children(0), last_midnight_check="2024-01-14")
        assert app.reconciler.handle_children(stale) is Decision.IGNORED_PROCESSING
        assert _local_balances(app) == [30]

        timers.fire_all()
        assert app.reconciler.handle_children(stale) is Decision.IGNORED_STALE
        assert _local_balances(app) == [30]

    def test_flag_checked_when_push_is_handled(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, None)
        app.context.is_processing_bonus = True
        document = FamilyDocument(children=_remote_children(5))
        assert app.reconciler.handle_children(document) is Decision.IGNORED_PROCESSING

        app.context.is_processing_bonus = False
        assert app.reconciler.handle_children(document) is Decision.ACCEPTED
        assert _local_balances(app) == [5]


class TestLastCheckComparison:
    def test_remote_without_check_date_ignored_when_local_is_today(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")

        decision = app.reconciler.handle_children(FamilyDocument(children=_remote_children(5)))

        assert decision is Decision.IGNORED_STALE
        assert _local_balances(app) == [40]

    def test_older_remote_ignored_when_local_is_today(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(5), last_midnight_check="2024-01-14")
        )

        assert decision is Decision.IGNORED_STALE
        assert _local_balances(app) == [40]

    def test_invalid_remote_date_counts_as_absent(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(5), last_midnight_check="garbage")
        )

        assert decision is Decision.IGNORED_STALE

    def test_remote_from_today_accepted(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(70, 25), last_midnight_check="2024-01-15")
        )

        assert decision is Decision.ACCEPTED
        assert _local_balances(app) == [70, 25]

    def test_web_client_timestamp_from_today_accepted(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-15")

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(70), last_midnight_check="2024-01-15T00:00:00")
        )

        assert decision is Decision.ACCEPTED

    def test_any_remote_accepted_when_local_is_behind(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, "2024-01-13")

        decision = app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(5), last_midnight_check="2024-01-10")
        )

        assert decision is Decision.ACCEPTED
        assert _local_balances(app) == [5]
        assert app.store.get(LAST_MIDNIGHT_CHECK_KEY) == "2024-01-13"

    def test_document_without_children_ignored(self, app: TVTimeApp) -> None:
        _seed_local(app, 40, None)

        decision = app.reconciler.handle_children(FamilyDocument(last_midnight_check="2024-01-15"))

        assert decision is Decision.IGNORED_EMPTY
        assert _local_balances(app) == [40]


class TestAcceptance:
    def test_accepted_children_stored_locally_without_remote_write(self, make_app) -> None:
        remote = FakeRemote()
        app = make_app(remote)
        _seed_local(app, 40, None)
        remote.writes.clear()

        app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(12), last_midnight_check="2024-01-15")
        )

        assert remote.writes == []
        assert [c.time_balance for c in app.gateway.load_children()] == [12]

    def test_adopts_newer_remote_check_date_locally(self, app: TVTimeApp) -> None:
        _seed_local(app, 0, "2024-01-14")

        app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(30), last_midnight_check="2024-01-15")
        )

        assert app.store.get(LAST_MIDNIGHT_CHECK_KEY) == "2024-01-15"

    def test_no_double_credit_after_remote_bonus(self, app: TVTimeApp) -> None:
        _seed_local(app, 0, "2024-01-14")
        app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(30), last_midnight_check="2024-01-15")
        )

        assert app.scheduler.check_daily_bonus() == 0
        assert _local_balances(app) == [30]

    def test_future_remote_check_date_not_adopted(self, app: TVTimeApp) -> None:
        _seed_local(app, 0, "2024-01-14")

        app.reconciler.handle_children(
            FamilyDocument(children=_remote_children(30), last_midnight_check="2024-03-01")
        )

        assert app.store.get(LAST_MIDNIGHT_CHECK_KEY) == "2024-01-14"

    def test_acceptance_notifies_display(self, app: TVTimeApp) -> None:
        renders: list[int] = []
        app.context.add_listener(lambda: renders.append(1))

        app.reconciler.handle_children(FamilyDocument(children=_remote_children(1)))

        assert renders == [1]


class TestChores:
    def test_remote_chores_replace_local(self, app: TVTimeApp) -> None:
        app.chores.add("Dishes", 15)
        remote_chores = [Chore(id="9", name="Laundry", time=10)]

        app.reconciler.handle(RemoteSnapshot(FamilyDocument(custom_chores=remote_chores)))

        assert [c.name for c in app.chores.chores] == ["Laundry"]
        assert [c.name for c in app.gateway.load_chores()] == ["Laundry"]

    def test_chores_sync_even_while_bonus_in_flight(self, app: TVTimeApp) -> None:
        app.context.is_processing_bonus = True
        document = FamilyDocument(
            children=_remote_children(1), custom_chores=[Chore(id="9", name="Laundry", time=10)]
        )

        decision = app.reconciler.handle(RemoteSnapshot(document))

        assert decision is Decision.IGNORED_PROCESSING
        assert [c.name for c in app.chores.chores] == ["Laundry"]

    def test_missing_chores_field_keeps_local(self, app: TVTimeApp) -> None:
        app.chores.add("Dishes", 15)

        app.reconciler.handle(RemoteSnapshot(FamilyDocument()))

        assert [c.name for c in app.chores.chores] == ["Dishes"]


def test_remote_error_switches_to_local_mode(make_app) -> None:
    app = make_app(FakeRemote())
    assert app.gateway.sync_status is SyncStatus.SYNCING

    assert app.reconciler.handle(RemoteError(RuntimeError("permission denied"))) is None
    assert app.gateway.sync_status is SyncStatus.LOCAL

    app.reconciler.handle(RemoteSnapshot(FamilyDocument()))
    assert app.gateway.sync_status is SyncStatus.SYNCING


def test_consume_handles_events_in_order(app: TVTimeApp, clock: FakeClock) -> None:
    async def scenario() -> None:
        channel: asyncio.Queue[RemoteEvent] = asyncio.Queue()
        consumer = asyncio.create_task(app.reconciler.consume(channel))
        channel.put_nowait(RemoteSnapshot(FamilyDocument(children=_remote_children(1))))
        channel.put_nowait(RemoteError(RuntimeError("blip")))
        channel.put_nowait(RemoteSnapshot(FamilyDocument(children=_remote_children(2))))
        await channel.join()
        consumer.cancel()

    asyncio.run(scenario())

    assert _local_balances(app) == [2]
