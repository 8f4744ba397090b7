"""Wires the client components around one application context."""

import logging
from collections.abc import Callable
from datetime import datetime

from tvtime_shared import FamilyDocument

from .bonus import BonusScheduler, CallLater
from .chores import ChoreBook
from .config import Config
from .context import AppContext
from .family import get_or_create_family_id
from .firebase_client import FirestoreFamilyClient, RemoteDocument, init_firestore
from .ledger import TimeLedger
from .persistence import PersistenceGateway
from .reconciler import Reconciler
from .selector import AmountSelector
from .store import LocalStore

logger = logging.getLogger(__name__)


class TVTimeApp:
    """One running instance of the tracker for one family."""

    def __init__(
        self,
        config: Config,
        store: LocalStore,
        remote: RemoteDocument | None = None,
        clock: Callable[[], datetime] = datetime.now,
        call_later: CallLater | None = None,
    ):
        self.config = config
        self.store = store
        self.family_id = get_or_create_family_id(store)
        self.gateway = PersistenceGateway(store, remote)
        self.context = AppContext(self.gateway)
        self.ledger = TimeLedger(self.context)
        self.chores = ChoreBook(self.context, self.ledger)
        self.selector = AmountSelector(self.ledger)
        self.scheduler = BonusScheduler(
            self.context,
            self.ledger,
            bonus_minutes=config.daily_bonus_minutes,
            max_days=config.max_bonus_days,
            poll_interval_seconds=config.poll_interval_seconds,
            settle_delay_seconds=config.settle_delay_seconds,
            clock=clock,
            call_later=call_later,
        )
        self.reconciler = Reconciler(self.context, self.ledger, self.chores, clock=clock)

    def load(self, document: FamilyDocument | None) -> None:
        """Load children and chores, preferring the remote document."""
        self.ledger.load(self.gateway.load_children(document))
        self.chores.load(self.gateway.load_chores(document))
        logger.info(
            "Loaded %d children and %d chores (%s)",
            len(self.ledger.children),
            len(self.chores.chores),
            self.gateway.sync_status,
        )


def create_app(config: Config) -> TVTimeApp:
    """Build the app, connecting to Firestore when credentials are configured."""
    store = LocalStore(config.data_dir)
    remote: RemoteDocument | None = None
    if config.firebase_credentials_path is not None:
        family_id = get_or_create_family_id(store)
        try:
            db = init_firestore(config.firebase_credentials_path)
        except Exception:
            logger.warning("Firebase not available - running in local-only mode", exc_info=True)
        else:
            remote = FirestoreFamilyClient(db, family_id)
            logger.info("Firebase sync enabled for family: %s", family_id)
    else:
        logger.info("Firebase not configured - running in local-only mode")
    return TVTimeApp(config, store, remote)
