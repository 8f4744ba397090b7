"""Family identifier: the token that pairs devices on one shared document."""

import logging
import secrets
import string
import time

from .errors import ValidationError
from .store import FAMILY_ID_KEY, LocalStore

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_family_id() -> str:
    """Create a new identifier such as family_1718000000000_k3j9x0a1b."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"family_{int(time.time() * 1000)}_{suffix}"


def get_or_create_family_id(store: LocalStore) -> str:
    """Return this device's family identifier, creating it on first use."""
    family_id = store.get(FAMILY_ID_KEY)
    if not family_id:
        family_id = generate_family_id()
        store.set(FAMILY_ID_KEY, family_id)
        logger.info("Created family id %s", family_id)
    return family_id


def set_family_id(store: LocalStore, family_id: str) -> str:
    """Join another family's shared record. Takes effect on next start."""
    family_id = family_id.strip()
    if not family_id:
        raise ValidationError("Please enter a Family ID")
    store.set(FAMILY_ID_KEY, family_id)
    logger.info("Family id set to %s", family_id)
    return family_id
