"""Firestore data models for the TV time tracker.

These models define the schema of the shared family document.
Every device syncing a family must conform to this schema.
"""

from datetime import datetime
from typing import Annotated, Final

from pydantic import BaseModel, ConfigDict, Field

from .firestore import to_camel

CHORE_TIMES: Final = (5, 10, 15, 30, 60)


class Child(BaseModel):
    """One tracked child and their TV time balance in minutes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: Annotated[str, Field(min_length=1)]
    time_balance: Annotated[int, Field(ge=0)] = 0
    created_at: datetime | None = None


class Chore(BaseModel):
    """A named shortcut that grants a fixed amount of time."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: Annotated[str, Field(min_length=1)]
    time: Annotated[int, Field(gt=0)]


class FamilyDocument(BaseModel):
    """Firestore: families/{familyId}

    Fields are None when absent from the document so that a partial
    document can be told apart from an empty collection.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    children: list[Child] | None = None
    custom_chores: list[Chore] | None = None
    last_midnight_check: str | None = None
    last_updated: datetime | None = None
