from .models import (
    CHORE_TIMES,
    Child,
    Chore,
    FamilyDocument,
)

__all__ = [
    "CHORE_TIMES",
    "Child",
    "Chore",
    "FamilyDocument",
]
