"""Domain models for actors."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    """Identity against which entitlements are evaluated.

    An actor without an id is a guest. Guests never hold server-side unlocks.
    """

    id: UUID | None

    @classmethod
    def guest(cls) -> "Actor":
        """Return the anonymous actor."""
        return cls(id=None)

    @property
    def is_guest(self) -> bool:
        return self.id is None
