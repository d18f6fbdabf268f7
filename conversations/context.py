from dataclasses import dataclass
from typing import Optional

from .exceptions import ChatValidationError

CONTEXT_KINDS = ('provider', 'hall', 'dress')
NO_CONTEXT = 'none'


@dataclass(frozen=True)
class ConversationContext:
    """The listing a conversation was started from, if any."""

    provider_id: Optional[str] = None
    hall_id: Optional[str] = None
    dress_id: Optional[str] = None

    def __post_init__(self):
        if len(self._present()) > 1:
            raise ChatValidationError("A conversation can be scoped to at most one listing.")

    def _present(self):
        return [
            (kind, str(value))
            for kind, value in zip(CONTEXT_KINDS, (self.provider_id, self.hall_id, self.dress_id))
            if value
        ]

    @property
    def kind(self):
        present = self._present()
        return present[0][0] if present else None

    @property
    def listing_id(self):
        present = self._present()
        return present[0][1] if present else None

    @property
    def key(self):
        if self.kind is None:
            return NO_CONTEXT
        return f"{self.kind}:{self.listing_id}"

    def as_fields(self):
        """Column values for a Conversation row."""
        return {
            'provider_id': str(self.provider_id) if self.provider_id else None,
            'hall_id': str(self.hall_id) if self.hall_id else None,
            'dress_id': str(self.dress_id) if self.dress_id else None,
        }

    @classmethod
    def from_data(cls, data):
        """Build a context from request data using the ``provider_id``/``hall_id``/``dress_id`` keys."""
        if data is None:
            return cls()
        return cls(
            provider_id=data.get('provider_id') or None,
            hall_id=data.get('hall_id') or None,
            dress_id=data.get('dress_id') or None,
        )


NO_LISTING = ConversationContext()
