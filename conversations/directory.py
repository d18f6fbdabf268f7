import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from farah.exceptions import IdentityError
from listings.services import owner_for
from users.models import Profile

from .context import NO_LISTING
from .exceptions import ChatValidationError, ConversationNotFound
from .models import Conversation, make_pair_key

logger = logging.getLogger(__name__)


class ConversationDirectory:
    """
    Resolves participant pairs to their canonical conversation row.

    Every call takes the caller's user id explicitly; nothing is read from
    ambient request state.
    """

    @staticmethod
    def get_or_create(current_user_id, other_user_id, context=None):
        """
        Return ``(conversation, created)`` for the pair and listing context.

        The pair is unordered. "No context" is its own partition, so a
        context-free conversation never merges with a listing-scoped one.
        A concurrent insert for the same key trips the unique constraint and
        is recovered by re-selecting the winner's row.
        """
        if not current_user_id:
            raise IdentityError()
        if not other_user_id:
            raise ChatValidationError("The other participant is required.")
        current_user_id, other_user_id = str(current_user_id), str(other_user_id)
        if current_user_id == other_user_id:
            raise ChatValidationError("You cannot start a conversation with yourself.")

        context = context or NO_LISTING
        lookup = {
            'pair_key': make_pair_key(current_user_id, other_user_id),
            'context_key': context.key,
        }

        existing = Conversation.objects.filter(**lookup).first()
        if existing:
            return existing, False

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    participant_1=current_user_id,
                    participant_2=other_user_id,
                    **context.as_fields(),
                )
        except IntegrityError:
            logger.info(
                "Conversation created concurrently, re-selecting",
                extra={'pair_key': lookup['pair_key'], 'context_key': lookup['context_key']},
            )
            return Conversation.objects.get(**lookup), False

        logger.info(
            "Conversation created",
            extra={'conversation_id': str(conversation.id), 'context_key': context.key},
        )
        return conversation, True

    @staticmethod
    def list(current_user_id):
        """
        All conversations of the user, most recently active first.

        Each row is annotated with ``other_participant_id`` and
        ``other_participant`` (display name and avatar).
        """
        if not current_user_id:
            raise IdentityError()

        conversations = list(
            Conversation.objects.filter(
                Q(participant_1=current_user_id) | Q(participant_2=current_user_id)
            ).order_by('-updated_at', '-created_at')
        )

        other_ids = [c.other_participant(current_user_id) for c in conversations]
        profiles = Profile.objects.display_for(other_ids)
        for conversation, other_id in zip(conversations, other_ids):
            conversation.other_participant_id = other_id
            conversation.other_participant = profiles[other_id]
        return conversations

    @staticmethod
    def get_for_participant(conversation_id, user_id):
        """Fetch a conversation the user takes part in, else ConversationNotFound."""
        if not user_id:
            raise IdentityError()
        try:
            return Conversation.objects.get(
                Q(participant_1=user_id) | Q(participant_2=user_id),
                id=conversation_id,
            )
        except (Conversation.DoesNotExist, ValidationError, ValueError):
            raise ConversationNotFound()

    @staticmethod
    def resolve_counterpart(context):
        """Owner of the listing a conversation is opened from."""
        if context is None or context.kind is None:
            raise ChatValidationError("Either the other participant or a listing is required.")
        owner_id = owner_for(context.kind, context.listing_id)
        if not owner_id:
            raise ChatValidationError("Listing not found.")
        return owner_id
