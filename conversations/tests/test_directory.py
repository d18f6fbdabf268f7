from unittest.mock import MagicMock, patch

from django.test import TestCase

from conversations.context import ConversationContext
from conversations.directory import ConversationDirectory
from conversations.exceptions import ChatValidationError, ConversationNotFound
from conversations.models import Conversation
from farah.exceptions import IdentityError
from listings.models import Hall
from users.models import Profile


class GetOrCreateTest(TestCase):
    def setUp(self):
        self.bride = "bride-1"
        self.vendor = "vendor-1"

    def test_sequential_calls_return_same_conversation(self):
        """Test that get-or-create is idempotent for a fixed pair and context"""
        context = ConversationContext(provider_id="p1")
        first, created_first = ConversationDirectory.get_or_create(self.bride, self.vendor, context)
        second, created_second = ConversationDirectory.get_or_create(self.bride, self.vendor, context)

        self.assertTrue(created_first)
        self.assertFalse(created_second)
        self.assertEqual(first.id, second.id)
        self.assertEqual(Conversation.objects.count(), 1)

    def test_either_participant_order_matches(self):
        """Test that the pair is matched in either assignment order"""
        first, _ = ConversationDirectory.get_or_create(self.bride, self.vendor)
        second, created = ConversationDirectory.get_or_create(self.vendor, self.bride)

        self.assertFalse(created)
        self.assertEqual(first.id, second.id)

    def test_contexts_partition_conversations(self):
        """Test that different contexts, including no context, never share a conversation"""
        by_provider, _ = ConversationDirectory.get_or_create(self.bride, self.vendor, ConversationContext(provider_id="p1"))
        by_other_provider, _ = ConversationDirectory.get_or_create(self.bride, self.vendor, ConversationContext(provider_id="p2"))
        by_hall, _ = ConversationDirectory.get_or_create(self.bride, self.vendor, ConversationContext(hall_id="p1"))
        no_context, _ = ConversationDirectory.get_or_create(self.bride, self.vendor)

        ids = {by_provider.id, by_other_provider.id, by_hall.id, no_context.id}
        self.assertEqual(len(ids), 4)

    def test_context_is_stored(self):
        conversation, _ = ConversationDirectory.get_or_create(self.bride, self.vendor, ConversationContext(dress_id="d9"))
        self.assertEqual(conversation.dress_id, "d9")
        self.assertIsNone(conversation.provider_id)
        self.assertIsNone(conversation.hall_id)

    def test_conversation_with_self_rejected(self):
        with self.assertRaises(ChatValidationError):
            ConversationDirectory.get_or_create(self.bride, self.bride)

    def test_missing_identity_rejected(self):
        with self.assertRaises(IdentityError):
            ConversationDirectory.get_or_create(None, self.vendor)

    def test_create_conflict_reselects_existing_row(self):
        """Test that losing a creation race returns the row the winner inserted"""
        winner = Conversation.objects.create(participant_1=self.vendor, participant_2=self.bride, provider_id="p1")

        # The lookup misses (the winner has not committed yet when we check).
        missed_lookup = MagicMock()
        missed_lookup.first.return_value = None
        with patch.object(Conversation.objects, 'filter', return_value=missed_lookup):
            conversation, created = ConversationDirectory.get_or_create(
                self.bride, self.vendor, ConversationContext(provider_id="p1")
            )

        self.assertFalse(created)
        self.assertEqual(conversation.id, winner.id)
        self.assertEqual(Conversation.objects.count(), 1)

    def test_does_not_send_a_message(self):
        conversation, _ = ConversationDirectory.get_or_create(self.bride, self.vendor)
        self.assertEqual(conversation.messages.count(), 0)


class ListConversationsTest(TestCase):
    def setUp(self):
        self.bride = "bride-1"
        Profile.objects.create(user_id="vendor-1", full_name="Noor Studio", avatar_url="https://cdn.example.com/noor.png")
        self.older, _ = ConversationDirectory.get_or_create(self.bride, "vendor-1")
        self.newer, _ = ConversationDirectory.get_or_create("vendor-2", self.bride)
        self.unrelated, _ = ConversationDirectory.get_or_create("vendor-1", "vendor-2")

    def test_lists_only_own_conversations_newest_first(self):
        """Test that only the user's conversations are listed, by updated_at descending"""
        conversations = ConversationDirectory.list(self.bride)
        self.assertEqual([c.id for c in conversations], [self.newer.id, self.older.id])

    def test_annotates_other_participant(self):
        """Test that each row carries the other side's display identity"""
        conversations = {c.id: c for c in ConversationDirectory.list(self.bride)}

        self.assertEqual(conversations[self.older.id].other_participant_id, "vendor-1")
        self.assertEqual(conversations[self.older.id].other_participant["full_name"], "Noor Studio")
        self.assertEqual(conversations[self.newer.id].other_participant_id, "vendor-2")
        self.assertEqual(conversations[self.newer.id].other_participant["full_name"], "User")


class ParticipantAccessTest(TestCase):
    def setUp(self):
        self.conversation, _ = ConversationDirectory.get_or_create("bride-1", "vendor-1")

    def test_participant_can_fetch(self):
        fetched = ConversationDirectory.get_for_participant(self.conversation.id, "vendor-1")
        self.assertEqual(fetched.id, self.conversation.id)

    def test_outsider_cannot_fetch(self):
        with self.assertRaises(ConversationNotFound):
            ConversationDirectory.get_for_participant(self.conversation.id, "stranger")

    def test_malformed_id_is_not_found(self):
        with self.assertRaises(ConversationNotFound):
            ConversationDirectory.get_for_participant("not-a-uuid", "bride-1")


class ResolveCounterpartTest(TestCase):
    def test_listing_owner_is_counterpart(self):
        hall = Hall.objects.create(owner_id="hall-owner", name="Crystal Hall")
        owner = ConversationDirectory.resolve_counterpart(ConversationContext(hall_id=str(hall.id)))
        self.assertEqual(owner, "hall-owner")

    def test_unknown_listing_rejected(self):
        with self.assertRaises(ChatValidationError):
            ConversationDirectory.resolve_counterpart(ConversationContext(hall_id="00000000-0000-0000-0000-000000000000"))

    def test_no_context_rejected(self):
        with self.assertRaises(ChatValidationError):
            ConversationDirectory.resolve_counterpart(ConversationContext())
