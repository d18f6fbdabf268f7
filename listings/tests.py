from django.test import TestCase

from .models import Dress, Hall, ServiceProvider
from .services import owner_for


class OwnerForTestCase(TestCase):
    def test_owner_of_each_kind(self):
        provider = ServiceProvider.objects.create(owner_id="vendor-1", name="Noor Studio")
        hall = Hall.objects.create(owner_id="vendor-2", name="Rose Hall")
        dress = Dress.objects.create(owner_id="vendor-3", name="Ivory Gown")

        self.assertEqual(owner_for('provider', provider.id), "vendor-1")
        self.assertEqual(owner_for('hall', hall.id), "vendor-2")
        self.assertEqual(owner_for('dress', str(dress.id)), "vendor-3")

    def test_missing_listing(self):
        hall = Hall.objects.create(owner_id="vendor-2", name="Rose Hall")
        # Same id, other kind
        self.assertIsNone(owner_for('dress', hall.id))

    def test_malformed_id(self):
        self.assertIsNone(owner_for('hall', "not-a-uuid"))

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            owner_for('venue', "x")
