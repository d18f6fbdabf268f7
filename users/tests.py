from django.test import TestCase

from .models import FALLBACK_DISPLAY_NAME, Profile


class ProfileDisplayTestCase(TestCase):
    def setUp(self):
        Profile.objects.create(
            user_id="bride-1",
            full_name="Sara Ahmed",
            avatar_url="https://cdn.example.com/sara.png",
        )
        Profile.objects.create(user_id="vendor-1", full_name="")

    def test_display_for_known_profile(self):
        display = Profile.objects.display_for(["bride-1"])
        self.assertEqual(display["bride-1"]["full_name"], "Sara Ahmed")
        self.assertEqual(display["bride-1"]["avatar_url"], "https://cdn.example.com/sara.png")

    def test_blank_name_falls_back(self):
        display = Profile.objects.display_for(["vendor-1"])
        self.assertEqual(display["vendor-1"]["full_name"], FALLBACK_DISPLAY_NAME)

    def test_missing_profile_falls_back(self):
        display = Profile.objects.display_for(["ghost"])
        self.assertEqual(display["ghost"], {"full_name": FALLBACK_DISPLAY_NAME, "avatar_url": None})
