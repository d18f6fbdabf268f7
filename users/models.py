from django.db import models

FALLBACK_DISPLAY_NAME = "User"


class ProfileQuerySet(models.QuerySet):
    def display_for(self, user_ids):
        """Map each user id to its display identity; unknown ids get the fallback."""
        user_ids = set(user_ids)
        found = {
            profile.user_id: profile.as_display()
            for profile in self.filter(user_id__in=user_ids)
        }
        for user_id in user_ids - found.keys():
            found[user_id] = {"full_name": FALLBACK_DISPLAY_NAME, "avatar_url": None}
        return found


class Profile(models.Model):
    user_id = models.CharField(max_length=100, unique=True, primary_key=True)
    full_name = models.CharField(max_length=255, null=True, blank=True)
    avatar_url = models.URLField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProfileQuerySet.as_manager()

    class Meta:
        db_table = 'profiles'
        indexes = [
            models.Index(fields=['full_name'], name='profiles_full_name_idx'),
        ]

    def as_display(self):
        return {
            "full_name": self.full_name or FALLBACK_DISPLAY_NAME,
            "avatar_url": self.avatar_url,
        }

    def __str__(self):
        return f"{self.full_name} ({self.user_id})"
