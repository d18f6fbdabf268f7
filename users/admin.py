from django.contrib import admin
from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = (
        "user_id",
        "full_name",
        "created_at",
    )
    search_fields = ("user_id", "full_name")
