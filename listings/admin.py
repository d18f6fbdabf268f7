from django.contrib import admin
from .models import Dress, Hall, ServiceProvider


@admin.register(Hall, Dress, ServiceProvider)
class ListingAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'owner_id', 'created_at']
    search_fields = ['name', 'owner_id']
