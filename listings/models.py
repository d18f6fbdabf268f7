import uuid

from django.db import models


class Listing(models.Model):
    """A marketplace listing a conversation can be started from."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.CharField(max_length=100, db_index=True)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.name


class Hall(Listing):
    class Meta:
        db_table = 'halls'


class Dress(Listing):
    class Meta:
        db_table = 'dresses'
        verbose_name_plural = 'dresses'


class ServiceProvider(Listing):
    class Meta:
        db_table = 'service_providers'
