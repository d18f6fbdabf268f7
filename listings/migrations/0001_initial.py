import uuid

from django.db import migrations, models


def listing_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('owner_id', models.CharField(db_index=True, max_length=100)),
        ('name', models.CharField(max_length=255)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Dress',
            fields=listing_fields(),
            options={
                'db_table': 'dresses',
                'verbose_name_plural': 'dresses',
            },
        ),
        migrations.CreateModel(
            name='Hall',
            fields=listing_fields(),
            options={
                'db_table': 'halls',
            },
        ),
        migrations.CreateModel(
            name='ServiceProvider',
            fields=listing_fields(),
            options={
                'db_table': 'service_providers',
            },
        ),
    ]
