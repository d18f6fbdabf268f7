import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('participant_1', models.CharField(db_index=True, max_length=100)),
                ('participant_2', models.CharField(db_index=True, max_length=100)),
                ('pair_key', models.CharField(editable=False, max_length=201)),
                ('provider_id', models.CharField(blank=True, max_length=100, null=True)),
                ('hall_id', models.CharField(blank=True, max_length=100, null=True)),
                ('dress_id', models.CharField(blank=True, max_length=100, null=True)),
                ('context_key', models.CharField(default='none', editable=False, max_length=120)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'conversations',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='conversation',
            constraint=models.UniqueConstraint(
                fields=('pair_key', 'context_key'),
                name='unique_conversation_per_pair_and_context',
            ),
        ),
        migrations.CreateModel(
            name='ChatMessage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sender_id', models.CharField(max_length=100)),
                ('content', models.TextField(blank=True, default='')),
                ('images', models.JSONField(blank=True, default=list)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('conversation', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='messages',
                    to='conversations.conversation',
                )),
            ],
            options={
                'db_table': 'chat_messages',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['conversation', 'created_at'], name='chat_msg_conv_created_idx'),
                    models.Index(fields=['sender_id', 'is_read'], name='chat_msg_sender_read_idx'),
                ],
            },
        ),
    ]
