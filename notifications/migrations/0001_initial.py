# Generated manually for notifications initial migration

from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('tenant_id', models.CharField(blank=True, db_index=True, max_length=64)),
                ('recipient_id', models.CharField(db_index=True, max_length=64)),
                ('recipient_role', models.CharField(default='applicant', max_length=20)),
                ('notification_type', models.CharField(default='automation', max_length=100)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField(blank=True)),
                ('action_url', models.CharField(blank=True, max_length=500)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('urgent', 'Urgent')], default='normal', max_length=10)),
                ('related_entity_type', models.CharField(blank=True, max_length=50)),
                ('related_entity_id', models.CharField(blank=True, max_length=64)),
                ('job_id', models.CharField(blank=True, max_length=64)),
                ('application_id', models.CharField(blank=True, max_length=64)),
                ('context_data', models.JSONField(blank=True, default=dict)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient_id', 'is_read'], name='notif_recipient_read_idx'),
                ],
            },
        ),
    ]
