# Generated manually for automations initial migration

from django.db import migrations, models
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='AutomationRule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('trigger_event', models.CharField(choices=[('APPLICATION_SUBMITTED', 'Application submitted'), ('APPLICATION_STAGE_CHANGED', 'Application stage changed'), ('APPLICATION_UPDATED', 'Application updated'), ('INTERVIEW_SCHEDULED', 'Interview scheduled'), ('INTERVIEW_COMPLETED', 'Interview completed'), ('INTERVIEW_CANCELLED', 'Interview cancelled'), ('MESSAGE_RECEIVED', 'Message received'), ('JOB_PUBLISHED', 'Job published'), ('JOB_DEADLINE_APPROACHING', 'Job deadline approaching'), ('FEEDBACK_SUBMITTED', 'Feedback submitted')], max_length=50)),
                ('conditions', models.JSONField(blank=True, default=list)),
                ('actions', models.JSONField(default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('is_template', models.BooleanField(default=False)),
                ('priority', models.IntegerField(default=0)),
                ('max_executions_per_hour', models.PositiveIntegerField(blank=True, null=True)),
                ('max_executions_per_day', models.PositiveIntegerField(blank=True, null=True)),
                ('cooldown_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('executions_this_hour', models.PositiveIntegerField(default=0)),
                ('executions_today', models.PositiveIntegerField(default=0)),
                ('last_execution_time', models.DateTimeField(blank=True, null=True)),
                ('hour_reset_at', models.DateTimeField(blank=True, null=True)),
                ('day_reset_at', models.DateTimeField(blank=True, null=True)),
                ('recent_logs', models.JSONField(blank=True, default=list)),
                ('execution_count', models.PositiveIntegerField(default=0)),
                ('success_count', models.PositiveIntegerField(default=0)),
                ('failure_count', models.PositiveIntegerField(default=0)),
                ('last_executed_at', models.DateTimeField(blank=True, null=True)),
                ('last_success_at', models.DateTimeField(blank=True, null=True)),
                ('last_failure_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.CharField(blank=True, max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Automation Rule',
                'verbose_name_plural': 'Automation Rules',
                'ordering': ['-priority', 'created_at'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'is_active'], name='auto_rule_tenant_active_idx'),
                    models.Index(fields=['trigger_event', 'is_active'], name='auto_rule_event_active_idx'),
                    models.Index(fields=['is_template', 'is_active'], name='auto_rule_template_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProcessedEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.CharField(max_length=64)),
                ('event_type', models.CharField(max_length=50)),
                ('entity_id', models.CharField(max_length=255)),
                ('event_id', models.CharField(blank=True, max_length=64)),
                ('processed_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Processed Event',
                'verbose_name_plural': 'Processed Events',
                'constraints': [
                    models.UniqueConstraint(fields=('tenant_id', 'event_type', 'entity_id'), name='unique_processed_event'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FailedTrigger',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_id', models.CharField(db_index=True, max_length=64)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('event_type', models.CharField(max_length=50)),
                ('payload', models.JSONField(blank=True, default=dict)),
                ('context', models.JSONField(blank=True, default=dict)),
                ('error', models.TextField(blank=True)),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('task_id', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('requeued', 'Requeued')], default='pending', max_length=20)),
                ('requeued_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Failed Trigger',
                'verbose_name_plural': 'Failed Triggers',
                'ordering': ['-created_at'],
            },
        ),
    ]
