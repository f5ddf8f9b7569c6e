"""
Automations App Configuration.
"""

from django.apps import AppConfig


class AutomationsConfig(AppConfig):
    """Configuration for the automations app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'automations'
    verbose_name = 'Automations'
