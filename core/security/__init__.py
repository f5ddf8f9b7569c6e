"""
TalentFlow Core Security Module

Outbound request protection for tenant-configured integrations.
"""

from .ssrf import SSRFProtector, validate_outbound_url

__all__ = [
    'SSRFProtector',
    'validate_outbound_url',
]
