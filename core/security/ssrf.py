"""
SSRF protection for tenant-configured outbound URLs.

Webhook targets are authored by tenants and must never reach the
platform's own network: loopback, private, link-local and cloud
metadata addresses are rejected before any request is made.
"""

import ipaddress
import logging
import socket
import urllib.parse
from typing import Tuple

from django.conf import settings


logger = logging.getLogger(__name__)


class SSRFProtector:
    """
    Protects against Server-Side Request Forgery attacks.

    Validates outbound URLs against blocked schemes, hostnames and
    address ranges, resolving the hostname to catch DNS names that
    point at internal addresses.
    """

    # Private IP ranges to block
    PRIVATE_RANGES = [
        ipaddress.ip_network('0.0.0.0/8'),
        ipaddress.ip_network('10.0.0.0/8'),
        ipaddress.ip_network('172.16.0.0/12'),
        ipaddress.ip_network('192.168.0.0/16'),
        ipaddress.ip_network('127.0.0.0/8'),
        ipaddress.ip_network('169.254.0.0/16'),  # Link-local
        ipaddress.ip_network('::1/128'),  # IPv6 loopback
        ipaddress.ip_network('::/128'),
        ipaddress.ip_network('fc00::/7'),  # IPv6 private
        ipaddress.ip_network('fe80::/10'),  # IPv6 link-local
    ]

    BLOCKED_HOSTNAMES = {
        'localhost', 'localhost.localdomain',
        'metadata.google.internal',  # GCP metadata
        'metadata.internal',
    }

    ALLOWED_SCHEMES = {'http', 'https'}

    def __init__(self, allowed_hosts=None, allowed_domains=None):
        if allowed_hosts is None:
            allowed_hosts = getattr(settings, 'SSRF_ALLOWED_HOSTS', [])
        if allowed_domains is None:
            allowed_domains = getattr(settings, 'SSRF_ALLOWED_DOMAINS', [])
        self.allowed_hosts = {h.lower() for h in allowed_hosts}
        self.allowed_domains = {d.lower() for d in allowed_domains}

    def validate_url(self, url: str) -> Tuple[bool, str]:
        """
        Validate a URL for SSRF safety.

        Args:
            url: The URL to validate

        Returns:
            Tuple of (is_safe, reason if unsafe)
        """
        if not isinstance(url, str) or not url.strip():
            return False, 'Invalid URL format'

        try:
            parsed = urllib.parse.urlparse(url.strip())
            parsed.port  # raises ValueError on a malformed port
        except ValueError:
            return False, 'Invalid URL format'

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            self._log_ssrf_attempt(url, 'blocked_scheme')
            return False, f'Scheme not allowed: {parsed.scheme or "(none)"}'

        hostname = parsed.hostname
        if not hostname:
            return False, 'No hostname specified'
        hostname = hostname.lower()

        if self._is_allowed(hostname):
            return True, ''

        if hostname in self.BLOCKED_HOSTNAMES:
            self._log_ssrf_attempt(url, 'blocked_hostname')
            return False, f'Hostname blocked: {hostname}'

        # IP literals are checked without touching DNS
        try:
            literal = ipaddress.ip_address(hostname)
        except ValueError:
            literal = None
        if literal is not None:
            if self._is_private(literal):
                self._log_ssrf_attempt(url, f'private_ip:{literal}')
                return False, f'Private IP address not allowed: {literal}'
            return True, ''

        return self._check_resolved_ip(hostname, url)

    def _check_resolved_ip(self, hostname: str, url: str) -> Tuple[bool, str]:
        """Check resolved IP addresses against blocked ranges."""
        try:
            infos = socket.getaddrinfo(hostname, None)
        except socket.gaierror:
            # Unresolvable hosts cannot reach anything; the request fails later
            return True, ''

        for info in infos:
            ip_str = info[4][0]
            try:
                ip = ipaddress.ip_address(ip_str)
            except ValueError:
                continue
            if self._is_private(ip):
                self._log_ssrf_attempt(url, f'private_ip:{ip_str}')
                return False, f'Hostname {hostname} resolves to private IP address: {ip_str}'

        return True, ''

    def _is_private(self, ip) -> bool:
        if getattr(ip, 'ipv4_mapped', None):
            ip = ip.ipv4_mapped
        return any(ip in network for network in self.PRIVATE_RANGES if ip.version == network.version)

    def _is_allowed(self, hostname: str) -> bool:
        """Check if hostname is in the operator allowlist."""
        if hostname in self.allowed_hosts:
            return True
        for domain in self.allowed_domains:
            if hostname.endswith('.' + domain) or hostname == domain:
                return True
        return False

    def _log_ssrf_attempt(self, url: str, reason: str):
        logger.warning(f"SSRF attempt blocked: {reason} ({url})")


def validate_outbound_url(url: str) -> Tuple[bool, str]:
    """Shortcut for ``SSRFProtector().validate_url(url)``."""
    return SSRFProtector().validate_url(url)
