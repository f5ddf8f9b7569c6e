"""
Tests for outbound URL validation.
"""

import socket
from unittest.mock import patch

import pytest

from core.security.ssrf import SSRFProtector, validate_outbound_url


@pytest.fixture
def protector():
    return SSRFProtector(allowed_hosts=[], allowed_domains=[])


def resolves_to(*addresses):
    return patch(
        'core.security.ssrf.socket.getaddrinfo',
        return_value=[(socket.AF_INET, socket.SOCK_STREAM, 6, '', (addr, 0)) for addr in addresses],
    )


class TestSSRFProtector:

    @pytest.mark.parametrize('url', [
        'http://127.0.0.1/admin',
        'http://10.1.2.3/',
        'http://172.16.0.5:8080/',
        'http://192.168.1.1/',
        'http://169.254.169.254/latest/meta-data/',
        'http://[::1]/',
        'http://0.0.0.0/',
    ])
    def test_private_literals_blocked(self, protector, url):
        is_safe, reason = protector.validate_url(url)

        assert is_safe is False
        assert 'Private IP' in reason

    @pytest.mark.parametrize('url', ['ftp://example.com/file', 'file:///etc/passwd', 'gopher://x'])
    def test_schemes_blocked(self, protector, url):
        is_safe, reason = protector.validate_url(url)

        assert is_safe is False
        assert reason.startswith('Scheme not allowed')

    def test_blocked_hostname(self, protector):
        assert protector.validate_url('http://localhost:8000/') == (False, 'Hostname blocked: localhost')

    @pytest.mark.parametrize('url', ['', '   ', None, 'http://host:notaport/'])
    def test_malformed(self, protector, url):
        assert protector.validate_url(url) == (False, 'Invalid URL format')

    def test_missing_hostname(self, protector):
        assert protector.validate_url('http:///path') == (False, 'No hostname specified')

    def test_public_literal_allowed(self, protector):
        assert protector.validate_url('https://93.184.216.34/hook') == (True, '')

    def test_dns_name_resolving_to_private_address(self, protector):
        with resolves_to('93.184.216.34', '10.0.0.8'):
            is_safe, reason = protector.validate_url('https://hooks.example.com/x')

        assert is_safe is False
        assert '10.0.0.8' in reason

    def test_dns_name_resolving_to_public_address(self, protector):
        with resolves_to('93.184.216.34'):
            assert protector.validate_url('https://hooks.example.com/x') == (True, '')

    def test_unresolvable_host_passes(self, protector):
        with patch('core.security.ssrf.socket.getaddrinfo', side_effect=socket.gaierror):
            assert protector.validate_url('https://nowhere.invalid/') == (True, '')

    def test_allowlisted_domain_skips_checks(self):
        protector = SSRFProtector(allowed_hosts=['localhost'], allowed_domains=['corp.internal'])

        assert protector.validate_url('http://localhost/') == (True, '')
        assert protector.validate_url('http://crm.corp.internal/') == (True, '')


class TestValidateOutboundUrl:

    def test_reads_allowlist_from_settings(self, settings):
        settings.SSRF_ALLOWED_HOSTS = ['127.0.0.1']

        assert validate_outbound_url('http://127.0.0.1:9000/') == (True, '')

    def test_default_blocks_loopback(self, settings):
        settings.SSRF_ALLOWED_HOSTS = []

        assert validate_outbound_url('http://127.0.0.1:9000/')[0] is False
