"""
Unit tests for the dnspython TXT resolver.
"""

from unittest.mock import MagicMock, patch

import dns.exception
import dns.resolver
import pytest

from spf_inspector.modules.dns_resolver import (
    DNSLookupError,
    DNSPythonResolver,
    LookupTimeout,
    RecordNotFound,
)


def txt_rdata(*strings):
    rdata = MagicMock()
    rdata.strings = list(strings)
    return rdata


class TestDNSPythonResolver:

    @patch('spf_inspector.modules.dns_resolver.dns.resolver.Resolver')
    def test_lookup_joins_character_strings(self, mock_resolver_class):
        mock_resolver = mock_resolver_class.return_value
        mock_resolver.resolve.return_value = [
            txt_rdata(b"v=spf1 include:_spf.example.com ", b"-all"),
            txt_rdata(b"site-verification=abc"),
        ]

        records = DNSPythonResolver().lookup_txt("example.com")

        assert records == ["v=spf1 include:_spf.example.com -all", "site-verification=abc"]
        mock_resolver.resolve.assert_called_once_with("example.com", 'TXT', lifetime=3.0)

    @patch('spf_inspector.modules.dns_resolver.dns.resolver.Resolver')
    def test_lookup_timeout_is_capped(self, mock_resolver_class):
        mock_resolver = mock_resolver_class.return_value
        mock_resolver.resolve.return_value = []

        DNSPythonResolver(timeout=3.0).lookup_txt("example.com", timeout=1.5)
        DNSPythonResolver(timeout=3.0).lookup_txt("example.com", timeout=10.0)

        lifetimes = [call.kwargs['lifetime'] for call in mock_resolver.resolve.call_args_list]
        assert lifetimes == [1.5, 3.0]

    @patch('spf_inspector.modules.dns_resolver.dns.resolver.Resolver')
    def test_custom_nameservers(self, mock_resolver_class):
        mock_resolver = mock_resolver_class.return_value
        mock_resolver.resolve.return_value = []

        DNSPythonResolver(nameservers=["1.1.1.1"]).lookup_txt("example.com")

        mock_resolver_class.assert_called_once_with(configure=False)
        assert mock_resolver.nameservers == ["1.1.1.1"]

    @pytest.mark.parametrize("error,expected", [
        (dns.resolver.NXDOMAIN(), RecordNotFound),
        (dns.resolver.NoAnswer(), RecordNotFound),
        (dns.exception.Timeout(), LookupTimeout),
        (dns.resolver.NoNameservers(), DNSLookupError),
    ])
    @patch('spf_inspector.modules.dns_resolver.dns.resolver.Resolver')
    def test_errors_are_translated(self, mock_resolver_class, error, expected):
        mock_resolver_class.return_value.resolve.side_effect = error

        with pytest.raises(expected) as excinfo:
            DNSPythonResolver().lookup_txt("example.com")

        assert type(excinfo.value) is expected
        assert excinfo.value.domain == "example.com"

    @patch('spf_inspector.modules.dns_resolver.dns.resolver.Resolver')
    def test_undecodable_bytes_are_replaced(self, mock_resolver_class):
        mock_resolver_class.return_value.resolve.return_value = [txt_rdata(b"v=spf1 \xff-all")]

        records = DNSPythonResolver().lookup_txt("example.com")

        assert records == ["v=spf1 �-all"]
