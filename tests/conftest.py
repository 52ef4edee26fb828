"""
Shared fixtures: an in-memory TXT resolver, a manual clock and a Flask test app.
"""

import pytest

from app import create_app
from spf_inspector.config import TestingConfig
from spf_inspector.modules.dns_resolver import RecordNotFound, TXTResolver


class FakeTXTResolver(TXTResolver):
    """Serves TXT records from a dict; a value may be an exception to raise"""

    def __init__(self, records=None, on_lookup=None):
        self.records = dict(records or {})
        self.on_lookup = on_lookup
        self.calls = []

    def lookup_txt(self, domain, timeout=None):
        self.calls.append((domain, timeout))
        if self.on_lookup is not None:
            self.on_lookup(domain)
        value = self.records.get(domain)
        if value is None:
            raise RecordNotFound(domain, f"No TXT records found for {domain}")
        if isinstance(value, Exception):
            raise value
        return list(value)

    @property
    def queried(self):
        return [domain for domain, _ in self.calls]


class ManualClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def fake_dns():
    return FakeTXTResolver({
        "example.com": ["v=spf1 include:a.com include:b.com ~all"],
        "a.com": ["v=spf1 -all"],
        "b.com": ["v=spf1 -all"],
        "hardfail.com": ["google-site-verification=abc", "v=spf1 -all"],
    })


@pytest.fixture
def make_app(fake_dns):
    def factory(**overrides):
        config = {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}
        config.update(overrides)
        return create_app(config, txt_resolver=fake_dns)
    return factory


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()
