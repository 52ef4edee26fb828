"""
Unit tests for include/redirect chain expansion.
"""

import pytest

from conftest import FakeTXTResolver, ManualClock
from spf_inspector.modules.dns_resolver import DNSLookupError, LookupTimeout
from spf_inspector.modules.spf_chain import (
    FAILURE_INVALID,
    FAILURE_LOOKUP,
    FAILURE_MISSING,
    SPFChainResolver,
    normalize_domain,
    select_spf_records,
)
from spf_inspector.modules.spf_parser import TermKind


def mechanisms(count, prefix="a:h"):
    return " ".join(f"{prefix}{i}.example.com" for i in range(count))


def resolve(records, domain="example.com", **kwargs):
    fake = FakeTXTResolver(records)
    resolver = SPFChainResolver(fake, **kwargs)
    return resolver.resolve(domain), fake


class TestHelpers:

    def test_normalize_domain(self):
        assert normalize_domain(" Example.COM. ") == "example.com"
        assert normalize_domain("example.com..") == "example.com."

    def test_select_spf_records_keeps_order(self):
        txt = ["v=spf1 a -all", "site-verification=x", "V=SPF1 mx -all"]

        assert select_spf_records(txt) == ["v=spf1 a -all", "V=SPF1 mx -all"]


class TestRootRecord:

    def test_single_record(self):
        result, fake = resolve({"example.com": ["v=spf1 -all"]})

        assert result.dns_lookups == 0
        assert result.root_record.raw == "v=spf1 -all"
        assert len(result.nodes) == 1
        assert result.nodes[0].depth == 0
        assert result.nodes[0].lookup_cost == 0
        assert fake.queried == ["example.com"]

    def test_no_txt_records(self):
        result, _ = resolve({})

        assert result.root_record is None
        assert result.root_error is None
        assert result.nodes == []

    def test_txt_records_without_spf(self):
        result, _ = resolve({"example.com": ["google-site-verification=abc"]})

        assert result.root_record is None
        assert result.spf_records == []

    def test_root_lookup_failure(self):
        result, _ = resolve({"example.com": LookupTimeout("example.com", "DNS timeout resolving example.com")})

        assert result.root_record is None
        assert result.root_error == "DNS timeout resolving example.com"

    def test_multiple_records_uses_first(self):
        result, _ = resolve({"example.com": ["v=spf1 ip4:192.0.2.1 -all", "v=spf1 ~all"]})

        assert len(result.spf_records) == 2
        assert result.root_record.raw == "v=spf1 ip4:192.0.2.1 -all"

    def test_domain_is_normalized(self):
        result, fake = resolve({"example.com": ["v=spf1 -all"]}, domain="Example.com.")

        assert result.domain == "example.com"
        assert fake.queried == ["example.com"]


class TestLookupCounting:

    def test_includes_are_counted_and_expanded(self):
        result, fake = resolve({
            "example.com": ["v=spf1 include:a.com include:b.com ~all"],
            "a.com": ["v=spf1 -all"],
            "b.com": ["v=spf1 -all"],
        })

        assert result.dns_lookups == 2
        assert [node.domain for node in result.nodes] == ["example.com", "a.com", "b.com"]
        assert [node.depth for node in result.nodes] == [0, 1, 1]
        assert [node.via for node in result.nodes] == ["root", "include", "include"]
        assert fake.queried == ["example.com", "a.com", "b.com"]

    def test_address_mechanisms_are_counted_but_not_expanded(self):
        result, fake = resolve({
            "example.com": ["v=spf1 a mx ptr exists:%{i}.example.com ip4:192.0.2.1 ip6:::1 -all"],
        })

        assert result.dns_lookups == 4
        assert fake.queried == ["example.com"]

    def test_redirect_is_counted_when_followed(self):
        result, _ = resolve({
            "example.com": ["v=spf1 redirect=_spf.example.com"],
            "_spf.example.com": ["v=spf1 ip4:192.0.2.0/24 -all"],
        })

        assert result.dns_lookups == 1
        assert result.nodes[1].via == "redirect"
        assert result.nodes[1].lookup_cost == 1

    def test_nested_lookups_add_up_depth_first(self):
        result, fake = resolve({
            "example.com": ["v=spf1 include:a.com include:b.com -all"],
            "a.com": ["v=spf1 include:c.a.com mx -all"],
            "c.a.com": ["v=spf1 a -all"],
            "b.com": ["v=spf1 a -all"],
        })

        # include:a.com, include:c.a.com, a, mx, include:b.com, a
        assert result.dns_lookups == 6
        assert fake.queried == ["example.com", "a.com", "c.a.com", "b.com"]
        assert [node.depth for node in result.nodes] == [0, 1, 2, 1]

    def test_exactly_ten_lookups_is_within_limit(self):
        result, _ = resolve({"example.com": [f"v=spf1 {mechanisms(10)} -all"]})

        assert result.dns_lookups == 10
        assert result.limit_exceeded is False
        assert result.unresolved == []

    def test_eleven_lookups_exceed_limit(self):
        result, _ = resolve({"example.com": [f"v=spf1 {mechanisms(11)} -all"]})

        assert result.dns_lookups == 11
        assert result.limit_exceeded is True
        assert [term.to_text() for _, term in result.unresolved] == ["a:h10.example.com", "-all"]

    def test_walk_halts_at_limit(self):
        records = {"example.com": [f"v=spf1 {mechanisms(12, 'include:i')} -all"]}
        for i in range(12):
            records[f"i{i}.example.com"] = ["v=spf1 -all"]

        result, fake = resolve(records)

        assert result.dns_lookups == 11
        assert "i10.example.com" not in fake.queried
        assert "i11.example.com" not in fake.queried
        assert len(result.nodes) == 11

    def test_limit_reached_inside_include_halts_parent(self):
        result, _ = resolve({
            "example.com": ["v=spf1 include:big.com include:other.com -all"],
            "big.com": [f"v=spf1 {mechanisms(10)} -all"],
            "other.com": ["v=spf1 -all"],
        })

        assert result.dns_lookups == 11
        assert result.limit_exceeded is True
        unresolved = [(domain, term.kind) for domain, term in result.unresolved]
        assert unresolved[-2:] == [("example.com", TermKind.INCLUDE), ("example.com", TermKind.ALL)]

    def test_custom_limit(self):
        result, _ = resolve({"example.com": ["v=spf1 a mx -all"]}, lookup_limit=1)

        assert result.limit_exceeded is True

    def test_macro_targets_are_counted_not_expanded(self):
        result, fake = resolve({"example.com": ["v=spf1 include:%{i}._spf.example.com -all"]})

        assert result.dns_lookups == 1
        assert fake.queried == ["example.com"]


class TestCycles:

    def test_self_include(self):
        result, fake = resolve({"example.com": ["v=spf1 include:example.com -all"]})

        assert result.cycles == [("example.com", "example.com")]
        assert result.dns_lookups == 1
        assert fake.queried == ["example.com"]

    def test_transitive_cycle_keeps_siblings(self):
        result, _ = resolve({
            "example.com": ["v=spf1 include:loop.com include:good.com -all"],
            "loop.com": ["v=spf1 include:Example.com. -all"],
            "good.com": ["v=spf1 ip4:192.0.2.1 -all"],
        })

        assert result.cycles == [("loop.com", "example.com")]
        assert [node.domain for node in result.nodes] == ["example.com", "loop.com", "good.com"]
        assert result.dns_lookups == 3

    def test_redirect_cycle(self):
        result, _ = resolve({
            "example.com": ["v=spf1 redirect=a.com"],
            "a.com": ["v=spf1 redirect=example.com"],
        })

        assert result.cycles == [("a.com", "example.com")]

    def test_diamond_is_not_a_cycle(self):
        result, _ = resolve({
            "example.com": ["v=spf1 include:a.com include:b.com -all"],
            "a.com": ["v=spf1 include:c.com -all"],
            "b.com": ["v=spf1 include:c.com -all"],
            "c.com": ["v=spf1 ip4:192.0.2.1 -all"],
        })

        assert result.cycles == []
        assert [node.domain for node in result.nodes].count("c.com") == 2
        assert result.dns_lookups == 4


class TestFailures:

    def test_include_without_record(self):
        result, _ = resolve({
            "example.com": ["v=spf1 include:gone.com include:b.com -all"],
            "b.com": ["v=spf1 -all"],
        })

        assert result.failures[0].domain == "gone.com"
        assert result.failures[0].kind == FAILURE_MISSING
        assert result.nodes[1].record is None
        assert result.nodes[1].error
        assert result.nodes[2].domain == "b.com"
        assert result.dns_lookups == 2

    def test_include_with_txt_but_no_spf(self):
        result, _ = resolve({
            "example.com": ["v=spf1 include:a.com -all"],
            "a.com": ["some-other-record"],
        })

        assert result.failures[0].kind == FAILURE_MISSING

    def test_include_with_invalid_record_is_still_walked(self):
        result, fake = resolve({
            "example.com": ["v=spf1 include:a.com -all"],
            "a.com": ["v=spf1 ip4:not-an-ip include:b.com -all"],
            "b.com": ["v=spf1 -all"],
        })

        assert result.failures[0].kind == FAILURE_INVALID
        assert result.failures[0].domain == "a.com"
        assert "b.com" in fake.queried

    @pytest.mark.parametrize("error", [
        LookupTimeout("a.com", "DNS timeout resolving a.com"),
        DNSLookupError("a.com", "DNS error resolving a.com: SERVFAIL"),
    ])
    def test_include_lookup_failure(self, error):
        result, _ = resolve({
            "example.com": ["v=spf1 include:a.com -all"],
            "a.com": error,
        })

        assert result.failures[0].kind == FAILURE_LOOKUP
        assert result.timed_out is False


class TestDeadline:

    def test_deadline_halts_walk_and_keeps_partial_trace(self):
        clock = ManualClock()
        fake = FakeTXTResolver({
            "example.com": ["v=spf1 include:a.com include:b.com -all"],
            "a.com": ["v=spf1 -all"],
            "b.com": ["v=spf1 -all"],
        }, on_lookup=lambda domain: clock.advance(3))
        resolver = SPFChainResolver(fake, deadline=5.0, clock=clock)

        result = resolver.resolve("example.com")

        assert result.timed_out is True
        assert fake.queried == ["example.com", "a.com"]
        assert [node.domain for node in result.nodes] == ["example.com", "a.com"]
        assert [term.to_text() for _, term in result.unresolved] == ["include:b.com", "-all"]

    def test_lookup_timeout_is_capped_to_remaining_time(self):
        clock = ManualClock()
        fake = FakeTXTResolver({
            "example.com": ["v=spf1 include:a.com -all"],
            "a.com": ["v=spf1 -all"],
        }, on_lookup=lambda domain: clock.advance(1))
        resolver = SPFChainResolver(fake, deadline=5.0, clock=clock)

        resolver.resolve("example.com")

        assert fake.calls == [("example.com", 5.0), ("a.com", 4.0)]

    def test_timeout_at_deadline_is_reported_as_timeout(self):
        clock = ManualClock()

        def slow(domain):
            if domain == "a.com":
                clock.advance(10)

        fake = FakeTXTResolver({
            "example.com": ["v=spf1 include:a.com -all"],
            "a.com": LookupTimeout("a.com", "DNS timeout resolving a.com"),
        }, on_lookup=slow)
        resolver = SPFChainResolver(fake, deadline=5.0, clock=clock)

        result = resolver.resolve("example.com")

        assert result.timed_out is True
        assert result.failures == []


class TestSuppliedRecord:

    def test_resolve_record_uses_supplied_text(self):
        fake = FakeTXTResolver({"a.com": ["v=spf1 -all"]})
        resolver = SPFChainResolver(fake)

        result = resolver.resolve_record("example.com", "v=spf1 include:a.com -all")

        assert result.dns_lookups == 1
        assert fake.queried == ["a.com"]
        assert result.spf_records == ["v=spf1 include:a.com -all"]

    def test_record_without_version_is_not_walked(self):
        fake = FakeTXTResolver({})
        resolver = SPFChainResolver(fake)

        result = resolver.resolve_record("example.com", "include:a.com -all")

        assert result.root_record.has_version is False
        assert result.dns_lookups == 0
        assert fake.queried == []
