"""
SPF record grammar: turns one TXT string into an ordered tuple of typed terms.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
import ipaddress
import logging
import re

# Configure module logger
logger = logging.getLogger(__name__)

SPF_VERSION_TAG = "v=spf1"

# SPF Qualifiers and their meanings
SPF_QUALIFIERS = {
    '+': 'pass',     # Default if no qualifier specified
    '-': 'fail',     # Hard fail
    '~': 'softfail', # Soft fail
    '?': 'neutral'   # Neutral
}

# Modifiers defined by RFC 7208 (exp) and RFC 6652 (ra, rp, rr)
RECOGNIZED_MODIFIERS = frozenset(['exp', 'ra', 'rp', 'rr'])

MODIFIER_NAME_REGEX = re.compile(r'^[a-z][a-z0-9_.\-]*$', re.IGNORECASE)
DUAL_CIDR_REGEX = re.compile(r'^(?P<domain>[^/]*)(?:/(?P<ip4>\d+))?(?://(?P<ip6>\d+))?$')


class TermKind(Enum):
    ALL = 'all'
    INCLUDE = 'include'
    A = 'a'
    MX = 'mx'
    PTR = 'ptr'
    EXISTS = 'exists'
    IP4 = 'ip4'
    IP6 = 'ip6'
    REDIRECT = 'redirect'
    VERSION = 'version'
    UNKNOWN_MODIFIER = 'unknown-modifier'


# DNS lookups charged per term (RFC 7208 section 4.6.4). A redirect is
# charged when it is followed, not when it is parsed.
LOOKUP_COST = {
    TermKind.ALL: 0,
    TermKind.INCLUDE: 1,
    TermKind.A: 1,
    TermKind.MX: 1,
    TermKind.PTR: 1,
    TermKind.EXISTS: 1,
    TermKind.IP4: 0,
    TermKind.IP6: 0,
    TermKind.REDIRECT: 0,
    TermKind.VERSION: 0,
    TermKind.UNKNOWN_MODIFIER: 0,
}

# Kinds that are followed into another SPF record
CHAIN_KINDS = (TermKind.INCLUDE, TermKind.REDIRECT)

MECHANISM_KINDS = (TermKind.ALL, TermKind.INCLUDE, TermKind.A, TermKind.MX,
                   TermKind.PTR, TermKind.EXISTS, TermKind.IP4, TermKind.IP6)


class SPFSyntaxError(ValueError):
    """Raised for a single malformed SPF term"""


@dataclass(frozen=True)
class SpfTerm:
    kind: TermKind
    qualifier: str = '+'
    value: str = ''

    @property
    def lookup_cost(self) -> int:
        return LOOKUP_COST[self.kind]

    @property
    def is_mechanism(self) -> bool:
        return self.kind in MECHANISM_KINDS

    @property
    def modifier_name(self) -> Optional[str]:
        """Name of an unknown modifier, lowercased"""
        if self.kind is not TermKind.UNKNOWN_MODIFIER:
            return None
        return self.value.split('=', 1)[0].lower()

    def to_text(self) -> str:
        if self.kind is TermKind.VERSION:
            return SPF_VERSION_TAG
        if self.kind is TermKind.UNKNOWN_MODIFIER:
            return self.value
        if self.kind is TermKind.REDIRECT:
            return f"redirect={self.value}"
        prefix = '' if self.qualifier == '+' else self.qualifier
        if self.kind is TermKind.ALL:
            return f"{prefix}all"
        if not self.value:
            return f"{prefix}{self.kind.value}"
        if self.kind in (TermKind.A, TermKind.MX) and self.value.startswith('/'):
            return f"{prefix}{self.kind.value}{self.value}"
        return f"{prefix}{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class SpfRecord:
    raw: str
    domain: str
    terms: Tuple[SpfTerm, ...] = ()
    syntax_valid: bool = True
    syntax_error: Optional[str] = None
    has_version: bool = True

    def terms_of(self, *kinds: TermKind) -> List[SpfTerm]:
        return [term for term in self.terms if term.kind in kinds]

    @property
    def all_term(self) -> Optional[SpfTerm]:
        """The last 'all' term in the record, which decides its default result"""
        all_terms = self.terms_of(TermKind.ALL)
        return all_terms[-1] if all_terms else None

    @property
    def redirect(self) -> Optional[str]:
        redirects = self.terms_of(TermKind.REDIRECT)
        return redirects[0].value if redirects else None

    def unknown_modifiers(self) -> List[SpfTerm]:
        """Unknown modifiers that are not a recognized extension"""
        return [term for term in self.terms_of(TermKind.UNKNOWN_MODIFIER)
                if term.modifier_name not in RECOGNIZED_MODIFIERS]

    def terms_after_all(self) -> List[SpfTerm]:
        """Mechanisms placed after the first 'all', which evaluators never reach"""
        seen_all = False
        after = []
        for term in self.terms:
            if seen_all and term.is_mechanism:
                after.append(term)
            if term.kind is TermKind.ALL:
                seen_all = True
        return after


def is_spf_record(txt: str) -> bool:
    """True when a TXT string starts with the SPF version tag"""
    head = txt[:len(SPF_VERSION_TAG) + 1].lower()
    return head == SPF_VERSION_TAG or head == SPF_VERSION_TAG + ' '


def _require_value(name: str, value: str) -> str:
    if not value:
        raise SPFSyntaxError(f"'{name}' requires a value")
    return value


def _check_dual_cidr(token: str, value: str) -> None:
    match = DUAL_CIDR_REGEX.match(value)
    if not match:
        raise SPFSyntaxError(f"Invalid CIDR length in '{token}'")
    ip4, ip6 = match.group('ip4'), match.group('ip6')
    if ip4 is not None and int(ip4) > 32:
        raise SPFSyntaxError(f"Invalid IPv4 CIDR length in '{token}'")
    if ip6 is not None and int(ip6) > 128:
        raise SPFSyntaxError(f"Invalid IPv6 CIDR length in '{token}'")


def _split_target(body: str, name: str) -> Optional[str]:
    """
    Returns the value of a mechanism such as 'a', 'a:host/24' or 'a/24',
    or None when the body is some other term. 'a:' with nothing after the
    colon is malformed.
    """
    lowered = body.lower()
    if lowered == name:
        return ''
    if lowered.startswith(name + ':'):
        return _require_value(name, body[len(name) + 1:])
    if lowered.startswith(name + '/'):
        return body[len(name):]
    return None


def parse_term(token: str) -> SpfTerm:
    """
    Classifies one whitespace-delimited SPF term.

    Args:
        token (str): The term text, including any qualifier

    Returns:
        SpfTerm: The typed term

    Raises:
        SPFSyntaxError: If the term is malformed
    """
    qualifier = '+'
    body = token
    explicit_qualifier = False
    if body[0] in SPF_QUALIFIERS:
        qualifier = body[0]
        body = body[1:]
        explicit_qualifier = True
        if not body:
            raise SPFSyntaxError(f"Qualifier without mechanism in '{token}'")

    lowered = body.lower()

    if lowered == 'all':
        return SpfTerm(TermKind.ALL, qualifier)

    if lowered.startswith('include:'):
        return SpfTerm(TermKind.INCLUDE, qualifier, _require_value('include', body[8:]))

    if lowered.startswith('exists:'):
        return SpfTerm(TermKind.EXISTS, qualifier, _require_value('exists', body[7:]))

    if lowered.startswith('ip4:'):
        value = _require_value('ip4', body[4:])
        try:
            ipaddress.IPv4Network(value, strict=False)
        except ValueError:
            raise SPFSyntaxError(f"Invalid IPv4 address or network in '{token}'")
        return SpfTerm(TermKind.IP4, qualifier, value)

    if lowered.startswith('ip6:'):
        value = _require_value('ip6', body[4:])
        try:
            ipaddress.IPv6Network(value, strict=False)
        except ValueError:
            raise SPFSyntaxError(f"Invalid IPv6 address or network in '{token}'")
        return SpfTerm(TermKind.IP6, qualifier, value)

    if lowered.startswith('redirect='):
        if explicit_qualifier:
            raise SPFSyntaxError(f"Modifiers cannot take a qualifier: '{token}'")
        return SpfTerm(TermKind.REDIRECT, '+', _require_value('redirect', body[9:]))

    if lowered == 'ptr':
        return SpfTerm(TermKind.PTR, qualifier)

    if lowered.startswith('ptr:'):
        return SpfTerm(TermKind.PTR, qualifier, _require_value('ptr', body[4:]))

    for kind in (TermKind.A, TermKind.MX):
        value = _split_target(body, kind.value)
        if value is not None:
            _check_dual_cidr(token, value)
            return SpfTerm(kind, qualifier, value)

    if '=' in body:
        name = body.split('=', 1)[0]
        if explicit_qualifier:
            raise SPFSyntaxError(f"Modifiers cannot take a qualifier: '{token}'")
        if not MODIFIER_NAME_REGEX.match(name):
            raise SPFSyntaxError(f"Invalid modifier name in '{token}'")
        return SpfTerm(TermKind.UNKNOWN_MODIFIER, '+', body)

    raise SPFSyntaxError(f"Unknown mechanism '{token}'")


def parse_spf_record(raw: str, domain: str) -> SpfRecord:
    """
    Parses an SPF record into its terms.

    Malformed terms are dropped and the first diagnostic is kept on the
    record; every well-formed term is still returned.

    Args:
        raw (str): The SPF record text
        domain (str): The domain that published the record

    Returns:
        SpfRecord: The parsed record
    """
    if not is_spf_record(raw):
        logger.debug(f"Record for {domain} doesn't start with {SPF_VERSION_TAG}: {raw!r}")
        return SpfRecord(
            raw=raw,
            domain=domain,
            syntax_valid=False,
            syntax_error=f"Record does not begin with {SPF_VERSION_TAG}",
            has_version=False,
        )

    terms = [SpfTerm(TermKind.VERSION, '+', 'spf1')]
    errors = []
    modifier_counts: Dict[str, int] = {}

    for token in raw[len(SPF_VERSION_TAG):].split():
        try:
            term = parse_term(token)
        except SPFSyntaxError as e:
            errors.append(str(e))
            continue

        if term.kind is TermKind.REDIRECT:
            name = 'redirect'
        else:
            name = term.modifier_name
        if name:
            modifier_counts[name] = modifier_counts.get(name, 0) + 1
            if name in ('redirect', 'exp') and modifier_counts[name] == 2:
                errors.append(f"The '{name}' modifier appears more than once")

        terms.append(term)

    return SpfRecord(
        raw=raw,
        domain=domain,
        terms=tuple(terms),
        syntax_valid=not errors,
        syntax_error=errors[0] if errors else None,
    )
