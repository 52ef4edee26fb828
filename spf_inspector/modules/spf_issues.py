"""
SPF misconfiguration catalog and the detector that matches a resolved
chain against it.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List

from spf_inspector.modules.spf_chain import (
    FAILURE_INVALID,
    FAILURE_LOOKUP,
    FAILURE_MISSING,
    ChainResult,
)
from spf_inspector.modules.spf_parser import TermKind

ERROR = 'error'
WARNING = 'warning'

SEVERITY = {
    ERROR: 3,
    WARNING: 2,
}


class IssueKind(Enum):
    MISSING_VERSION = 'missing_version'
    SYNTAX_ERROR = 'syntax_error'
    TOO_MANY_LOOKUPS = 'too_many_lookups'
    MISSING_ALL = 'missing_all'
    UNKNOWN_MODIFIER = 'unknown_modifier'
    MULTIPLE_RECORDS = 'multiple_records'
    INCLUDE_LOOP = 'include_loop'
    PERMISSIVE_ALL = 'permissive_all'
    NEUTRAL_ALL = 'neutral_all'
    REDIRECT_WITH_ALL = 'redirect_with_all'
    TERMS_AFTER_ALL = 'terms_after_all'
    PTR_MECHANISM = 'ptr_mechanism'
    APPROACHING_LOOKUP_LIMIT = 'approaching_lookup_limit'
    INCLUDE_MISSING_RECORD = 'include_missing_record'
    INCLUDE_INVALID_RECORD = 'include_invalid_record'
    LOOKUP_FAILED = 'lookup_failed'
    RESOLUTION_TIMEOUT = 'resolution_timeout'
    MISSING_RECORD = 'missing_record'


# fmt: off
ISSUE_CATALOG: Dict[IssueKind, Dict[str, str]] = {
    IssueKind.MISSING_VERSION: {
        "type": ERROR,
        "message": "Missing SPF Version",
        "description": "An SPF record must begin with the version tag 'v=spf1' followed by a space. "
                       "Receivers ignore TXT records that do not.",
        "recommendation": "Start the record with 'v=spf1', for example: v=spf1 include:_spf.example.com -all",
    },
    IssueKind.SYNTAX_ERROR: {
        "type": ERROR,
        "message": "SPF Syntax Error: {detail}",
        "description": "The record contains a term that does not follow the SPF grammar (RFC 7208, Section 12). "
                       "Receivers return a permanent error for the whole record.",
        "recommendation": "Correct the malformed term so that every mechanism and modifier is well formed.",
    },
    IssueKind.TOO_MANY_LOOKUPS: {
        "type": ERROR,
        "message": "Too Many DNS Lookups",
        "description": "The include, a, mx, ptr and exists mechanisms and the redirect modifier cause DNS queries. "
                       "SPF evaluation is limited to 10 of them (RFC 7208, Section 4.6.4); beyond that the "
                       "result is a permanent error.",
        "recommendation": "Reduce DNS lookups by removing unused includes, replacing a and mx with ip4/ip6 "
                          "ranges, or flattening includes into explicit addresses.",
    },
    IssueKind.MISSING_ALL: {
        "type": WARNING,
        "message": "Missing All Mechanism",
        "description": "Without an 'all' mechanism, mail from unlisted sources gets a neutral result and is "
                       "rarely rejected.",
        "recommendation": "End the record with '-all' (hard fail) or '~all' (soft fail).",
    },
    IssueKind.UNKNOWN_MODIFIER: {
        "type": WARNING,
        "message": "Unknown Modifier: {detail}",
        "description": "Receivers ignore modifiers they do not recognize, so these terms have no effect.",
        "recommendation": "Remove the unrecognized modifiers or check them for typos.",
    },
    IssueKind.MULTIPLE_RECORDS: {
        "type": ERROR,
        "message": "Multiple SPF Records",
        "description": "A domain must not publish more than one SPF record (RFC 7208, Section 3.2). "
                       "Receivers return a permanent error when they find several.",
        "recommendation": "Merge the records into a single 'v=spf1' TXT record and delete the others.",
    },
    IssueKind.INCLUDE_LOOP: {
        "type": ERROR,
        "message": "SPF Include Loop: {detail}",
        "description": "An include or redirect chain leads back to a domain that is already being evaluated, "
                       "so evaluation can never finish.",
        "recommendation": "Remove the circular include or redirect reference.",
    },
    IssueKind.PERMISSIVE_ALL: {
        "type": WARNING,
        "message": "Permissive All Mechanism",
        "description": "'+all' authorizes every server on the internet to send mail for the domain.",
        "recommendation": "Replace '+all' with '-all' or '~all'.",
    },
    IssueKind.NEUTRAL_ALL: {
        "type": WARNING,
        "message": "Neutral All Mechanism",
        "description": "'?all' makes no assertion about unlisted senders, which offers little protection "
                       "against spoofing.",
        "recommendation": "Upgrade to '~all' or '-all' for better security.",
    },
    IssueKind.REDIRECT_WITH_ALL: {
        "type": WARNING,
        "message": "Redirect Ignored",
        "description": "When a record contains an 'all' mechanism its redirect modifier is never used "
                       "(RFC 7208, Section 6.1).",
        "recommendation": "Remove the 'all' mechanism when using 'redirect', or remove the redirect.",
    },
    IssueKind.TERMS_AFTER_ALL: {
        "type": WARNING,
        "message": "Terms After All: {detail}",
        "description": "Mechanisms after 'all' will never be tested and are ignored by receivers "
                       "(RFC 7208, Section 5.1).",
        "recommendation": "Move these mechanisms before 'all' or remove them.",
    },
    IssueKind.PTR_MECHANISM: {
        "type": WARNING,
        "message": "PTR Mechanism Used",
        "description": "The ptr mechanism is slow, unreliable and places a large burden on the .arpa name "
                       "servers (RFC 7208, Section 5.5). Some receivers skip it.",
        "recommendation": "Replace ptr with ip4, ip6, a or include mechanisms.",
    },
    IssueKind.APPROACHING_LOOKUP_LIMIT: {
        "type": WARNING,
        "message": "Approaching DNS Lookup Limit: {detail}",
        "description": "The record is close to the limit of 10 DNS lookups. Any change by an included "
                       "provider may push it over.",
        "recommendation": "Consider optimizing the SPF record to reduce DNS lookups.",
    },
    IssueKind.INCLUDE_MISSING_RECORD: {
        "type": ERROR,
        "message": "Included Domain Has No SPF Record: {detail}",
        "description": "An include or redirect points at a domain that publishes no SPF record, which is a "
                       "permanent error (RFC 7208, Section 5.2).",
        "recommendation": "Remove the reference or ask the provider for the correct include domain.",
    },
    IssueKind.INCLUDE_INVALID_RECORD: {
        "type": ERROR,
        "message": "Invalid Included SPF Record: {detail}",
        "description": "An included or redirected record contains a syntax error, which makes the whole "
                       "evaluation fail.",
        "recommendation": "Contact the owner of the included domain or stop including it.",
    },
    IssueKind.LOOKUP_FAILED: {
        "type": WARNING,
        "message": "DNS Lookup Failed: {detail}",
        "description": "A DNS query for an included or redirected domain failed. Receivers treat this as "
                       "a temporary error.",
        "recommendation": "Check that the referenced domain's name servers answer reliably.",
    },
    IssueKind.RESOLUTION_TIMEOUT: {
        "type": ERROR,
        "message": "SPF Resolution Timed Out: {detail}",
        "description": "The SPF chain could not be fully resolved within the time allowed. The results "
                       "cover only the part of the chain that was resolved.",
        "recommendation": "Check the responsiveness of the name servers in the include chain and retry.",
    },
    IssueKind.MISSING_RECORD: {
        "type": ERROR,
        "message": "Missing SPF Record",
        "description": "The domain does not publish an SPF record, so receivers cannot tell which servers "
                       "may send mail on its behalf.",
        "recommendation": "Publish an SPF record listing your sending sources. If the domain sends no mail, "
                          "publish: v=spf1 -all",
    },
}
# fmt: on


@dataclass(frozen=True)
class Issue:
    type: str
    message: str
    description: str
    recommendation: str
    severity: int

    @property
    def is_error(self) -> bool:
        return self.type == ERROR

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def make_issue(kind: IssueKind, detail: str = '') -> Issue:
    """Builds an Issue from its catalog entry"""
    entry = ISSUE_CATALOG[kind]
    return Issue(
        type=entry["type"],
        message=entry["message"].format(detail=detail),
        description=entry["description"],
        recommendation=entry["recommendation"],
        severity=SEVERITY[entry["type"]],
    )


def detect_issues(chain: ChainResult, lookup_limit: int = 10) -> List[Issue]:
    """
    Matches a resolved SPF chain against the issue catalog.

    Args:
        chain (ChainResult): The resolved chain
        lookup_limit (int): Maximum number of DNS lookups allowed

    Returns:
        List[Issue]: Issues in catalog order
    """
    record = chain.root_record
    if record is None:
        return [make_issue(IssueKind.MISSING_RECORD)]

    issues = []

    if not record.has_version:
        issues.append(make_issue(IssueKind.MISSING_VERSION))
    elif not record.syntax_valid:
        issues.append(make_issue(IssueKind.SYNTAX_ERROR, record.syntax_error))

    if chain.limit_exceeded or chain.dns_lookups > lookup_limit:
        issues.append(make_issue(IssueKind.TOO_MANY_LOOKUPS))

    if record.has_version and record.all_term is None:
        issues.append(make_issue(IssueKind.MISSING_ALL))

    unknown = record.unknown_modifiers()
    if unknown:
        issues.append(make_issue(IssueKind.UNKNOWN_MODIFIER,
                                 ", ".join(term.value for term in unknown)))

    if len(chain.spf_records) > 1:
        issues.append(make_issue(IssueKind.MULTIPLE_RECORDS))

    # One loop issue per edge, however often the walk meets it
    for source, target in dict.fromkeys(chain.cycles):
        issues.append(make_issue(IssueKind.INCLUDE_LOOP, f"{source} -> {target}"))

    all_term = record.all_term
    if all_term is not None and all_term.qualifier == '+':
        issues.append(make_issue(IssueKind.PERMISSIVE_ALL))
    if all_term is not None and all_term.qualifier == '?':
        issues.append(make_issue(IssueKind.NEUTRAL_ALL))

    if all_term is not None and record.redirect:
        issues.append(make_issue(IssueKind.REDIRECT_WITH_ALL))

    after_all = record.terms_after_all()
    if after_all:
        issues.append(make_issue(IssueKind.TERMS_AFTER_ALL,
                                 " ".join(term.to_text() for term in after_all)))

    if record.terms_of(TermKind.PTR):
        issues.append(make_issue(IssueKind.PTR_MECHANISM))

    if not chain.limit_exceeded and lookup_limit - 1 <= chain.dns_lookups <= lookup_limit:
        issues.append(make_issue(IssueKind.APPROACHING_LOOKUP_LIMIT,
                                 f"{chain.dns_lookups} of {lookup_limit}"))

    failure_kinds = {
        FAILURE_MISSING: IssueKind.INCLUDE_MISSING_RECORD,
        FAILURE_INVALID: IssueKind.INCLUDE_INVALID_RECORD,
        FAILURE_LOOKUP: IssueKind.LOOKUP_FAILED,
    }
    reported = set()
    for failure in chain.failures:
        if (failure.kind, failure.domain) in reported:
            continue
        reported.add((failure.kind, failure.domain))
        if failure.kind == FAILURE_INVALID:
            detail = f"{failure.domain} ({failure.message})"
        else:
            detail = failure.domain
        issues.append(make_issue(failure_kinds[failure.kind], detail))

    if chain.timed_out:
        issues.append(make_issue(IssueKind.RESOLUTION_TIMEOUT,
                                 f"{len(chain.unresolved)} terms not evaluated"))

    return issues
