from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from spf_inspector.modules.dns_resolver import TXTResolver
from spf_inspector.modules.recommendations import get_recommendations
from spf_inspector.modules.spf_chain import (
    DEFAULT_DEADLINE,
    DNS_LOOKUP_LIMIT,
    ChainResult,
    SPFChainResolver,
)
from spf_inspector.modules.spf_issues import Issue, detect_issues

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationReport:
    domain: str
    is_valid: bool
    spf_record: str
    dns_lookups: int
    syntax_valid: bool
    has_soft_fail: bool
    has_hard_fail: bool
    issues: List[Issue] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    timestamp: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "is_valid": self.is_valid,
            "spf_record": self.spf_record,
            "dns_lookups": self.dns_lookups,
            "syntax_valid": self.syntax_valid,
            "has_soft_fail": self.has_soft_fail,
            "has_hard_fail": self.has_hard_fail,
            "issues": [issue.to_dict() for issue in self.issues],
            "recommendations": list(self.recommendations),
            "timestamp": self.timestamp,
        }


def build_report(chain: ChainResult, issues: List[Issue], recommendations: List[str],
                 now: Optional[datetime] = None) -> ValidationReport:
    """
    Assembles the report for a resolved chain.

    Args:
        chain (ChainResult): The resolved SPF chain
        issues (List[Issue]): Detected issues
        recommendations (List[str]): General recommendations
        now (datetime): Generation time, defaults to the current UTC time

    Returns:
        ValidationReport: The final report
    """
    record = chain.root_record
    syntax_valid = record is not None and record.syntax_valid

    all_term = record.all_term if record is not None else None
    qualifier = all_term.qualifier if all_term is not None else None

    if now is None:
        now = datetime.now(timezone.utc)

    return ValidationReport(
        domain=chain.domain,
        is_valid=syntax_valid and not any(issue.is_error for issue in issues),
        spf_record=record.raw if record is not None else "",
        dns_lookups=chain.dns_lookups,
        syntax_valid=syntax_valid,
        has_soft_fail=qualifier == '~',
        has_hard_fail=qualifier == '-',
        issues=list(issues),
        recommendations=list(recommendations),
        timestamp=now.isoformat(),
    )


class SPFValidator:
    """
    Runs the whole SPF analysis for a domain: resolution, issue detection,
    recommendations and report assembly.
    """

    def __init__(self, txt_resolver: TXTResolver, lookup_limit: int = DNS_LOOKUP_LIMIT,
                 deadline: float = DEFAULT_DEADLINE, chain_resolver: Optional[SPFChainResolver] = None):
        self.lookup_limit = lookup_limit
        self.chain_resolver = chain_resolver or SPFChainResolver(
            txt_resolver, lookup_limit=lookup_limit, deadline=deadline
        )

    def validate(self, domain: str) -> ValidationReport:
        """
        Validates the SPF record a domain publishes.

        Args:
            domain (str): A well-formed domain name

        Returns:
            ValidationReport: The diagnostic report
        """
        chain = self.chain_resolver.resolve(domain)
        return self._report(chain)

    def validate_record(self, domain: str, record: str) -> ValidationReport:
        """
        Validates a candidate SPF record for a domain without publishing it.

        Args:
            domain (str): A well-formed domain name
            record (str): The SPF record text to check

        Returns:
            ValidationReport: The diagnostic report
        """
        chain = self.chain_resolver.resolve_record(domain, record)
        return self._report(chain)

    def _report(self, chain: ChainResult) -> ValidationReport:
        issues = detect_issues(chain, self.lookup_limit)
        report = build_report(chain, issues, get_recommendations(issues))
        logger.info(f"SPF validation for {report.domain}: valid={report.is_valid}, "
                    f"lookups={report.dns_lookups}, issues={len(report.issues)}")
        return report
