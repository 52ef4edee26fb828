from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple
import logging
import time

from spf_inspector.modules.dns_resolver import (
    DNSLookupError,
    LookupTimeout,
    RecordNotFound,
    TXTResolver,
)
from spf_inspector.modules.spf_parser import (
    CHAIN_KINDS,
    SpfRecord,
    SpfTerm,
    TermKind,
    is_spf_record,
    parse_spf_record,
)

# Configure module logger
logger = logging.getLogger(__name__)

DNS_LOOKUP_LIMIT = 10
DEFAULT_DEADLINE = 5.0  # seconds per request

# Ways a followed domain can fail to yield a usable record
FAILURE_MISSING = 'missing'
FAILURE_INVALID = 'invalid'
FAILURE_LOOKUP = 'lookup_failed'


def normalize_domain(domain: str) -> str:
    """Lowercases a domain and strips surrounding whitespace and one trailing dot"""
    domain = domain.strip()
    if domain.endswith('.'):
        domain = domain[:-1]
    return domain.lower()


def select_spf_records(txt_records: List[str]) -> List[str]:
    """Returns the TXT strings that are SPF records, in resolver order"""
    return [txt for txt in txt_records if is_spf_record(txt)]


@dataclass(frozen=True)
class ResolutionNode:
    domain: str
    record: Optional[SpfRecord]
    lookup_cost: int
    depth: int
    via: str = 'root'
    error: Optional[str] = None


@dataclass(frozen=True)
class ChainFailure:
    domain: str
    kind: str
    message: str


@dataclass
class ChainResult:
    """Outcome of expanding one domain's SPF chain"""
    domain: str
    root_record: Optional[SpfRecord] = None
    spf_records: List[str] = field(default_factory=list)
    nodes: List[ResolutionNode] = field(default_factory=list)
    dns_lookups: int = 0
    limit_exceeded: bool = False
    timed_out: bool = False
    cycles: List[Tuple[str, str]] = field(default_factory=list)
    failures: List[ChainFailure] = field(default_factory=list)
    unresolved: List[Tuple[str, SpfTerm]] = field(default_factory=list)
    root_error: Optional[str] = None

    @property
    def has_record(self) -> bool:
        return self.root_record is not None


@dataclass
class _WalkState:
    result: ChainResult
    deadline: float
    path: Set[str]
    halted: bool = False


class SPFChainResolver:
    """
    Expands include/redirect chains depth first, in record order, under a
    DNS lookup budget and a per-request deadline.

    The resolver holds no per-request state, so one instance can serve
    concurrent requests.
    """

    def __init__(self, txt_resolver: TXTResolver, lookup_limit: int = DNS_LOOKUP_LIMIT,
                 deadline: float = DEFAULT_DEADLINE,
                 clock: Callable[[], float] = time.monotonic):
        self.txt_resolver = txt_resolver
        self.lookup_limit = lookup_limit
        self.deadline = deadline
        self.clock = clock

    def resolve(self, domain: str) -> ChainResult:
        """
        Fetches the SPF record published by a domain and expands its chain.

        Args:
            domain (str): The domain to evaluate

        Returns:
            ChainResult: The trace, lookup count and every problem met on the way
        """
        domain = normalize_domain(domain)
        state = self._new_state(domain)
        result = state.result

        try:
            txt_records = self.txt_resolver.lookup_txt(domain, timeout=self._remaining(state))
        except RecordNotFound:
            logger.info(f"No TXT records published by {domain}")
            return result
        except DNSLookupError as e:
            logger.warning(f"Could not fetch TXT records for {domain}: {e.message}")
            result.root_error = e.message
            return result

        result.spf_records = select_spf_records(txt_records)
        if not result.spf_records:
            logger.info(f"No SPF record published by {domain}")
            return result
        if len(result.spf_records) > 1:
            logger.info(f"{domain} publishes {len(result.spf_records)} SPF records, using the first")

        self._evaluate(state, result.spf_records[0])
        return result

    def resolve_record(self, domain: str, raw: str) -> ChainResult:
        """
        Expands the chain of a record supplied by the caller instead of the
        one published in DNS.

        Args:
            domain (str): The domain the record is meant for
            raw (str): The record text

        Returns:
            ChainResult: The trace, lookup count and every problem met on the way
        """
        state = self._new_state(normalize_domain(domain))
        state.result.spf_records = [raw]
        self._evaluate(state, raw)
        return state.result

    def _new_state(self, domain: str) -> _WalkState:
        return _WalkState(
            result=ChainResult(domain=domain),
            deadline=self.clock() + self.deadline,
            path={domain},
        )

    def _remaining(self, state: _WalkState) -> float:
        return max(0.0, state.deadline - self.clock())

    def _evaluate(self, state: _WalkState, raw: str) -> None:
        result = state.result
        record = parse_spf_record(raw, result.domain)
        result.root_record = record
        result.nodes.append(ResolutionNode(result.domain, record, 0, 0))

        if record.has_version:
            self._walk(state, record, 0)

        logger.debug(f"SPF chain for {result.domain}: {len(result.nodes)} records, "
                     f"{result.dns_lookups} DNS lookups")

    def _walk(self, state: _WalkState, record: SpfRecord, depth: int) -> None:
        result = state.result

        for term in record.terms:
            if state.halted:
                result.unresolved.append((record.domain, term))
                continue
            # A redirect is charged here, when it is followed
            cost = 1 if term.kind is TermKind.REDIRECT else term.lookup_cost
            if not cost:
                continue

            result.dns_lookups += cost
            if result.dns_lookups > self.lookup_limit:
                logger.info(f"DNS lookup limit of {self.lookup_limit} exceeded "
                            f"while evaluating {result.domain}")
                result.limit_exceeded = True
                state.halted = True
                result.unresolved.append((record.domain, term))
                continue

            if term.kind in CHAIN_KINDS:
                self._follow(state, record.domain, term, depth + 1)

    def _follow(self, state: _WalkState, source: str, term: SpfTerm, depth: int) -> None:
        result = state.result
        target = normalize_domain(term.value)
        via = term.kind.value

        if '%' in target:
            # Macro targets depend on the message being evaluated
            logger.debug(f"Not expanding macro target {target} in {source}")
            return

        if target in state.path:
            logger.info(f"SPF {via} loop: {source} -> {target}")
            result.cycles.append((source, target))
            return

        remaining = self._remaining(state)
        if remaining <= 0:
            self._time_out(state, source, term)
            return

        try:
            txt_records = self.txt_resolver.lookup_txt(target, timeout=remaining)
        except RecordNotFound as e:
            self._fail(state, target, depth, via, FAILURE_MISSING, e.message)
            return
        except LookupTimeout as e:
            if self._remaining(state) <= 0:
                self._time_out(state, source, term)
            else:
                self._fail(state, target, depth, via, FAILURE_LOOKUP, e.message)
            return
        except DNSLookupError as e:
            self._fail(state, target, depth, via, FAILURE_LOOKUP, e.message)
            return

        spf_records = select_spf_records(txt_records)
        if not spf_records:
            self._fail(state, target, depth, via, FAILURE_MISSING,
                       f"{target} does not publish an SPF record")
            return

        record = parse_spf_record(spf_records[0], target)
        result.nodes.append(ResolutionNode(target, record, 1, depth, via))
        if not record.syntax_valid:
            result.failures.append(ChainFailure(target, FAILURE_INVALID, record.syntax_error))

        state.path.add(target)
        try:
            self._walk(state, record, depth)
        finally:
            state.path.discard(target)

    def _fail(self, state: _WalkState, domain: str, depth: int, via: str,
              kind: str, message: str) -> None:
        logger.info(f"SPF {via} target unusable: {message}")
        state.result.nodes.append(ResolutionNode(domain, None, 1, depth, via, message))
        state.result.failures.append(ChainFailure(domain, kind, message))

    def _time_out(self, state: _WalkState, source: str, term: SpfTerm) -> None:
        logger.warning(f"SPF evaluation of {state.result.domain} exceeded its "
                       f"{self.deadline:.1f}s deadline")
        state.result.timed_out = True
        state.halted = True
        state.result.unresolved.append((source, term))
