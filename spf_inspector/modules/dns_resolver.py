import dns.resolver
import dns.exception
from typing import List, Optional, Sequence
import logging

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0  # seconds per lookup


class DNSLookupError(Exception):
    """Raised when a TXT lookup fails for any reason other than a timeout"""

    def __init__(self, domain: str, message: str):
        super().__init__(message)
        self.domain = domain
        self.message = message


class RecordNotFound(DNSLookupError):
    """Raised when the domain does not exist or has no TXT records"""


class LookupTimeout(DNSLookupError):
    """Raised when a TXT lookup does not complete within its timeout"""


class TXTResolver:
    """
    TXT lookup capability used by the SPF engine.

    Implementations return every TXT record of a domain as a decoded string
    (multi-string records joined) and raise one of RecordNotFound,
    LookupTimeout or DNSLookupError on failure. They never retry and never
    interpret the record contents.
    """

    def lookup_txt(self, domain: str, timeout: Optional[float] = None) -> List[str]:
        raise NotImplementedError


class DNSPythonResolver(TXTResolver):
    """TXTResolver backed by dnspython"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT,
                 nameservers: Optional[Sequence[str]] = None):
        self.timeout = timeout
        self.nameservers = list(nameservers or [])

    def _create_resolver(self) -> dns.resolver.Resolver:
        # A resolver per lookup keeps concurrent requests free of shared state
        if self.nameservers:
            resolver = dns.resolver.Resolver(configure=False)
            resolver.nameservers = self.nameservers
        else:
            resolver = dns.resolver.Resolver()
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout
        return resolver

    def lookup_txt(self, domain: str, timeout: Optional[float] = None) -> List[str]:
        """
        Fetches the TXT records of a domain.

        Args:
            domain (str): The domain to query
            timeout (float): Overall time allowed for this lookup, capped at
                the resolver's configured timeout

        Returns:
            List[str]: TXT record values in the order the resolver returned them
        """
        lifetime = self.timeout if timeout is None else min(timeout, self.timeout)
        resolver = self._create_resolver()

        try:
            answers = resolver.resolve(domain, 'TXT', lifetime=lifetime)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            raise RecordNotFound(domain, f"No TXT records found for {domain}") from e
        except dns.exception.Timeout as e:
            logger.warning(f"DNS timeout resolving TXT for {domain} after {lifetime:.1f}s")
            raise LookupTimeout(domain, f"DNS timeout resolving {domain}") from e
        except dns.exception.DNSException as e:
            logger.warning(f"DNS error resolving TXT for {domain}: {str(e)}")
            raise DNSLookupError(domain, f"DNS error resolving {domain}: {str(e)}") from e

        records = []
        for rdata in answers:
            records.append(b"".join(rdata.strings).decode("utf-8", errors="replace"))
        return records
