from typing import List, Sequence

from spf_inspector.modules.spf_issues import Issue

BASELINE_RECOMMENDATIONS = (
    "Implement DKIM signing and publish a DMARC policy alongside SPF to fully protect your domain "
    "against spoofing.",
    "Monitor email deliverability and DMARC aggregate reports to catch authentication failures early.",
    "Test SPF changes in a staging environment or on a subdomain before applying them to production.",
)


def get_recommendations(issues: Sequence[Issue]) -> List[str]:
    """
    Returns the general recommendations included with every report.

    Issue-specific advice travels inside each Issue, so the detected issues
    do not change this list.
    """
    return list(BASELINE_RECOMMENDATIONS)
