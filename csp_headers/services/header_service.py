"""
Security Header Composition Service

Builds the ordered (name, value) header pairs for one response from the
static HeaderPolicy and the request nonce. Pure functions: the same
policy and token always give byte-identical output.

Headers composed:
- Content-Security-Policy(-Report-Only): nonce-based policy
- Strict-Transport-Security
- Permissions-Policy
- Referrer-Policy
- X-Content-Type-Options / X-Frame-Options
- Reporting-Endpoints (when a report-to endpoint is configured)
"""

from typing import Iterable, List, Optional, Tuple

from csp_headers.schemas.policy import HeaderPolicy

CSP_HEADER = "Content-Security-Policy"
CSP_REPORT_ONLY_HEADER = "Content-Security-Policy-Report-Only"

HeaderSet = List[Tuple[str, str]]


def nonce_source(token: str) -> str:
    """Format the token as a CSP nonce source expression."""
    return f"'nonce-{token}'"


def build_source_list(sources: Iterable[str], token: Optional[str] = None) -> List[str]:
    """Copy a configured source list, appending the nonce source when a token is given."""
    result = list(sources)
    if token:
        result.append(nonce_source(token))
    return result


def build_csp(policy: HeaderPolicy, token: str) -> str:
    """
    Compose the Content-Security-Policy value.

    Directive order: configured source lists, value-less directives,
    then reporting directives.
    """
    directives = []
    for name, sources in policy.source_lists.items():
        nonce = token if name in policy.nonce_directives else None
        directives.append(f"{name} {' '.join(build_source_list(sources, nonce))}")

    directives.extend(policy.valueless_directives)

    if policy.report_uri:
        directives.append(f"report-uri {policy.report_uri}")
    if policy.report_to:
        directives.append(f"report-to {policy.report_to}")

    return "; ".join(directives)


def csp_header_name(policy: HeaderPolicy) -> str:
    """Enforcing or report-only header name (report-only by default)."""
    return CSP_HEADER if policy.enforce else CSP_REPORT_ONLY_HEADER


def build_hsts(policy: HeaderPolicy) -> str:
    parts = [f"max-age={policy.hsts_max_age}"]
    if policy.hsts_include_subdomains:
        parts.append("includeSubDomains")
    if policy.hsts_preload:
        parts.append("preload")
    return "; ".join(parts)


def _allow_list_member(origin: str) -> str:
    # Keywords are bare, origins are quoted strings
    if origin in ("self", "*", "src"):
        return origin
    return f'"{origin}"'


def build_permissions_policy(policy: HeaderPolicy) -> str:
    """Compose Permissions-Policy; an empty allow-list denies the feature."""
    return ", ".join(
        f"{feature}=({' '.join(_allow_list_member(o) for o in allow_list)})"
        for feature, allow_list in policy.permissions_policy_features.items()
    )


def compose_headers(policy: HeaderPolicy, token: str) -> HeaderSet:
    """
    Build every security header for one response.

    Args:
        policy: Validated static header policy
        token: Request nonce, shared by every nonce source in the result

    Returns:
        Ordered list of (header name, header value) pairs
    """
    headers: HeaderSet = [(csp_header_name(policy), build_csp(policy, token))]

    if policy.report_to and policy.report_to_endpoint:
        headers.append(
            (
                "Reporting-Endpoints",
                f'{policy.report_to}="{policy.report_to_endpoint}"',
            )
        )

    headers.append(("Strict-Transport-Security", build_hsts(policy)))

    permissions = build_permissions_policy(policy)
    if permissions:
        headers.append(("Permissions-Policy", permissions))

    headers.append(("Referrer-Policy", policy.referrer_policy))
    headers.append(("X-Content-Type-Options", "nosniff"))

    if policy.frame_options:
        headers.append(("X-Frame-Options", policy.frame_options))

    return headers
