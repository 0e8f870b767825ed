"""Tests for security header composition."""
import re

import pytest
from pydantic import ValidationError

from csp_headers.schemas.policy import HeaderPolicy
from csp_headers.services.header_service import (
    build_csp,
    build_hsts,
    build_permissions_policy,
    compose_headers,
    csp_header_name,
)

NONCE_SOURCE_RE = re.compile(r"'nonce-([^']+)'")


def directive_names(csp: str) -> list:
    return [part.split()[0] for part in csp.split("; ")]


class TestBuildCSP:
    def test_nonce_appended_to_script_src(self):
        policy = HeaderPolicy(source_lists={"script-src": ["'self'"]})
        assert build_csp(policy, "n1") == (
            "script-src 'self' 'nonce-n1'; upgrade-insecure-requests"
        )

    def test_default_policy(self):
        csp = build_csp(HeaderPolicy(), "tok")
        assert csp == (
            "default-src 'self'; "
            "base-uri 'self'; "
            "object-src 'none'; "
            "form-action 'self'; "
            "frame-ancestors 'none'; "
            "script-src 'self' 'nonce-tok'; "
            "script-src-elem 'self' 'nonce-tok'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob: https:; "
            "font-src 'self' data:; "
            "connect-src 'self'; "
            "frame-src 'self'; "
            "worker-src 'self' blob:; "
            "upgrade-insecure-requests"
        )

    def test_no_duplicate_directives(self):
        policy = HeaderPolicy(
            report_uri="https://reports.example.com/csp",
            report_to="csp",
            report_to_endpoint="https://reports.example.com/csp",
        )
        names = directive_names(build_csp(policy, "tok"))
        assert len(names) == len(set(names))

    def test_every_nonce_uses_the_same_token(self):
        policy = HeaderPolicy(
            nonce_directives=("script-src", "script-src-elem", "style-src")
        )
        csp = build_csp(policy, "tok123")
        assert NONCE_SOURCE_RE.findall(csp) == ["tok123", "tok123", "tok123"]

    def test_policy_without_script_src_is_rejected(self):
        with pytest.raises(ValidationError):
            HeaderPolicy(source_lists={"default-src": ["'self'"]})

    def test_script_directive_without_nonce_is_rejected(self):
        with pytest.raises(ValidationError):
            HeaderPolicy(nonce_directives=("script-src",))

    def test_nonce_directive_missing_from_source_lists_is_ignored(self):
        policy = HeaderPolicy(
            source_lists={"script-src": ["'self'"]},
            nonce_directives=("script-src", "style-src"),
        )
        assert build_csp(policy, "tok") == (
            "script-src 'self' 'nonce-tok'; upgrade-insecure-requests"
        )

    def test_reporting_directives_come_last(self):
        policy = HeaderPolicy(
            source_lists={"script-src": ["'self'"]},
            report_uri="https://reports.example.com/csp",
            report_to="csp-endpoint",
        )
        assert build_csp(policy, "tok") == (
            "script-src 'self' 'nonce-tok'; upgrade-insecure-requests; "
            "report-uri https://reports.example.com/csp; report-to csp-endpoint"
        )

    def test_deterministic(self):
        policy = HeaderPolicy(report_uri="https://reports.example.com/csp")
        assert compose_headers(policy, "tok") == compose_headers(policy, "tok")


class TestHeaderName:
    def test_report_only_by_default(self):
        assert csp_header_name(HeaderPolicy()) == "Content-Security-Policy-Report-Only"

    def test_enforce(self):
        assert csp_header_name(HeaderPolicy(enforce=True)) == "Content-Security-Policy"

    def test_same_value_in_both_modes(self):
        report_only = dict(compose_headers(HeaderPolicy(), "tok"))
        enforcing = dict(compose_headers(HeaderPolicy(enforce=True), "tok"))
        assert "Content-Security-Policy" not in report_only
        assert "Content-Security-Policy-Report-Only" not in enforcing
        assert (
            report_only["Content-Security-Policy-Report-Only"]
            == enforcing["Content-Security-Policy"]
        )


class TestOtherHeaders:
    def test_default_hsts(self):
        assert build_hsts(HeaderPolicy()) == "max-age=63072000; includeSubDomains"

    def test_hsts_preload(self):
        assert build_hsts(HeaderPolicy(hsts_preload=True)) == (
            "max-age=63072000; includeSubDomains; preload"
        )

    def test_hsts_without_subdomains(self):
        policy = HeaderPolicy(hsts_max_age=300, hsts_include_subdomains=False)
        assert build_hsts(policy) == "max-age=300"

    def test_default_permissions_policy_denies_features(self):
        assert build_permissions_policy(HeaderPolicy()) == (
            "accelerometer=(), autoplay=(), camera=(), encrypted-media=(), "
            "fullscreen=(self), geolocation=(), gyroscope=(), magnetometer=(), "
            "microphone=(), midi=(), payment=(), picture-in-picture=(), "
            "sync-xhr=(), usb=(), xr-spatial-tracking=()"
        )

    def test_permissions_policy_origins_are_quoted(self):
        policy = HeaderPolicy(
            permissions_policy_features={
                "geolocation": ["self", "https://maps.example.com"],
                "camera": ["*"],
            }
        )
        assert build_permissions_policy(policy) == (
            'geolocation=(self "https://maps.example.com"), camera=(*)'
        )

    def test_compose_headers_order_and_values(self):
        headers = compose_headers(HeaderPolicy(), "tok")
        assert [name for name, _ in headers] == [
            "Content-Security-Policy-Report-Only",
            "Strict-Transport-Security",
            "Permissions-Policy",
            "Referrer-Policy",
            "X-Content-Type-Options",
            "X-Frame-Options",
        ]
        values = dict(headers)
        assert values["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert values["X-Frame-Options"] == "SAMEORIGIN"

    def test_frame_options_can_be_disabled(self):
        names = [name for name, _ in compose_headers(HeaderPolicy(frame_options=None), "t")]
        assert "X-Frame-Options" not in names

    def test_empty_permissions_policy_is_omitted(self):
        policy = HeaderPolicy(permissions_policy_features={})
        names = [name for name, _ in compose_headers(policy, "t")]
        assert "Permissions-Policy" not in names

    def test_reporting_endpoints_header(self):
        policy = HeaderPolicy(
            report_to="csp",
            report_to_endpoint="https://reports.example.com/csp",
        )
        values = dict(compose_headers(policy, "t"))
        assert values["Reporting-Endpoints"] == 'csp="https://reports.example.com/csp"'
        assert values["Content-Security-Policy-Report-Only"].endswith("; report-to csp")
