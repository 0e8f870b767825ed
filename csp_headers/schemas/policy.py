"""
Header policy schema.

Validated, immutable description of every security header the
application emits. Built once at startup from Settings (or a JSON
policy file) and shared read-only by all requests.
"""

import re
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DIRECTIVE_NAME_RE = re.compile(r"^[a-z][a-z0-9-]*$")
FEATURE_NAME_RE = re.compile(r"^[a-z][a-z0-9-]*$")
REPORT_GROUP_RE = re.compile(r"^[A-Za-z0-9_-]+$")
# Characters that would end a source expression or a directive
SOURCE_FORBIDDEN_RE = re.compile(r"[\s;,\x00-\x1f\x7f]")

# Composed from report_uri / report_to, never configured as source lists
REPORTING_DIRECTIVES = {"report-uri", "report-to"}
# Directives that govern <script> elements
SCRIPT_DIRECTIVES = ("script-src", "script-src-elem")

ReferrerPolicyName = Literal[
    "no-referrer",
    "no-referrer-when-downgrade",
    "origin",
    "origin-when-cross-origin",
    "same-origin",
    "strict-origin",
    "strict-origin-when-cross-origin",
    "unsafe-url",
]

HSTS_PRELOAD_MIN_AGE = 31536000  # 1 year

DEFAULT_SOURCE_LISTS: Dict[str, List[str]] = {
    "default-src": ["'self'"],
    "base-uri": ["'self'"],
    "object-src": ["'none'"],
    "form-action": ["'self'"],
    "frame-ancestors": ["'none'"],
    "script-src": ["'self'"],
    "script-src-elem": ["'self'"],
    "style-src": ["'self'", "'unsafe-inline'"],
    "img-src": ["'self'", "data:", "blob:", "https:"],
    "font-src": ["'self'", "data:"],
    "connect-src": ["'self'"],
    "frame-src": ["'self'"],
    "worker-src": ["'self'", "blob:"],
}

DEFAULT_PERMISSIONS_POLICY: Dict[str, List[str]] = {
    "accelerometer": [],
    "autoplay": [],
    "camera": [],
    "encrypted-media": [],
    "fullscreen": ["self"],
    "geolocation": [],
    "gyroscope": [],
    "magnetometer": [],
    "microphone": [],
    "midi": [],
    "payment": [],
    "picture-in-picture": [],
    "sync-xhr": [],
    "usb": [],
    "xr-spatial-tracking": [],
}


class HeaderPolicy(BaseModel):
    """
    Static configuration for the composed security headers.

    Field names follow the recognized configuration options:
    - enforce: Content-Security-Policy instead of the report-only header
    - source_lists: directive name -> ordered source expressions
    - nonce_directives: directives that receive the request nonce
    - valueless_directives: directives emitted by name only
    - report_uri / report_to / report_to_endpoint: violation reporting
    - hsts_*: Strict-Transport-Security
    - permissions_policy_features: feature -> allow-list (empty = denied)
    - referrer_policy: Referrer-Policy value
    - frame_options: X-Frame-Options value, None to omit
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enforce: bool = False
    source_lists: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_SOURCE_LISTS.items()}
    )
    nonce_directives: Tuple[str, ...] = ("script-src", "script-src-elem")
    valueless_directives: Tuple[str, ...] = ("upgrade-insecure-requests",)
    report_uri: Optional[str] = None
    report_to: Optional[str] = None
    report_to_endpoint: Optional[str] = None

    hsts_max_age: int = Field(default=63072000, ge=0)
    hsts_include_subdomains: bool = True
    hsts_preload: bool = False

    permissions_policy_features: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            k: list(v) for k, v in DEFAULT_PERMISSIONS_POLICY.items()
        }
    )
    referrer_policy: ReferrerPolicyName = "strict-origin-when-cross-origin"
    frame_options: Optional[Literal["DENY", "SAMEORIGIN"]] = "SAMEORIGIN"

    @field_validator("source_lists")
    @classmethod
    def validate_source_lists(cls, value: Dict[str, List[str]]):
        for directive, sources in value.items():
            if not DIRECTIVE_NAME_RE.match(directive):
                raise ValueError(f"invalid directive name: {directive!r}")
            if directive in REPORTING_DIRECTIVES:
                raise ValueError(
                    f"{directive} is composed from report_uri/report_to, "
                    "not from source_lists"
                )
            if not sources:
                raise ValueError(f"source list for {directive} is empty")
            seen = set()
            for source in sources:
                if not source or SOURCE_FORBIDDEN_RE.search(source):
                    raise ValueError(
                        f"invalid source {source!r} in {directive}"
                    )
                if source.lower().startswith("'nonce-"):
                    raise ValueError(
                        f"static nonce {source!r} in {directive}; "
                        "list it in nonce_directives instead"
                    )
                if source in seen:
                    raise ValueError(f"duplicate source {source!r} in {directive}")
                seen.add(source)
        return value

    @field_validator("nonce_directives", "valueless_directives")
    @classmethod
    def validate_directive_names(cls, value: Tuple[str, ...]):
        if len(set(value)) != len(value):
            raise ValueError("duplicate directive name")
        for directive in value:
            if not DIRECTIVE_NAME_RE.match(directive):
                raise ValueError(f"invalid directive name: {directive!r}")
        return value

    @field_validator("permissions_policy_features")
    @classmethod
    def validate_permissions_policy(cls, value: Dict[str, List[str]]):
        for feature, allow_list in value.items():
            if not FEATURE_NAME_RE.match(feature):
                raise ValueError(f"invalid permissions policy feature: {feature!r}")
            for origin in allow_list:
                if not origin or SOURCE_FORBIDDEN_RE.search(origin) or '"' in origin:
                    raise ValueError(f"invalid allow-list entry {origin!r} for {feature}")
        return value

    @field_validator("report_uri", "report_to_endpoint")
    @classmethod
    def validate_uri(cls, value: Optional[str]):
        if value is not None and (not value or SOURCE_FORBIDDEN_RE.search(value)):
            raise ValueError(f"invalid reporting URI: {value!r}")
        return value

    @field_validator("report_to")
    @classmethod
    def validate_report_group(cls, value: Optional[str]):
        if value is not None and not REPORT_GROUP_RE.match(value):
            raise ValueError(f"invalid report-to group name: {value!r}")
        return value

    @model_validator(mode="after")
    def validate_consistency(self):
        overlap = set(self.source_lists) & set(self.valueless_directives)
        if overlap:
            raise ValueError(
                f"directive declared with and without a value: {sorted(overlap)}"
            )
        reporting = REPORTING_DIRECTIVES & set(self.valueless_directives)
        if reporting:
            raise ValueError(
                f"{sorted(reporting)} are composed from report_uri/report_to, "
                "not from valueless_directives"
            )
        # Script tags get the request nonce, so the header must allow it
        if "script-src" not in self.source_lists:
            raise ValueError("source_lists must define script-src")
        for directive in SCRIPT_DIRECTIVES:
            if directive in self.source_lists and directive not in self.nonce_directives:
                raise ValueError(f"{directive} must be listed in nonce_directives")
        if self.report_to_endpoint and not self.report_to:
            raise ValueError("report_to_endpoint requires report_to")
        if self.hsts_preload:
            if not self.hsts_include_subdomains:
                raise ValueError("hsts_preload requires hsts_include_subdomains")
            if self.hsts_max_age < HSTS_PRELOAD_MIN_AGE:
                raise ValueError(
                    f"hsts_preload requires hsts_max_age >= {HSTS_PRELOAD_MIN_AGE}"
                )
        return self
