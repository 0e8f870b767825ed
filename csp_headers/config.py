import json
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from csp_headers.exceptions import ConfigError
from csp_headers.schemas.policy import HeaderPolicy

logger = logging.getLogger(__name__)


def _reject_duplicate_keys(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise ConfigError(f"duplicate key in JSON configuration: {key!r}")
        result[key] = value
    return result


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "CSP Headers"
    DEBUG: bool = False

    # Server
    # Default to 0.0.0.0 for development, use env var HOST in production
    HOST: str = "0.0.0.0"  # nosec: B104
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # Also log to this file when set

    # Content Security Policy
    CSP_ENFORCE: bool = False  # Report-only until explicitly enforced
    CSP_REPORT_URI: Optional[str] = None
    CSP_REPORT_TO: Optional[str] = None  # Reporting API group name
    CSP_REPORT_TO_ENDPOINT: Optional[str] = None
    CSP_SOURCE_LISTS: Annotated[Optional[Dict[str, List[str]]], NoDecode] = None  # JSON
    CSP_NONCE_DIRECTIVES: Optional[List[str]] = None  # JSON
    CSP_VALUELESS_DIRECTIVES: Optional[List[str]] = None  # JSON
    CSP_POLICY_FILE: Optional[str] = None  # JSON file, overrides the values above

    # Strict-Transport-Security
    HSTS_MAX_AGE: int = 63072000  # 2 years
    HSTS_INCLUDE_SUBDOMAINS: bool = True
    HSTS_PRELOAD: bool = False

    # Other headers
    PERMISSIONS_POLICY: Annotated[Optional[Dict[str, List[str]]], NoDecode] = None  # JSON
    REFERRER_POLICY: str = "strict-origin-when-cross-origin"
    FRAME_OPTIONS: Optional[str] = "SAMEORIGIN"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("CSP_SOURCE_LISTS", "PERMISSIONS_POLICY", mode="before")
    @classmethod
    def decode_json_mapping(cls, value):
        """Decode JSON env values, rejecting a directive or feature declared twice."""
        if isinstance(value, str):
            try:
                return json.loads(value, object_pairs_hook=_reject_duplicate_keys)
            except json.JSONDecodeError as e:
                raise ValueError(f"not valid JSON: {e}") from e
        return value

    def policy_values(self) -> Dict[str, Any]:
        """Map the environment settings onto HeaderPolicy field names."""
        values: Dict[str, Any] = {
            "enforce": self.CSP_ENFORCE,
            "report_uri": self.CSP_REPORT_URI,
            "report_to": self.CSP_REPORT_TO,
            "report_to_endpoint": self.CSP_REPORT_TO_ENDPOINT,
            "hsts_max_age": self.HSTS_MAX_AGE,
            "hsts_include_subdomains": self.HSTS_INCLUDE_SUBDOMAINS,
            "hsts_preload": self.HSTS_PRELOAD,
            "referrer_policy": self.REFERRER_POLICY,
            "frame_options": self.FRAME_OPTIONS or None,
        }
        # Unset JSON options fall back to the HeaderPolicy defaults
        optional = {
            "source_lists": self.CSP_SOURCE_LISTS,
            "nonce_directives": self.CSP_NONCE_DIRECTIVES,
            "valueless_directives": self.CSP_VALUELESS_DIRECTIVES,
            "permissions_policy_features": self.PERMISSIONS_POLICY,
        }
        values.update({k: v for k, v in optional.items() if v is not None})
        return values


def read_policy_file(path: str) -> Dict[str, Any]:
    """
    Read a JSON policy file.

    Duplicate keys are rejected instead of silently keeping the last one,
    so a directive cannot be declared twice.

    Raises:
        ConfigError: If the file is missing, not JSON, or not an object
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read policy file {path}: {e}") from e

    try:
        data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as e:
        raise ConfigError(f"policy file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"policy file {path} must contain a JSON object")
    return data


def build_policy(values: Dict[str, Any]) -> HeaderPolicy:
    """
    Validate raw configuration values into a HeaderPolicy.

    Raises:
        ConfigError: With the validation details when any value is invalid
    """
    try:
        return HeaderPolicy(**values)
    except ValidationError as e:
        raise ConfigError(f"invalid security header configuration: {e}") from e


def load_policy(app_settings: Optional[Settings] = None) -> HeaderPolicy:
    """
    Load the header policy once at startup.

    Values come from the environment (Settings); when CSP_POLICY_FILE is set,
    its keys override the environment values.
    """
    app_settings = app_settings or Settings()
    values = app_settings.policy_values()

    if app_settings.CSP_POLICY_FILE:
        values.update(read_policy_file(app_settings.CSP_POLICY_FILE))
        logger.info(f"Loaded header policy file {app_settings.CSP_POLICY_FILE}")

    return build_policy(values)


settings = Settings()  # type: ignore
