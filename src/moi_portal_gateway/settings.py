"""Typed configuration for the MOI proxy and the traffic-sync integrations.

Environment variables (see .env.defaults):
- MOI_API_BASE_URL / MOI_API_TIMEOUT_SECONDS: upstream identity provider.
- TRAFFIC_SYNC_ENABLED: global toggle for both traffic-sync variants.
- TRAFFIC_SYNC_BASE_URL / TRAFFIC_SYNC_USERNAME / TRAFFIC_SYNC_PASSWORD:
  kiosk backend and its static service credentials (required, no defaults).
- TRAFFIC_PORTAL_*: traffic portal handshake and browser automation.

Security:
- Never log the kiosk password or portal passwords.
- Missing required values raise ConfigurationError instead of being defaulted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .config_defaults import get_bool, get_float, get_int, get_setting


DEFAULT_MOI_API_BASE_URL = "https://webapi.moi.gov.eg"
DEFAULT_TIMEOUT_SECONDS = 20.0


class ConfigurationError(Exception):
    """Raised when a required setting is missing."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


@dataclass(frozen=True)
class MoiConfig:
    api_base_url: str
    timeout_seconds: float


@dataclass(frozen=True)
class KioskCredentials:
    """Static service account for the kiosk backend."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class KioskConfig:
    base_url: str
    credentials: KioskCredentials
    timeout_seconds: float


@dataclass(frozen=True)
class PortalConfig:
    base_url: str
    validate_login_path: str
    claim_session_path: str
    continue_validation_path: str
    external_login_path: str
    login_page_path: str
    post_login_url: str
    timeout_seconds: float
    browser_automation: bool
    materializer: str
    headless: bool
    reload_count: int
    reload_delay_ms: int
    browser_timeout_seconds: float

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"


def is_traffic_sync_enabled() -> bool:
    return get_bool("TRAFFIC_SYNC_ENABLED", True)


def get_moi_config() -> MoiConfig:
    base_url = get_setting("MOI_API_BASE_URL", DEFAULT_MOI_API_BASE_URL).rstrip("/")
    return MoiConfig(
        api_base_url=base_url,
        timeout_seconds=get_float("MOI_API_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
    )


def get_kiosk_config() -> KioskConfig:
    """Build the kiosk backend config.

    Raises:
        ConfigurationError: if base URL, username or password is missing
    """
    base_url = get_setting("TRAFFIC_SYNC_BASE_URL")
    username = get_setting("TRAFFIC_SYNC_USERNAME")
    password = get_setting("TRAFFIC_SYNC_PASSWORD")

    missing = [
        key for key, value in (
            ("TRAFFIC_SYNC_BASE_URL", base_url),
            ("TRAFFIC_SYNC_USERNAME", username),
            ("TRAFFIC_SYNC_PASSWORD", password),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing environment variables for traffic sync: {', '.join(missing)}",
            missing,
        )

    return KioskConfig(
        base_url=base_url.rstrip("/"),
        credentials=KioskCredentials(username=username, password=password),
        timeout_seconds=get_float("TRAFFIC_SYNC_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
    )


def get_portal_config() -> PortalConfig:
    """Build the traffic portal config.

    Raises:
        ConfigurationError: if TRAFFIC_PORTAL_BASE_URL is missing
    """
    base_url = get_setting("TRAFFIC_PORTAL_BASE_URL")
    if not base_url:
        raise ConfigurationError(
            "Missing environment variables for traffic portal: TRAFFIC_PORTAL_BASE_URL",
            ["TRAFFIC_PORTAL_BASE_URL"],
        )

    return PortalConfig(
        base_url=base_url.rstrip("/"),
        validate_login_path=get_setting(
            "TRAFFIC_PORTAL_VALIDATE_LOGIN_PATH", "/Account/ValidateUserLogin"),
        claim_session_path=get_setting(
            "TRAFFIC_PORTAL_CLAIM_SESSION_PATH", "/Account/ClaimSharePointUserLogin"),
        continue_validation_path=get_setting(
            "TRAFFIC_PORTAL_CONTINUE_VALIDATION_PATH", "/Account/ContinueValidateUserLogin"),
        external_login_path=get_setting(
            "TRAFFIC_PORTAL_EXTERNAL_LOGIN_PATH", "/Account/ExternalLogin"),
        login_page_path=get_setting("TRAFFIC_PORTAL_LOGIN_PAGE_PATH", "/Account/Login"),
        post_login_url=get_setting("TRAFFIC_PORTAL_POST_LOGIN_URL", "**/Home/**"),
        timeout_seconds=get_float("TRAFFIC_PORTAL_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        browser_automation=get_bool("TRAFFIC_PORTAL_BROWSER_AUTOMATION", False),
        materializer=get_setting("TRAFFIC_PORTAL_MATERIALIZER", "playwright"),
        headless=get_bool("PLAYWRIGHT_HEADLESS", True),
        reload_count=get_int("TRAFFIC_PORTAL_RELOAD_COUNT", 10),
        reload_delay_ms=get_int("TRAFFIC_PORTAL_RELOAD_DELAY_MS", 3000),
        browser_timeout_seconds=get_float("TRAFFIC_PORTAL_BROWSER_TIMEOUT_SECONDS", 120.0),
    )
