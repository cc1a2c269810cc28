"""
Kiosk Registration Backend Client
Obtains a service token and registers/updates citizens in the kiosk backend.

Both endpoints answer with an envelope:
    {"statusCode": <int>, "success": <bool>, "result": {...}, "message": "..."}

HTTP 200 does not mean the call succeeded; the envelope always decides.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from .settings import KioskConfig
from .sync_models import ErrorClass, SyncStep, UserProfile

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/Auth/token"
REGISTER_PATH = "/api/User/register"

STATUS_SUCCESS = 0
STATUS_VALIDATION_ERROR = 4000
STATUS_AUTHORIZATION_ERROR = 4001


class KioskError(Exception):
    """Raised when a kiosk call fails at transport, HTTP or envelope level"""

    def __init__(self, step: SyncStep, error_class: ErrorClass, message_key: str,
                 error: str, status_code: Optional[int] = None,
                 body: Optional[str] = None, upstream_message: Optional[str] = None):
        super().__init__(error)
        self.step = step
        self.error_class = error_class
        self.message_key = message_key
        self.error = error
        self.status_code = status_code
        self.body = body
        self.upstream_message = upstream_message


class KioskClient:
    """Client for the kiosk backend (static service credentials)"""

    def __init__(self, config: KioskConfig, client: httpx.Client):
        self.base_url = config.base_url
        self.credentials = config.credentials
        self.client = client

    def _post(self, step: SyncStep, path: str, payload: Dict[str, Any],
              headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        try:
            return self.client.post(f"{self.base_url}{path}", json=payload, headers=request_headers)
        except httpx.TimeoutException:
            logger.error(f"Kiosk {step.value} request timed out")
            raise KioskError(step, ErrorClass.UPSTREAM, _failure_key(step),
                             f"Kiosk {step.value} request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Kiosk {step.value} request failed: {e}")
            raise KioskError(step, ErrorClass.UPSTREAM, _failure_key(step),
                             f"Kiosk {step.value} request failed: {e}")

    def authenticate(self) -> str:
        """Exchange the service credentials for a short-lived bearer token.

        Raises:
            KioskError: unless the envelope carries statusCode 0, success
                true and a non-empty result.token
        """
        step = SyncStep.AUTHENTICATION
        response = self._post(step, AUTH_PATH, {
            "username": self.credentials.username,
            "password": self.credentials.password,
        })

        if not response.is_success:
            logger.error(f"Kiosk authentication failed: {response.status_code}")
            raise KioskError(
                step, ErrorClass.UPSTREAM, "kiosk_auth_failed",
                f"Authentication failed with status {response.status_code}",
                status_code=response.status_code, body=response.text,
            )

        envelope = _decode_envelope(response)
        result = envelope.get("result") if envelope else None
        token = result.get("token") if isinstance(result, dict) else None

        if (envelope is None or envelope.get("statusCode") != STATUS_SUCCESS
                or envelope.get("success") is not True
                or not isinstance(token, str) or not token):
            logger.error(f"Invalid authentication response: {response.text[:500]}")
            raise KioskError(
                step, ErrorClass.UPSTREAM, "kiosk_token_missing",
                "Invalid authentication response",
                status_code=response.status_code, body=response.text,
                upstream_message=envelope.get("message") if envelope else None,
            )

        return token

    def register(self, token: str, profile: UserProfile) -> Dict[str, Any]:
        """Register or update the citizen; returns the success envelope.

        Raises:
            KioskError: classified by envelope statusCode
                (4000 validation, 4001 authorization, other upstream)
        """
        step = SyncStep.REGISTRATION
        payload: Dict[str, Any] = {
            "fullName": profile.full_name,
            "mobileNumber": profile.mobile_number,
            "nationalId": profile.identity_number,
        }
        if profile.email:
            payload["email"] = profile.email

        response = self._post(step, REGISTER_PATH, payload,
                              headers={"Authorization": f"Bearer {token}"})

        if not response.is_success:
            logger.error(f"User registration failed: {response.status_code}")
            logger.error(f"Registration error response: {response.text[:500]}")
            raise KioskError(
                step, ErrorClass.UPSTREAM, "kiosk_register_failed",
                f"Registration failed with status {response.status_code}",
                status_code=response.status_code, body=response.text,
            )

        envelope = _decode_envelope(response)
        if envelope is None:
            raise KioskError(
                step, ErrorClass.UPSTREAM, "kiosk_register_rejected",
                "Registration failed", status_code=response.status_code, body=response.text,
            )

        status = envelope.get("statusCode")
        upstream_message = envelope.get("message")

        if status == STATUS_SUCCESS and envelope.get("success") is True:
            logger.info("User registered successfully")
            return envelope

        if status == STATUS_VALIDATION_ERROR:
            error_class, message_key, error = (
                ErrorClass.VALIDATION, "kiosk_validation_error", "Validation error")
        elif status == STATUS_AUTHORIZATION_ERROR:
            error_class, message_key, error = (
                ErrorClass.AUTHORIZATION, "kiosk_authorization_error", "Authorization error")
        else:
            error_class, message_key, error = (
                ErrorClass.UPSTREAM, "kiosk_register_rejected", "Registration failed")

        logger.error(f"Registration rejected (statusCode={status}): {response.text[:500]}")
        raise KioskError(
            step, error_class, message_key, error,
            status_code=response.status_code, body=response.text,
            upstream_message=upstream_message,
        )


def _failure_key(step: SyncStep) -> str:
    return "kiosk_auth_failed" if step is SyncStep.AUTHENTICATION else "kiosk_register_failed"


def _decode_envelope(response: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
