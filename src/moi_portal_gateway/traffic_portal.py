"""
Traffic Portal Session Bridge.

Performs the three-call handshake the traffic portal's own login page makes
after an external (MOI) login:

1. ValidateUserLogin          {Email, Token}
2. ClaimSharePointUserLogin   {email}
3. ContinueValidateUserLogin  {NationalityType, NationalId}

The portal keeps state in cookies between the calls, so all three must go
through the same httpx client. The portal only answers requests that look
like they come from its own pages, hence the browser headers.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from .settings import PortalConfig
from .sync_models import StepResult, SyncStep

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
SEC_CH_UA = '"Chromium";v="124", "Google Chrome";v="124", "Not-A.Brand";v="99"'

FAILURE_MESSAGE_KEYS = {
    SyncStep.VALIDATE_USER_LOGIN: 'portal_validate_login_failed',
    SyncStep.CLAIM_SHAREPOINT_USER_LOGIN: 'portal_claim_session_failed',
    SyncStep.CONTINUE_VALIDATE_USER_LOGIN: 'portal_continue_validation_failed',
}


class PortalStepError(Exception):
    """Raised when a handshake call fails; carries the step and raw body."""

    def __init__(self, step: SyncStep, error: str, status_code: Optional[int] = None,
                 body: Optional[str] = None):
        super().__init__(error)
        self.step = step
        self.error = error
        self.status_code = status_code
        self.body = body

    @property
    def message_key(self) -> str:
        return FAILURE_MESSAGE_KEYS[self.step]


class TrafficPortalClient:
    """Cookie-carrying client for the portal handshake.

    Use as a context manager so the underlying httpx client (and its cookie
    jar) is released when the sync request ends.
    """

    def __init__(self, config: PortalConfig, client: httpx.Client):
        self.config = config
        self.client = client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def browser_headers(self, email: str, token: str) -> Dict[str, str]:
        """Headers the portal's login page sends with its XHR calls."""
        referer = f"{self.config.url(self.config.external_login_path)}?" + urlencode(
            {"email": email, "token": token}
        )
        return {
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Content-Type": "application/json; charset=UTF-8",
            "Origin": self.config.base_url,
            "Referer": referer,
            "User-Agent": USER_AGENT,
            "sec-ch-ua": SEC_CH_UA,
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": '"Windows"',
            "X-Requested-With": "XMLHttpRequest",
        }

    def _post(self, step: SyncStep, path: str, payload: Dict[str, Any],
              headers: Dict[str, str]) -> StepResult:
        logger.info(f"Traffic portal step {step.value}: POST {path}")
        try:
            response = self.client.post(self.config.url(path), json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Traffic portal step {step.value} timed out")
            raise PortalStepError(step, f"{step.value} request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Traffic portal step {step.value} failed: {e}")
            raise PortalStepError(step, f"{step.value} request failed: {e}")

        if not response.is_success:
            logger.error(f"Traffic portal step {step.value} returned {response.status_code}: "
                         f"{response.text[:500]}")
            raise PortalStepError(
                step,
                f"{step.value} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        return StepResult(step=step, success=True, status_code=response.status_code,
                          body=response.text)

    def validate_user_login(self, email: str, token: str) -> StepResult:
        return self._post(
            SyncStep.VALIDATE_USER_LOGIN,
            self.config.validate_login_path,
            {"Email": email, "Token": token},
            self.browser_headers(email, token),
        )

    def claim_sharepoint_user_login(self, email: str, token: str) -> StepResult:
        return self._post(
            SyncStep.CLAIM_SHAREPOINT_USER_LOGIN,
            self.config.claim_session_path,
            {"email": email},
            self.browser_headers(email, token),
        )

    def continue_validate_user_login(self, email: str, token: str,
                                     nationality_type: int, national_id: str) -> StepResult:
        return self._post(
            SyncStep.CONTINUE_VALIDATE_USER_LOGIN,
            self.config.continue_validation_path,
            {"NationalityType": nationality_type, "NationalId": national_id},
            self.browser_headers(email, token),
        )
