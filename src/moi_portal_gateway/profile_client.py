"""
MOI Profile Client
Fetches the signed-in citizen's profile from the MOI web API
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

PROFILE_PATH = "/api/MoiProfileApi/GetProfile"


class ProfileFetchError(Exception):
    """Raised when the profile endpoint fails or returns an unusable envelope"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: Optional[str] = None, upstream_message: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.upstream_message = upstream_message


class SessionExpiredError(ProfileFetchError):
    """Raised when MOI rejects the citizen's access token (HTTP 401)"""


class ProfileClient:
    """Client for the MOI profile endpoint (bearer token auth)"""

    def __init__(self, api_base_url: str, client: httpx.Client):
        self.api_base_url = api_base_url.rstrip("/")
        self.client = client

    def fetch_profile(self, member_id: str, access_token: str) -> Dict[str, Any]:
        """Return the `data` object of the profile envelope.

        Raises:
            SessionExpiredError: on HTTP 401
            ProfileFetchError: on any other non-2xx status, transport error,
                or an envelope without `status == 1` and a `data` object
        """
        try:
            response = self.client.get(
                f"{self.api_base_url}{PROFILE_PATH}",
                params={"memberId": member_id},
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException:
            logger.error("Profile API timeout")
            raise ProfileFetchError("Profile API request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Profile API request failed: {e}")
            raise ProfileFetchError(f"Profile API request failed: {e}")

        if response.status_code == 401:
            logger.warning("Profile API rejected access token (401)")
            raise SessionExpiredError(
                "Token expired or invalid", status_code=401, body=response.text
            )

        if not response.is_success:
            logger.error(f"Failed to fetch user profile: {response.status_code}")
            raise ProfileFetchError(
                f"Profile API returned status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            envelope = response.json()
        except ValueError:
            raise ProfileFetchError(
                "Invalid profile response",
                status_code=response.status_code,
                body=response.text,
            )

        if (not isinstance(envelope, dict) or envelope.get("status") != 1
                or not isinstance(envelope.get("data"), dict) or not envelope["data"]):
            logger.error(f"Invalid profile data: {response.text[:500]}")
            upstream_message = envelope.get("message") if isinstance(envelope, dict) else None
            raise ProfileFetchError(
                "Invalid profile response",
                status_code=response.status_code,
                body=response.text,
                upstream_message=upstream_message,
            )

        return envelope["data"]
