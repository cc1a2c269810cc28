"""
Playwright Session Materializer.

Drives a headless Chromium through the portal's visible login form, waits
for the post-login redirect, then reloads the landing page a fixed number of
times. The portal only creates its server-side session once the landing page
has been fully loaded a few times; there is no API for it.

The whole stage runs under one deadline (TRAFFIC_PORTAL_BROWSER_TIMEOUT_SECONDS)
and the browser is closed on every exit path.
"""

import logging
import time

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .base import MaterializationError, PortalCredentials, SessionMaterializer

logger = logging.getLogger(__name__)

EMAIL_SELECTOR = "input[type='email'], input[name='Email'], #Email"
PASSWORD_SELECTOR = "input[type='password']"
SUBMIT_SELECTOR = "button[type='submit'], input[type='submit']"

# Upper bound for a single navigation, still capped by the stage deadline
NAVIGATION_TIMEOUT_MS = 30000


class PlaywrightSessionMaterializer(SessionMaterializer):
    """Materializes the portal session through a real browser login."""

    def materialize(self, credentials: PortalCredentials) -> str:
        deadline = time.monotonic() + self.config.browser_timeout_seconds
        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(headless=self.config.headless)
                try:
                    page = browser.new_page()
                    self._login(page, credentials, deadline)
                    self._reload(page, deadline)
                    logger.info(f"Portal session materialized at {page.url}")
                    return page.url
                finally:
                    browser.close()
        except PlaywrightTimeoutError as e:
            logger.error(f"Browser automation timed out: {e}")
            raise MaterializationError(f"Browser automation timed out: {e}", stage="timeout")
        except PlaywrightError as e:
            logger.error(f"Browser automation failed: {e}")
            raise MaterializationError(f"Browser automation failed: {e}", stage="navigation")

    def _login(self, page: Page, credentials: PortalCredentials, deadline: float) -> None:
        login_url = self.config.url(self.config.login_page_path)
        logger.info(f"Opening portal login page {login_url}")
        page.goto(login_url, wait_until="networkidle",
                  timeout=_remaining_ms(deadline, "login page"))

        page.fill(EMAIL_SELECTOR, credentials.email, timeout=_remaining_ms(deadline, "email field"))
        page.fill(PASSWORD_SELECTOR, credentials.password,
                  timeout=_remaining_ms(deadline, "password field"))
        page.click(SUBMIT_SELECTOR, timeout=_remaining_ms(deadline, "submit"))

        page.wait_for_url(self.config.post_login_url,
                          timeout=_remaining_ms(deadline, "post-login redirect"))
        logger.info(f"Portal login redirected to {page.url}")

    def _reload(self, page: Page, deadline: float) -> None:
        for attempt in range(1, self.config.reload_count + 1):
            page.wait_for_timeout(min(self.config.reload_delay_ms,
                                      _remaining_ms(deadline, f"reload {attempt} delay")))
            page.reload(wait_until="networkidle",
                        timeout=_remaining_ms(deadline, f"reload {attempt}"))
            logger.debug(f"Portal reload {attempt}/{self.config.reload_count} done")


def _remaining_ms(deadline: float, stage: str) -> int:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise MaterializationError(f"Browser automation exceeded its time limit at {stage}",
                                   stage="timeout")
    return min(int(remaining * 1000), NAVIGATION_TIMEOUT_MS)
