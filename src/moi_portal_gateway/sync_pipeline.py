"""
Traffic-sync orchestration.

Two pipelines link a citizen to the traffic service:

KioskSyncPipeline (POST /api/traffic-sync)
    profile -> validation -> authentication -> registration

PortalSyncPipeline (POST /api/traffic-sync/portal)
    ValidateUserLogin -> ClaimSharePointUserLogin -> ContinueValidateUserLogin
    [-> BrowserAutomation]

Both run their steps strictly in order and stop at the first failure. Each
failure becomes a SyncOutcome tagged with the failing step, an error class
(which decides the HTTP status), a localized message and the raw upstream
body. Nothing is retried here; the UI offers a manual retry that re-runs
the whole pipeline, and re-running after a success is harmless.
"""
import logging
from typing import Callable, List, Optional

from .audit_logger import SyncAuditLogger
from .kiosk_client import KioskClient, KioskError
from .materializers import MaterializationError, PortalCredentials, SessionMaterializer
from .messages import message
from .profile_client import ProfileClient, ProfileFetchError, SessionExpiredError
from .profile_fields import FieldValidationError, extract_and_validate
from .settings import ConfigurationError
from .sync_models import (
    ErrorClass,
    KioskSyncRequest,
    PortalSyncRequest,
    RequestValidationError,
    StepResult,
    SyncOutcome,
    SyncStep,
)
from .traffic_portal import PortalStepError, TrafficPortalClient

logger = logging.getLogger(__name__)


def outcome_for_request_error(error: RequestValidationError) -> SyncOutcome:
    """Outcome for a malformed inbound request (no step was attempted)."""
    return SyncOutcome.failed(ErrorClass.VALIDATION, message(error.message_key), error.error)


def outcome_for_configuration_error(error: ConfigurationError) -> SyncOutcome:
    logger.error(f"Traffic sync misconfigured: {error}")
    return SyncOutcome.failed(ErrorClass.CONFIGURATION, message('server_config_error'), str(error))


class _Pipeline:
    name = ''

    def __init__(self, audit: Optional[SyncAuditLogger] = None):
        self.audit = audit or SyncAuditLogger()

    def _record(self, steps: List[StepResult], subject: str, result: StepResult) -> None:
        steps.append(result)
        self.audit.log_step(self.name, subject, result)
        if result.success:
            logger.info(f"[{self.name}] step {result.step.value} succeeded")
        else:
            logger.warning(f"[{self.name}] step {result.step.value} failed "
                           f"(status={result.status_code})")

    def _fail(self, steps: List[StepResult], subject: str, step: SyncStep,
              error_class: ErrorClass, message_text: str, error: str,
              status_code: Optional[int] = None, body: Optional[str] = None) -> SyncOutcome:
        self._record(steps, subject, StepResult(
            step=step, success=False, status_code=status_code, body=body, message=message_text,
        ))
        return SyncOutcome.failed(error_class, message_text, error, step=step,
                                  details=body, steps=steps)

    def _guarded(self, subject: str, run: Callable[[List[StepResult]], SyncOutcome]) -> SyncOutcome:
        steps: List[StepResult] = []
        try:
            outcome = run(steps)
        except Exception as e:
            logger.exception(f"[{self.name}] traffic sync failed unexpectedly")
            outcome = SyncOutcome.failed(ErrorClass.UNEXPECTED, message('unexpected_error'),
                                         str(e), steps=steps)
        self.audit.log_outcome(self.name, subject, outcome)
        return outcome


class KioskSyncPipeline(_Pipeline):
    """Profile fetch + kiosk registration (variant A)."""

    name = 'kiosk'

    def __init__(self, profile_client: ProfileClient, kiosk_client: KioskClient,
                 audit: Optional[SyncAuditLogger] = None):
        super().__init__(audit)
        self.profile_client = profile_client
        self.kiosk_client = kiosk_client

    def run(self, request: KioskSyncRequest) -> SyncOutcome:
        return self._guarded(request.member_id, lambda steps: self._run(request, steps))

    def _run(self, request: KioskSyncRequest, steps: List[StepResult]) -> SyncOutcome:
        subject = request.member_id

        logger.info("Step 1: Fetching user profile from MOI API...")
        try:
            raw_profile = self.profile_client.fetch_profile(request.member_id, request.access_token)
        except SessionExpiredError as e:
            return self._fail(steps, subject, SyncStep.PROFILE, ErrorClass.SESSION_EXPIRED,
                              message('session_expired'), str(e), e.status_code, e.body)
        except ProfileFetchError as e:
            message_text = e.upstream_message or message(
                'profile_invalid' if e.status_code and 200 <= e.status_code < 300
                else 'profile_fetch_failed')
            return self._fail(steps, subject, SyncStep.PROFILE, ErrorClass.UPSTREAM,
                              message_text, str(e), e.status_code, e.body)
        self._record(steps, subject, StepResult(step=SyncStep.PROFILE, success=True))

        try:
            profile = extract_and_validate(raw_profile)
        except FieldValidationError as e:
            return self._fail(steps, subject, SyncStep.VALIDATION, ErrorClass.VALIDATION,
                              message(e.message_key), e.error)
        self._record(steps, subject, StepResult(step=SyncStep.VALIDATION, success=True))

        logger.info("Step 2: Authenticating with kiosk service...")
        try:
            token = self.kiosk_client.authenticate()
        except KioskError as e:
            return self._kiosk_failure(steps, subject, e)
        self._record(steps, subject, StepResult(step=SyncStep.AUTHENTICATION, success=True))

        logger.info("Step 3: Registering user with kiosk service...")
        try:
            self.kiosk_client.register(token, profile)
        except KioskError as e:
            return self._kiosk_failure(steps, subject, e)
        self._record(steps, subject, StepResult(step=SyncStep.REGISTRATION, success=True))

        return SyncOutcome.succeeded(message('kiosk_register_success'), steps)

    def _kiosk_failure(self, steps: List[StepResult], subject: str, e: KioskError) -> SyncOutcome:
        message_text = e.upstream_message or message(e.message_key)
        return self._fail(steps, subject, e.step, e.error_class, message_text, e.error,
                          e.status_code, e.body)


class PortalSyncPipeline(_Pipeline):
    """Traffic portal handshake, optionally followed by browser login (variant B)."""

    name = 'portal'

    def __init__(self, portal_client_factory: Callable[[], TrafficPortalClient],
                 materializer: Optional[SessionMaterializer] = None,
                 audit: Optional[SyncAuditLogger] = None):
        super().__init__(audit)
        self.portal_client_factory = portal_client_factory
        self.materializer = materializer

    @property
    def requires_password(self) -> bool:
        return self.materializer is not None

    def run(self, request: PortalSyncRequest) -> SyncOutcome:
        return self._guarded(request.email, lambda steps: self._run(request, steps))

    def _run(self, request: PortalSyncRequest, steps: List[StepResult]) -> SyncOutcome:
        subject = request.email

        if self.requires_password and not request.password:
            return SyncOutcome.failed(ErrorClass.VALIDATION, message('password_required'),
                                      'password is required', steps=steps)

        with self.portal_client_factory() as portal:
            handshake = (
                lambda: portal.validate_user_login(request.email, request.token),
                lambda: portal.claim_sharepoint_user_login(request.email, request.token),
                lambda: portal.continue_validate_user_login(
                    request.email, request.token, request.nationality_type, request.national_id),
            )
            for call in handshake:
                try:
                    result = call()
                except PortalStepError as e:
                    return self._fail(steps, subject, e.step, ErrorClass.UPSTREAM,
                                      message(e.message_key), e.error, e.status_code, e.body)
                self._record(steps, subject, result)

        if self.materializer is not None:
            logger.info("Materializing portal session through browser login...")
            try:
                final_url = self.materializer.materialize(
                    PortalCredentials(email=request.email, password=request.password))
            except MaterializationError as e:
                return self._fail(steps, subject, SyncStep.BROWSER_AUTOMATION,
                                  ErrorClass.UPSTREAM, message('portal_browser_failed'), str(e))
            self._record(steps, subject, StepResult(
                step=SyncStep.BROWSER_AUTOMATION, success=True, body=final_url))

        return SyncOutcome.succeeded(message('portal_sync_success'), steps)
