"""
Request-scoped data types for the traffic-sync pipelines.

Nothing here is persisted: requests are parsed from the inbound JSON body,
step results accumulate while the pipeline runs, and the outcome is turned
into the JSON response.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .messages import message


EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
NATIONAL_ID_PATTERN = re.compile(r'^[0-9]{14}$')

# Wire values accepted for NationalityType. Which one means "citizen" differs
# between portal revisions, so the caller picks and we forward it untouched.
NATIONALITY_TYPE_VALUES = (0, 1)


class SyncStep(str, Enum):
    """Fixed step identifiers reported back to the caller."""

    PROFILE = 'profile'
    VALIDATION = 'validation'
    AUTHENTICATION = 'authentication'
    REGISTRATION = 'registration'
    VALIDATE_USER_LOGIN = 'ValidateUserLogin'
    CLAIM_SHAREPOINT_USER_LOGIN = 'ClaimSharePointUserLogin'
    CONTINUE_VALIDATE_USER_LOGIN = 'ContinueValidateUserLogin'
    BROWSER_AUTOMATION = 'BrowserAutomation'


class ErrorClass(str, Enum):
    VALIDATION = 'validation'
    AUTHORIZATION = 'authorization'
    SESSION_EXPIRED = 'session_expired'
    UPSTREAM = 'upstream'
    CONFIGURATION = 'configuration'
    UNEXPECTED = 'unexpected'

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorClass.VALIDATION: 400,
    ErrorClass.AUTHORIZATION: 401,
    ErrorClass.SESSION_EXPIRED: 401,
    ErrorClass.UPSTREAM: 500,
    ErrorClass.CONFIGURATION: 500,
    ErrorClass.UNEXPECTED: 500,
}


class RequestValidationError(Exception):
    """Raised when the inbound sync request is missing or malformed."""

    def __init__(self, message_key: str, error: str):
        super().__init__(error)
        self.message_key = message_key
        self.error = error


@dataclass
class UserProfile:
    full_name: str
    mobile_number: str
    national_id: str = ''
    passport_number: str = ''
    email: str = ''

    @property
    def identity_number(self) -> str:
        """National ID when present, passport number otherwise."""
        return self.national_id or self.passport_number


@dataclass
class KioskSyncRequest:
    member_id: str
    access_token: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'KioskSyncRequest':
        member_id = payload.get('memberId')

        # Member IDs sometimes arrive as JSON numbers from the login response
        if isinstance(member_id, int) and not isinstance(member_id, bool):
            member_id = str(member_id)

        member_id = _stripped(member_id)
        access_token = _stripped(payload.get('accessToken'))

        if not member_id:
            raise RequestValidationError('member_id_required', 'memberId is required')
        if not access_token:
            raise RequestValidationError('access_token_required', 'accessToken is required')

        return cls(member_id=member_id, access_token=access_token)


@dataclass
class PortalSyncRequest:
    email: str
    token: str
    nationality_type: int
    national_id: str
    password: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'PortalSyncRequest':
        token = _stripped(payload.get('token'))
        email = _stripped(payload.get('email'))
        national_id = _stripped(payload.get('nationalId'))
        nationality_type = payload.get('nationalityType')
        password = payload.get('password')

        if not token:
            raise RequestValidationError('portal_token_required', 'token is required')
        if not email:
            raise RequestValidationError('email_required', 'email is required')
        if not EMAIL_PATTERN.match(email):
            raise RequestValidationError('email_invalid', 'email is not a valid address')
        if not national_id:
            raise RequestValidationError('national_id_required', 'nationalId is required')
        if not NATIONAL_ID_PATTERN.match(national_id):
            raise RequestValidationError('national_id_invalid', 'nationalId must be exactly 14 digits')

        nationality_type = _parse_nationality_type(nationality_type)

        if password is not None and not isinstance(password, str):
            raise RequestValidationError('password_required', 'password must be a string')

        return cls(
            email=email,
            token=token,
            nationality_type=nationality_type,
            national_id=national_id,
            password=password or None,
        )


def _stripped(value: Any) -> str:
    """Trimmed string value, or '' for anything that is not a string."""
    return value.strip() if isinstance(value, str) else ''


def _parse_nationality_type(value: Any) -> int:
    if isinstance(value, bool):
        value = None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if value not in NATIONALITY_TYPE_VALUES:
        raise RequestValidationError(
            'nationality_type_invalid',
            f"nationalityType must be one of {list(NATIONALITY_TYPE_VALUES)}",
        )
    return int(value)


@dataclass
class StepResult:
    step: SyncStep
    success: bool
    status_code: Optional[int] = None
    body: Optional[str] = None
    message: Optional[str] = None


@dataclass
class SyncOutcome:
    success: bool
    message: str
    step: Optional[SyncStep] = None
    error_class: Optional[ErrorClass] = None
    error: Optional[str] = None
    details: Optional[str] = None
    session_expired: bool = False
    disabled: bool = False
    steps: List[StepResult] = field(default_factory=list)

    @classmethod
    def succeeded(cls, message_text: str, steps: List[StepResult]) -> 'SyncOutcome':
        return cls(success=True, message=message_text, steps=steps)

    @classmethod
    def failed(
        cls,
        error_class: ErrorClass,
        message_text: str,
        error: str,
        step: Optional[SyncStep] = None,
        details: Optional[str] = None,
        steps: Optional[List[StepResult]] = None,
    ) -> 'SyncOutcome':
        return cls(
            success=False,
            message=message_text,
            step=step,
            error_class=error_class,
            error=error,
            details=details,
            session_expired=error_class is ErrorClass.SESSION_EXPIRED,
            steps=steps or [],
        )

    @classmethod
    def disabled_outcome(cls) -> 'SyncOutcome':
        return cls(success=False, message=message('sync_disabled'), disabled=True)

    @property
    def http_status(self) -> int:
        if self.success or self.disabled or self.error_class is None:
            return 200
        return self.error_class.http_status

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'success': self.success, 'message': self.message}
        if self.step is not None:
            data['step'] = self.step.value
        if self.error:
            data['error'] = self.error
        if self.details:
            data['details'] = self.details
        if self.session_expired:
            data['sessionExpired'] = True
        if self.disabled:
            data['disabled'] = True
        return data
