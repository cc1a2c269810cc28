"""Tests for the kiosk traffic-sync pipeline (profile -> validation -> auth -> register).

All upstream HTTP is served by an in-process httpx.MockTransport, so call
counts and request contents can be asserted directly.
"""

from __future__ import annotations

import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from moi_portal_gateway.audit_logger import SyncAuditLogger
from moi_portal_gateway.kiosk_client import KioskClient
from moi_portal_gateway.messages import message
from moi_portal_gateway.profile_client import ProfileClient
from moi_portal_gateway.settings import KioskConfig, KioskCredentials
from moi_portal_gateway.sync_models import ErrorClass, KioskSyncRequest, SyncStep
from moi_portal_gateway.sync_pipeline import KioskSyncPipeline

MOI = "https://moi.test"
KIOSK = "https://kiosk.test"

PROFILE_PATH = "/api/MoiProfileApi/GetProfile"
AUTH_PATH = "/api/Auth/token"
REGISTER_PATH = "/api/User/register"

AHMED = {"fullName": "Ahmed Ali", "mobile": "01012345678", "cardId": "12345678901234"}
AUTH_OK = {"statusCode": 0, "success": True, "result": {"token": "abc"}}
REGISTER_OK = {"statusCode": 0, "success": True, "result": {"userId": 42}}


class FakeUpstream:
    """Serves MOI profile + kiosk endpoints and records every request."""

    def __init__(self, profile=None, auth=None, register=None):
        self.responses = {
            PROFILE_PATH: profile or (200, {"status": 1, "data": AHMED}),
            AUTH_PATH: auth or (200, AUTH_OK),
            REGISTER_PATH: register or (200, REGISTER_OK),
        }
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses[request.url.path]
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    @property
    def kiosk_calls(self) -> int:
        return sum(1 for r in self.requests if r.url.host == "kiosk.test")

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == path][-1]


def _pipeline(upstream: FakeUpstream, audit: SyncAuditLogger | None = None) -> KioskSyncPipeline:
    http = httpx.Client(transport=httpx.MockTransport(upstream.handler))
    config = KioskConfig(
        base_url=KIOSK,
        credentials=KioskCredentials(username="kiosk-svc", password="s3cret"),
        timeout_seconds=5,
    )
    return KioskSyncPipeline(ProfileClient(MOI, http), KioskClient(config, http), audit=audit)


def _request() -> KioskSyncRequest:
    return KioskSyncRequest(member_id="123", access_token="tok")


def test_end_to_end_success():
    upstream = FakeUpstream()

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is True
    assert outcome.to_dict() == {"success": True, "message": message("kiosk_register_success")}
    assert outcome.http_status == 200
    assert upstream.paths == [PROFILE_PATH, AUTH_PATH, REGISTER_PATH]
    assert [s.step for s in outcome.steps] == [
        SyncStep.PROFILE, SyncStep.VALIDATION, SyncStep.AUTHENTICATION, SyncStep.REGISTRATION,
    ]


def test_profile_fetch_sends_bearer_token_and_member_id():
    upstream = FakeUpstream()

    _pipeline(upstream).run(_request())

    profile_request = upstream.last(PROFILE_PATH)
    assert profile_request.headers["Authorization"] == "Bearer tok"
    assert profile_request.url.params["memberId"] == "123"


def test_kiosk_auth_uses_service_credentials():
    upstream = FakeUpstream()

    _pipeline(upstream).run(_request())

    assert json.loads(upstream.last(AUTH_PATH).content) == {
        "username": "kiosk-svc",
        "password": "s3cret",
    }


def test_registration_uses_token_from_authentication():
    upstream = FakeUpstream()

    _pipeline(upstream).run(_request())

    register_request = upstream.last(REGISTER_PATH)
    assert register_request.headers["Authorization"] == "Bearer abc"
    assert json.loads(register_request.content) == {
        "fullName": "Ahmed Ali",
        "mobileNumber": "01012345678",
        "nationalId": "12345678901234",
    }


def test_registration_includes_email_when_profile_has_one():
    upstream = FakeUpstream(profile=(200, {"status": 1, "data": {
        "FullName": "Ahmed Ali", "Mobile": "01012345678",
        "NationalId": "12345678901234", "Email": "ahmed@example.com",
    }}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is True
    assert json.loads(upstream.last(REGISTER_PATH).content)["email"] == "ahmed@example.com"


def test_profile_401_marks_session_expired_and_stops():
    upstream = FakeUpstream(profile=(401, {"message": "Authorization has been denied"}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is False
    assert outcome.session_expired is True
    assert outcome.error_class is ErrorClass.SESSION_EXPIRED
    assert outcome.http_status == 401
    assert outcome.to_dict()["sessionExpired"] is True
    assert outcome.message == message("session_expired")
    assert upstream.paths == [PROFILE_PATH]


def test_profile_server_error_is_upstream_failure():
    upstream = FakeUpstream(profile=(503, "Service Unavailable"))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.PROFILE
    assert outcome.error_class is ErrorClass.UPSTREAM
    assert outcome.session_expired is False
    assert outcome.message == message("profile_fetch_failed")
    assert outcome.details == "Service Unavailable"
    assert upstream.kiosk_calls == 0


def test_profile_envelope_failure_uses_upstream_message():
    upstream = FakeUpstream(profile=(200, {"status": 0, "message": "العضو غير موجود", "data": None}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.PROFILE
    assert outcome.message == "العضو غير موجود"
    assert upstream.kiosk_calls == 0


@pytest.mark.parametrize("data", [["x"], "profile", 42])
def test_profile_data_that_is_not_an_object_fails_at_profile(data):
    upstream = FakeUpstream(profile=(200, {"status": 1, "data": data}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.PROFILE
    assert outcome.error_class is ErrorClass.UPSTREAM
    assert outcome.message == message("profile_invalid")
    assert upstream.kiosk_calls == 0


def test_profile_transport_error_is_upstream_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler))
    config = KioskConfig(base_url=KIOSK, credentials=KioskCredentials("u", "p"), timeout_seconds=5)
    pipeline = KioskSyncPipeline(ProfileClient(MOI, http), KioskClient(config, http))

    outcome = pipeline.run(_request())

    assert outcome.step is SyncStep.PROFILE
    assert outcome.error_class is ErrorClass.UPSTREAM


@pytest.mark.parametrize("mobile", [
    "0101234567", "01312345678", "+201012345678", "01012345678x",
    "010١٢٣٤٥٦٧٨",  # Arabic-Indic digits
])
def test_invalid_mobile_fails_validation_before_any_kiosk_call(mobile):
    upstream = FakeUpstream(profile=(200, {"status": 1, "data": {**AHMED, "mobile": mobile}}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is False
    assert outcome.step is SyncStep.VALIDATION
    assert outcome.error_class is ErrorClass.VALIDATION
    assert outcome.http_status == 400
    assert outcome.message == message("profile_mobile_format")
    assert upstream.kiosk_calls == 0


@pytest.mark.parametrize("national_id", [
    "1234567890123", "123456789012345", "12345678901abc",
    "١٢٣٤٥٦٧٨٩٠١٢٣٤",  # Arabic-Indic digits
])
def test_invalid_national_id_fails_validation_with_field_message(national_id):
    upstream = FakeUpstream(profile=(200, {"status": 1, "data": {**AHMED, "cardId": national_id}}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.VALIDATION
    assert outcome.message == message("profile_national_id_format")
    assert upstream.kiosk_calls == 0


def test_missing_full_name_fails_validation():
    upstream = FakeUpstream(profile=(200, {"status": 1, "data": {**AHMED, "fullName": ""}}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.VALIDATION
    assert outcome.message == message("profile_full_name_missing")
    assert upstream.kiosk_calls == 0


@pytest.mark.parametrize("auth_response", [
    (200, {"statusCode": 0, "success": True, "result": {}}),
    (200, {"statusCode": 0, "success": False, "result": {"token": "abc"}}),
    (200, {"statusCode": 1, "success": True, "result": {"token": "abc"}}),
    (200, {"statusCode": 0, "success": True, "result": {"token": ""}}),
    (200, "<html>not json</html>"),
    (500, {"message": "boom"}),
])
def test_unusable_auth_response_fails_at_authentication(auth_response):
    upstream = FakeUpstream(auth=auth_response)

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is False
    assert outcome.step is SyncStep.AUTHENTICATION
    assert outcome.error_class is ErrorClass.UPSTREAM
    assert REGISTER_PATH not in upstream.paths


def test_registration_4000_is_validation_error():
    upstream = FakeUpstream(register=(200, {"statusCode": 4000, "success": False,
                                            "message": "رقم الهاتف مسجل مسبقاً"}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.success is False
    assert outcome.step is SyncStep.REGISTRATION
    assert outcome.error_class is ErrorClass.VALIDATION
    assert outcome.http_status == 400
    assert outcome.message == "رقم الهاتف مسجل مسبقاً"


def test_registration_4001_is_authorization_error():
    upstream = FakeUpstream(register=(200, {"statusCode": 4001, "success": False}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.to_dict()["success"] is False
    assert outcome.to_dict()["step"] == "registration"
    assert outcome.error_class is ErrorClass.AUTHORIZATION
    assert outcome.http_status == 401
    assert outcome.message == message("kiosk_authorization_error")


def test_registration_other_status_is_generic_failure():
    upstream = FakeUpstream(register=(200, {"statusCode": 5000, "success": False}))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.REGISTRATION
    assert outcome.error_class is ErrorClass.UPSTREAM
    assert outcome.http_status == 500


def test_registration_http_error_keeps_raw_body_as_details():
    upstream = FakeUpstream(register=(502, "Bad Gateway from kiosk"))

    outcome = _pipeline(upstream).run(_request())

    assert outcome.step is SyncStep.REGISTRATION
    assert outcome.details == "Bad Gateway from kiosk"
    assert outcome.message == message("kiosk_register_failed")
    assert outcome.to_dict()["details"] == "Bad Gateway from kiosk"


def test_pipeline_can_be_rerun_after_success():
    upstream = FakeUpstream()
    pipeline = _pipeline(upstream)

    first = pipeline.run(_request())
    second = pipeline.run(_request())

    assert first.success is True
    assert second.success is True
    assert upstream.paths.count(REGISTER_PATH) == 2


def test_unexpected_exception_becomes_generic_failure():
    class ExplodingProfileClient:
        def fetch_profile(self, member_id, access_token):
            raise RuntimeError("kaboom")

    config = KioskConfig(base_url=KIOSK, credentials=KioskCredentials("u", "p"), timeout_seconds=5)
    pipeline = KioskSyncPipeline(ExplodingProfileClient(), KioskClient(config, httpx.Client()))

    outcome = pipeline.run(_request())

    assert outcome.success is False
    assert outcome.error_class is ErrorClass.UNEXPECTED
    assert outcome.message == message("unexpected_error")
    assert outcome.error == "kaboom"


def test_audit_log_records_steps_without_secrets(tmp_path):
    log_path = tmp_path / "audit" / "sync.log"
    audit = SyncAuditLogger(str(log_path))
    upstream = FakeUpstream(register=(200, {"statusCode": 4000, "success": False, "message": "dup"}))

    try:
        _pipeline(upstream, audit=audit).run(_request())
    finally:
        audit.close()

    lines = [json.loads(line.split(" - ", 1)[1]) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert [entry.get("step") for entry in lines] == [
        "profile", "validation", "authentication", "registration", "registration",
    ]
    assert lines[-1]["outcome"] == "failure"
    assert lines[-1]["error_class"] == "validation"
    content = log_path.read_text(encoding="utf-8")
    assert "s3cret" not in content
    assert "Bearer" not in content
