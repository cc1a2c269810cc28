"""Traffic-sync endpoints.

Called by the portal UI right after a citizen signs in, and again when the
citizen presses "retry". Whether a citizen is already synced is tracked by
the UI; these endpoints simply run the pipeline every time.

Routes:
- POST /api/traffic-sync         {memberId, accessToken}
- POST /api/traffic-sync/portal  {email, token, nationalityType, nationalId, password?}

Every response is JSON with a `success` flag. The HTTP status follows the
error class (400 bad input, 401 authorization/session expired, 500 upstream
or server errors); a disabled feature answers 200 with `disabled: true`.
The portal variant may take up to two minutes when browser automation is on.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from flask import Blueprint, jsonify, request

from .. import http_client
from ..audit_logger import SyncAuditLogger
from ..config_defaults import get_setting
from ..kiosk_client import KioskClient
from ..materializers import materializer_for_portal
from ..messages import message
from ..profile_client import ProfileClient
from ..settings import (
    ConfigurationError,
    get_kiosk_config,
    get_moi_config,
    get_portal_config,
    is_traffic_sync_enabled,
)
from ..sync_models import ErrorClass, KioskSyncRequest, PortalSyncRequest, RequestValidationError, SyncOutcome
from ..sync_pipeline import (
    KioskSyncPipeline,
    PortalSyncPipeline,
    outcome_for_configuration_error,
    outcome_for_request_error,
)
from ..traffic_portal import TrafficPortalClient

logger = logging.getLogger(__name__)

traffic_sync_bp = Blueprint("traffic_sync", __name__, url_prefix="/api")

# Non-POST methods are routed here too so they get a 405 instead of falling
# through to the MOI catch-all proxy.
ROUTE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@lru_cache(maxsize=4)
def _audit_logger(log_file_path: str | None) -> SyncAuditLogger:
    return SyncAuditLogger(log_file_path)


def get_audit_logger() -> SyncAuditLogger:
    return _audit_logger(get_setting("SYNC_AUDIT_LOG_PATH"))


def _respond(outcome: SyncOutcome):
    return jsonify(outcome.to_dict()), outcome.http_status


def _method_not_allowed():
    return jsonify({"success": False, "message": message("method_not_allowed")}), 405


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _unexpected(e: Exception) -> SyncOutcome:
    logger.exception("Traffic sync error")
    return SyncOutcome.failed(ErrorClass.UNEXPECTED, message("unexpected_error"), str(e))


@traffic_sync_bp.route("/traffic-sync", methods=ROUTE_METHODS)
def kiosk_sync():
    """Link the signed-in citizen to the kiosk registration service."""
    if request.method != "POST":
        return _method_not_allowed()

    if not is_traffic_sync_enabled():
        logger.info("Traffic sync requested while disabled")
        return _respond(SyncOutcome.disabled_outcome())

    try:
        sync_request = KioskSyncRequest.from_payload(_payload())
    except RequestValidationError as e:
        return _respond(outcome_for_request_error(e))

    try:
        moi_config = get_moi_config()
        kiosk_config = get_kiosk_config()
    except ConfigurationError as e:
        return _respond(outcome_for_configuration_error(e))

    try:
        with http_client.build_http_client(moi_config.timeout_seconds) as profile_http, \
                http_client.build_http_client(kiosk_config.timeout_seconds) as kiosk_http:
            pipeline = KioskSyncPipeline(
                ProfileClient(moi_config.api_base_url, profile_http),
                KioskClient(kiosk_config, kiosk_http),
                audit=get_audit_logger(),
            )
            outcome = pipeline.run(sync_request)
    except Exception as e:
        outcome = _unexpected(e)

    return _respond(outcome)


@traffic_sync_bp.route("/traffic-sync/portal", methods=ROUTE_METHODS)
def portal_sync():
    """Link the citizen's traffic portal account (handshake + optional browser login)."""
    if request.method != "POST":
        return _method_not_allowed()

    if not is_traffic_sync_enabled():
        logger.info("Traffic portal sync requested while disabled")
        return _respond(SyncOutcome.disabled_outcome())

    try:
        sync_request = PortalSyncRequest.from_payload(_payload())
    except RequestValidationError as e:
        return _respond(outcome_for_request_error(e))

    try:
        portal_config = get_portal_config()
        materializer = materializer_for_portal(portal_config)
    except ConfigurationError as e:
        return _respond(outcome_for_configuration_error(e))

    def portal_client() -> TrafficPortalClient:
        return TrafficPortalClient(
            portal_config, http_client.build_http_client(portal_config.timeout_seconds))

    try:
        pipeline = PortalSyncPipeline(portal_client, materializer, audit=get_audit_logger())
        outcome = pipeline.run(sync_request)
    except Exception as e:
        outcome = _unexpected(e)

    return _respond(outcome)
