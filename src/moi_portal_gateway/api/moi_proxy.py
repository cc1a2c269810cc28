"""
MOI Web API Proxy Blueprint.

Forwards the portal UI's calls to the MOI web API so the browser never talks
to it cross-origin. Requests are passed through untouched apart from header
filtering; tokens are opaque and forwarded verbatim.

Routes:
- ANY /token                          -> {MOI}/token
- ANY /api/proxy?target=<path>&...    -> {MOI}<path>?...
- ANY /api/<path>                     -> {MOI}/api/<path>?...
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from flask import Blueprint, Response, jsonify, request

from .. import http_client
from ..settings import get_moi_config

logger = logging.getLogger(__name__)

moi_proxy_bp = Blueprint('moi_proxy', __name__)

PROXY_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
BODYLESS_METHODS = ('GET', 'HEAD')

# A target containing any of these could point the request at another host
UNSAFE_TARGET_MARKERS = ('//', '@', '\\')

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, POST, PUT, DELETE, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
}


@moi_proxy_bp.after_request
def add_cors_headers(response):
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


def _forward_headers(default_content_type: Optional[str]) -> dict:
    headers = {}
    content_type = request.headers.get('Content-Type')
    if content_type:
        headers['Content-Type'] = content_type
    elif default_content_type and request.method not in BODYLESS_METHODS:
        headers['Content-Type'] = default_content_type

    authorization = request.headers.get('Authorization')
    if authorization:
        headers['Authorization'] = authorization
    return headers


def _relay(upstream: httpx.Response):
    """Mirror the upstream status; JSON stays JSON, anything else goes out as text."""
    text = upstream.text
    if not text:
        return Response(status=upstream.status_code)

    try:
        data = upstream.json()
    except ValueError:
        mimetype = upstream.headers.get('Content-Type', 'text/html').split(';')[0].strip()
        return Response(text, status=upstream.status_code, mimetype=mimetype or 'text/html')

    return jsonify(data), upstream.status_code


def is_safe_target_path(target_path: str) -> bool:
    """True when `target_path` can only resolve to a path on the MOI host."""
    if not target_path.startswith('/'):
        return False
    return not any(marker in target_path for marker in UNSAFE_TARGET_MARKERS)


def forward(target_url: str, default_content_type: Optional[str] = 'application/json'):
    """Send the current request to `target_url` and relay the answer."""
    if request.method == 'OPTIONS':
        return Response(status=200)

    config = get_moi_config()
    body = None
    if request.method not in BODYLESS_METHODS:
        body = request.get_data() or None

    logger.info(f"Proxying {request.method} to {target_url.split('?')[0]}")

    try:
        with http_client.build_http_client(config.timeout_seconds) as client:
            upstream = client.request(
                request.method,
                target_url,
                headers=_forward_headers(default_content_type),
                content=body,
            )
    except httpx.TimeoutException:
        logger.error(f"MOI API timeout for {request.path}")
        return jsonify({'error': 'Proxy error', 'message': 'Upstream request timed out'}), 504
    except httpx.HTTPError as e:
        logger.error(f"MOI API proxy error for {request.path}: {e}")
        return jsonify({'error': 'Proxy error', 'message': str(e)}), 502

    logger.info(f"Response status: {upstream.status_code}")
    return _relay(upstream)


@moi_proxy_bp.route('/token', methods=PROXY_METHODS)
def token():
    """OAuth token endpoint (form-encoded password grant)."""
    config = get_moi_config()
    return forward(f"{config.api_base_url}/token",
                   default_content_type='application/x-www-form-urlencoded')


@moi_proxy_bp.route('/api/proxy', methods=PROXY_METHODS)
def proxy_target():
    """Forward to an arbitrary MOI path given in the `target` query parameter."""
    target_path = request.args.get('target')
    if request.method != 'OPTIONS':
        if not target_path:
            return jsonify({'error': 'Missing target path'}), 400
        if not is_safe_target_path(target_path):
            logger.warning(f"Rejected proxy target {target_path!r}")
            return jsonify({'error': 'Invalid target path'}), 400

    config = get_moi_config()
    other_params = [(k, v) for k, v in request.args.items(multi=True) if k != 'target']
    query = f"?{urlencode(other_params)}" if other_params else ''
    return forward(f"{config.api_base_url}{target_path}{query}")


@moi_proxy_bp.route('/api/<path:api_path>', methods=PROXY_METHODS)
def proxy_api(api_path):
    """Catch-all: /api/<path> maps onto the MOI /api/<path>."""
    config = get_moi_config()
    query = request.query_string.decode('utf-8')
    target_url = f"{config.api_base_url}/api/{api_path}"
    if query:
        target_url = f"{target_url}?{query}"
    return forward(target_url)
