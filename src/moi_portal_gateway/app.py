"""
Flask Application Factory for the MOI portal gateway.

This application factory wires:
- MOI web API pass-through proxy (/token, /api/*)
- Traffic-sync orchestration endpoints (/api/traffic-sync*)
- Single-page app hosting for the built portal UI
"""
import logging
import os

from flask import Flask, abort, jsonify, request, send_from_directory
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

from .api import moi_proxy_bp, traffic_sync_bp
from .config_defaults import get_int, get_setting
from .messages import message

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    """
    Create and configure the Flask application.

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__, static_folder=None)

    # Trust proxy headers (for reverse proxy deployments)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Maximum request size (1 MB, the UI only posts small forms)
    app.config['MAX_CONTENT_LENGTH'] = get_int('MAX_CONTENT_LENGTH', 1024 * 1024)
    # Messages are Arabic; keep them readable in responses and logs
    app.json.ensure_ascii = False

    # =========================================================================
    # Rate Limiting
    # =========================================================================

    flask_env = get_setting('FLASK_ENV', 'production')

    if flask_env == 'local_test':
        Limiter(
            app=app,
            key_func=get_remote_address,
            enabled=False,
            storage_uri="memory://",
        )
        logger.info("Rate limiting disabled for local_test environment")
    else:
        limiter = Limiter(
            app=app,
            key_func=get_remote_address,
            default_limits=["600 per hour", "100 per minute"],
            storage_uri="memory://",
        )
        # Each sync fans out to several upstream calls (and maybe a browser)
        limiter.limit(get_setting('TRAFFIC_SYNC_RATE_LIMIT', '10 per minute'))(traffic_sync_bp)

    # =========================================================================
    # Register Blueprints
    # =========================================================================

    # traffic_sync_bp first: its static /api/traffic-sync rules must be
    # registered alongside, not behind, the /api/<path> catch-all
    app.register_blueprint(traffic_sync_bp)
    app.register_blueprint(moi_proxy_bp)

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'not_found', 'message': 'Endpoint not found'}), 404
        return "Not Found", 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'success': False, 'message': message('method_not_allowed')}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error")
        if request.path.startswith('/api/'):
            return jsonify({'success': False, 'message': message('unexpected_error'),
                            'error': 'Internal server error'}), 500
        return "Internal Server Error", 500

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return jsonify({'status': 'ok'})

    # =========================================================================
    # Single-page app (Vite build output)
    # =========================================================================

    dist_dir = os.path.abspath(get_setting('STATIC_DIST_DIR', 'dist'))

    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def spa(path):
        """Serve built assets; unknown paths fall back to index.html."""
        if not os.path.isdir(dist_dir):
            abort(404)
        if path and os.path.isfile(os.path.join(dist_dir, path)):
            return send_from_directory(dist_dir, path)
        if not os.path.isfile(os.path.join(dist_dir, 'index.html')):
            abort(404)
        return send_from_directory(dist_dir, 'index.html')

    logger.info("Flask application created successfully")

    return app


def main():
    """Run the development server."""
    logging.basicConfig(level=getattr(logging, get_setting('LOG_LEVEL', 'INFO').upper(), logging.INFO))

    port = get_int('PORT', get_int('MMM_PORT', 3000))
    app = create_app()

    logger.info(f"Server running on http://localhost:{port}")
    logger.info(f"Proxying requests to {get_setting('MOI_API_BASE_URL', 'https://webapi.moi.gov.eg')}")
    app.run(host=get_setting('HOST', '0.0.0.0'), port=port)


if __name__ == "__main__":
    main()
