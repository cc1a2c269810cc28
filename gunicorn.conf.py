"""
Gunicorn configuration for moi-portal-gateway.

All values are config-driven via environment variables.
"""

import os
import multiprocessing

# =============================================================================
# WORKER CONFIGURATION
# =============================================================================

# gthread: a portal sync with browser automation holds its thread for up to
# two minutes
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "gthread")


def get_workers():
    env_workers = os.environ.get("GUNICORN_WORKERS")
    if env_workers:
        return int(env_workers)
    # Each headless Chromium costs a few hundred MB, keep the cap low
    calculated = min(multiprocessing.cpu_count() + 1, 4)
    return max(calculated, 2)


workers = get_workers()

threads = int(os.environ.get("GUNICORN_THREADS", "4"))


# =============================================================================
# TIMEOUTS & KEEPALIVE
# =============================================================================

# Must exceed TRAFFIC_PORTAL_BROWSER_TIMEOUT_SECONDS plus the three handshake
# calls, otherwise the worker is killed before the browser is closed
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "180"))

graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))

keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))


# =============================================================================
# RESOURCE LIMITS
# =============================================================================

max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.environ.get("GUNICORN_MAX_REQUESTS_JITTER", "50"))

limit_request_line = int(os.environ.get("GUNICORN_LIMIT_REQUEST_LINE", "4094"))
limit_request_fields = int(os.environ.get("GUNICORN_LIMIT_REQUEST_FIELDS", "100"))


# =============================================================================
# NETWORK CONFIGURATION
# =============================================================================

bind = os.environ.get("GUNICORN_BIND", f"0.0.0.0:{os.environ.get('PORT', '3000')}")

# Forward proxy headers (when behind nginx/reverse proxy)
forwarded_allow_ips = os.environ.get("GUNICORN_FORWARDED_ALLOW_IPS", "*")


# =============================================================================
# LOGGING
# =============================================================================

loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")

accesslog = os.environ.get("GUNICORN_ACCESS_LOG", "-")
errorlog = os.environ.get("GUNICORN_ERROR_LOG", "-")

capture_output = os.environ.get("GUNICORN_CAPTURE_OUTPUT", "true").lower() == "true"


# =============================================================================
# HOOKS
# =============================================================================

def on_starting(server):
    """Called just before master process starts."""
    import logging
    logging.getLogger("gunicorn").info(
        f"Starting moi-portal-gateway with {workers} workers, "
        f"worker_class={worker_class}, threads={threads}, timeout={timeout}s"
    )


def worker_abort(worker):
    """Called when worker receives SIGABRT (timeout)."""
    import logging
    logging.getLogger("gunicorn").error(
        f"Worker {worker.pid} aborted (timeout?); a browser-automation sync may have hung"
    )
