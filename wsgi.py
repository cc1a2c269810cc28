"""
WSGI Application Entry Point
Used by gunicorn (`gunicorn -c gunicorn.conf.py wsgi:application`)
"""
import sys
import os
import logging
from pathlib import Path

app_root = Path(__file__).resolve().parent

# Add src root to Python path for the moi_portal_gateway package
sys.path.insert(0, str(app_root / "src"))

# Configure logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

try:
    log_file_path = os.environ.get('LOG_FILE', os.path.join(app_root, 'moi_portal_gateway.log'))
    file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(getattr(logging, LOG_LEVEL))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(getattr(logging, LOG_LEVEL))
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LOG_LEVEL))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(stream_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized to {log_file_path} at level {LOG_LEVEL}")
except OSError as e:
    logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
    logger = logging.getLogger(__name__)
    logger.error(f"Failed to setup file logging: {e}")

from moi_portal_gateway.app import create_app  # noqa: E402

application = create_app()

if __name__ == "__main__":
    application.run()
