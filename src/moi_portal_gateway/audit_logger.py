"""
Audit logging for traffic-sync runs
Writes one line per executed step and one per outcome to a dedicated file
"""
import json
import logging
import os
from typing import Optional

from .sync_models import StepResult, SyncOutcome

logger = logging.getLogger(__name__)

# Raw upstream bodies can be whole HTML error pages
MAX_BODY_CHARS = 1000


class SyncAuditLogger:
    """File audit logger for sync pipelines (no-op without a path)"""

    def __init__(self, log_file_path: Optional[str] = None):
        """
        Initialize audit logger

        Args:
            log_file_path: Path to log file (None to disable audit logging)
        """
        self.log_file_path = log_file_path
        self.file_logger = None

        if log_file_path:
            self._setup_file_logger()

    def _setup_file_logger(self):
        """Setup file-based logging"""
        try:
            log_dir = os.path.dirname(self.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            self.file_logger = logging.getLogger(f'sync_audit.{self.log_file_path}')
            self.file_logger.setLevel(logging.INFO)
            self.file_logger.propagate = False
            self.file_logger.handlers = []

            file_handler = logging.FileHandler(self.log_file_path, encoding='utf-8')
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.file_logger.addHandler(file_handler)

            logger.info(f"Sync audit logging enabled: {self.log_file_path}")

        except Exception as e:
            logger.error(f"Failed to setup sync audit logging: {e}")
            self.file_logger = None

    def log_step(self, pipeline: str, subject: str, result: StepResult):
        """
        Log one executed pipeline step

        Args:
            pipeline: Pipeline name ('kiosk' or 'portal')
            subject: Non-secret identifier of the citizen (member ID or email)
            result: Step result, raw body included
        """
        if not self.file_logger:
            return

        entry = {
            'pipeline': pipeline,
            'subject': subject,
            'step': result.step.value,
            'success': result.success,
            'status_code': result.status_code,
        }
        if result.body:
            entry['body'] = result.body[:MAX_BODY_CHARS]
        self.file_logger.info(json.dumps(entry, ensure_ascii=False))

    def log_outcome(self, pipeline: str, subject: str, outcome: SyncOutcome):
        """Log the aggregate outcome of a pipeline run"""
        if not self.file_logger:
            return

        entry = {
            'pipeline': pipeline,
            'subject': subject,
            'outcome': 'success' if outcome.success else 'failure',
            'step': outcome.step.value if outcome.step else None,
            'error_class': outcome.error_class.value if outcome.error_class else None,
            'error': outcome.error,
        }
        self.file_logger.info(json.dumps(entry, ensure_ascii=False))

    def close(self):
        if self.file_logger:
            for handler in list(self.file_logger.handlers):
                handler.close()
                self.file_logger.removeHandler(handler)
