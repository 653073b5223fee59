"""Error capture with screenshots and context."""

import base64
import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import ErrorCaptureConfig

logger = logging.getLogger(__name__)


class ErrorCapture:
    """Keep a bounded record of booking failures, optionally persisted to disk."""

    def __init__(
        self,
        screenshots_dir: str = ErrorCaptureConfig.SCREENSHOTS_DIR,
        cleanup_days: int = ErrorCaptureConfig.CLEANUP_DAYS,
        to_disk: bool = False,
        max_errors: int = ErrorCaptureConfig.MAX_IN_MEMORY,
    ):
        """
        Initialize error capture.

        Args:
            screenshots_dir: Directory for error screenshots and JSON records
            cleanup_days: Days to keep error files before cleanup
            to_disk: Whether to write screenshots and records to disk
            max_errors: Number of records kept in memory
        """
        self.screenshots_dir = Path(screenshots_dir)
        self.to_disk = to_disk
        if self.to_disk:
            self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.errors: List[Dict[str, Any]] = []
        self.max_errors = max_errors
        self.cleanup_days = cleanup_days
        self._last_cleanup = time.time()
        self._lock = threading.Lock()

    def capture(
        self,
        error: BaseException,
        stage: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
        url: Optional[str] = None,
        screenshot: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record a failure.

        Args:
            error: Exception that ended the run
            stage: Stage that was running
            diagnostics: Observed labels or other hints
            url: Page URL at failure time
            screenshot: Base64 PNG captured by the driver, if any

        Returns:
            Error record
        """
        timestamp = datetime.now(timezone.utc)
        error_id = timestamp.strftime("%Y%m%d_%H%M%S_%f")

        error_record: Dict[str, Any] = {
            "id": error_id,
            "timestamp": timestamp.isoformat(),
            "stage": stage,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "diagnostics": list(diagnostics or []),
            "url": url,
            "captures": {},
        }

        if self.to_disk:
            self._write_to_disk(error_id, error_record, screenshot)

        with self._lock:
            self.errors.append(error_record)
            if len(self.errors) > self.max_errors:
                self.errors.pop(0)

        logger.info(f"Error captured: {error_id} ({error_record['error_type']} at {stage})")

        # Periodic cleanup (outside the write path so it never blocks the return)
        if self.to_disk:
            try:
                self._cleanup_old_errors()
            except OSError as e:
                logger.error(f"Error during cleanup: {e}")

        return error_record

    def _write_to_disk(
        self, error_id: str, error_record: Dict[str, Any], screenshot: Optional[str]
    ) -> None:
        try:
            if screenshot:
                screenshot_path = self.screenshots_dir / f"{error_id}_full.png"
                screenshot_path.write_bytes(base64.b64decode(screenshot))
                error_record["captures"]["full_screenshot"] = str(screenshot_path)

            json_path = self.screenshots_dir / f"{error_id}.json"
            json_path.write_text(json.dumps(error_record, indent=2, default=str), encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to persist error context: {e}")
            error_record["capture_error"] = str(e)

    def _cleanup_old_errors(self) -> None:
        """Clean up error files older than cleanup_days."""
        current_time = time.time()

        if current_time - self._last_cleanup < ErrorCaptureConfig.CLEANUP_INTERVAL_SECONDS:
            return

        self._last_cleanup = current_time
        cutoff_time = datetime.now(timezone.utc) - timedelta(days=self.cleanup_days)

        deleted_count = 0
        for file_path in self.screenshots_dir.glob("*"):
            if file_path.is_file():
                file_mtime = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
                if file_mtime < cutoff_time:
                    file_path.unlink()
                    deleted_count += 1

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} old error files (>{self.cleanup_days} days)")

    def get_recent_errors(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get recent errors, newest first."""
        with self._lock:
            records = list(self.errors)
        return sorted(records, key=lambda x: x["timestamp"], reverse=True)[:limit]

    def get_error_by_id(self, error_id: str) -> Optional[Dict[str, Any]]:
        """Get specific error details."""
        with self._lock:
            for error in self.errors:
                if error["id"] == error_id:
                    return error

        json_path = self.screenshots_dir / f"{error_id}.json"
        if json_path.exists():
            loaded_data: Any = json.loads(json_path.read_text(encoding="utf-8"))
            return loaded_data if isinstance(loaded_data, dict) else None

        return None


_error_capture: Optional[ErrorCapture] = None


def get_error_capture() -> ErrorCapture:
    """Get the process-wide error capture configured from settings."""
    global _error_capture
    if _error_capture is None:
        from ..core.config.settings import get_settings

        settings = get_settings()
        _error_capture = ErrorCapture(
            screenshots_dir=settings.screenshots_dir,
            cleanup_days=settings.error_capture_cleanup_days,
            to_disk=settings.error_capture_to_disk,
        )
    return _error_capture


def reset_error_capture() -> None:
    """Reset error capture singleton (useful for testing)."""
    global _error_capture
    _error_capture = None
