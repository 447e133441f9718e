"""
Unit tests for logger.py - structured application logging.
"""

import json

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logger import AppLogger
from tests.test_logger import test_logger


class TestAppLogger:
    """Test suite for AppLogger."""

    def setup_method(self):
        """Setup test environment."""
        test_logger.log_section("TESTING: logger.py - AppLogger")

    def test_log_file_receives_json_records(self, tmp_path, monkeypatch):
        """LOG_FILE adds a JSON handler carrying the keyword extras."""
        test_logger.log_test_start("logger.py", "AppLogger._setup_handlers", "log_file")

        try:
            log_path = tmp_path / "app.log"
            monkeypatch.setenv("LOG_FILE", str(log_path))

            app_logger = AppLogger("chat_api.test_log_file", level="DEBUG")
            app_logger.session_write("sess_1", success=False, error="redis down")
            for handler in app_logger.logger.handlers:
                handler.flush()

            record = json.loads(log_path.read_text(encoding="utf-8").strip().splitlines()[-1])
            assert record["level"] == "ERROR"
            assert record["message"] == "Session write FAILED"
            assert record["data"] == {"session_id": "sess_1", "success": False, "error": "redis down"}

            test_logger.log_test_pass("logger.py", "AppLogger._setup_handlers", "log_file")
        except Exception as e:
            test_logger.log_test_fail("logger.py", "AppLogger._setup_handlers", "log_file", str(e))
            raise

    def test_no_file_handler_without_log_file(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)

        app_logger = AppLogger("chat_api.test_console_only")

        assert len(app_logger.logger.handlers) == 1
