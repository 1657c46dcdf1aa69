"""
Test name injection for logging across the codebase.

Provides a logging filter that automatically tags all logs with the current test name.
"""

import logging

_current_test_name: str | None = None

LOG_FORMAT = "%(asctime)s - %(test_name)s - %(name)s - %(levelname)s - %(message)s"


class TestNameFilter(logging.Filter):
    """
    Logging filter that injects current test name into all log records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.test_name = _current_test_name or "no-test"
        return True


def set_current_test(test_name: str | None) -> None:
    """
    Set the current test name for logging.

    This is called by the test runtime before each test execution.
    All logs will be tagged with this test name until it's cleared.
    """
    global _current_test_name
    _current_test_name = test_name


def get_test_logger() -> logging.Logger:
    """Logger scoped to the running test, or the generic test logger outside one."""
    return logging.getLogger(f"test.{_current_test_name or 'no-test'}")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with the test name stamped on every record."""
    handler = logging.StreamHandler()
    handler.addFilter(TestNameFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
    )
