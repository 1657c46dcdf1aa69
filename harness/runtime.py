"""
flexitest runtime that tags log records with the running test.
"""

import logging
import time

import flexitest

from harness.test_logging import set_current_test

logger = logging.getLogger(__name__)


class TestRuntimeWithLogging(flexitest.TestRuntime):
    """
    TestRuntime that sets the current test name for automatic log tagging
    and logs how long each test took.
    """

    def _exec_test(self, test_name: str, env):
        set_current_test(test_name)
        started = time.monotonic()
        logger.info("starting")
        try:
            return super()._exec_test(test_name, env)
        finally:
            logger.info(f"finished in {time.monotonic() - started:.1f}s")
            set_current_test(None)
