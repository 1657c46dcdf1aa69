"""
Service wrapper extending flexitest.service.ProcService with standardized methods.

Avoids ad-hoc monkey-patching and provides type-safe service abstractions.
"""

import logging
from typing import Any

import flexitest

from harness.wait import wait_until


class ApiService(flexitest.service.ProcService):
    """
    Extends ProcService with API client creation and readiness checks.

    Subclasses must implement create_client() and _health_check().

    Usage:
        class MyService(ApiService):
            def create_client(self) -> MyClient:
                return MyClient(self.props["api_url"])

            def _health_check(self, client):
                client.ping()

        svc = MyService(props={"api_url": "http://127.0.0.1:8001"}, cmd=["myservice"], name="myservice")
        svc.start()
        svc.wait_for_ready()
        client = svc.create_client()
    """

    def __init__(
        self,
        props: dict[str, Any],
        cmd: list[str],
        stdout: str | None = None,
        name: str | None = None,
    ):
        """
        Initialize service wrapper.

        Args:
            props: Service properties (ports, URLs, etc.)
            cmd: Command and arguments to execute
            stdout: Path to log file for stdout/stderr
            name: Service name for logging
        """
        super().__init__(props, cmd, stdout)
        self._name = name or cmd[0]
        self._logger = logging.getLogger(f"service.{self._name}")

    def create_client(self):
        """
        Create an API client for this service.

        Raises:
            NotImplementedError: If subclass doesn't implement this method
        """
        raise NotImplementedError("Subclass must implement create_client()")

    def _health_check(self, client: Any) -> None:
        """
        Perform a cheap call that proves the service is responsive.

        Raises:
            Exception: If service is not healthy
        """
        raise NotImplementedError("Subclass must implement _health_check()")

    def check_health(self) -> bool:
        if not self.check_status():
            return False

        try:
            self._health_check(self.create_client())
            return True
        except Exception as e:
            self._logger.debug(f"health check failed: {e}")
            return False

    def wait_for_ready(self, timeout: int = 30, interval: float = 0.5) -> None:
        """
        Wait until service is healthy and ready.

        Raises:
            AssertionError: If service doesn't become ready within timeout
        """
        wait_until(
            self.check_health,
            error_with=f"Service '{self._name}' not ready",
            timeout=timeout,
            step=interval,
        )
