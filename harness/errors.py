"""
Error taxonomy for the layering harness.

Control-plane failures are split by whether they can be retried
(`ConflictError`, `TransportError`) or must abort the current phase.
Waiter failures distinguish a slow timeout from a terminal state so callers
never confuse "the build failed" with "the build is taking too long".
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ApiError(HarnessError):
    """Raised when the API server rejects a request."""

    def __init__(self, status: int, reason: str, message: str = ""):
        self.status = status
        self.reason = reason
        self.message = message
        super().__init__(f"API Error {status} {reason}: {message}".rstrip(": "))


class NotFoundError(ApiError):
    """The referenced resource does not exist."""

    def __init__(self, kind: str, name: str, message: str = ""):
        self.kind = kind
        self.name = name
        super().__init__(404, "NotFound", message or f"{kind} '{name}' not found")


class AlreadyExistsError(ApiError):
    """A resource with the same name already exists."""

    def __init__(self, kind: str, name: str, message: str = ""):
        self.kind = kind
        self.name = name
        super().__init__(409, "AlreadyExists", message or f"{kind} '{name}' already exists")


class ConflictError(ApiError):
    """The update carried a stale resource version."""

    def __init__(self, kind: str, name: str, message: str = ""):
        self.kind = kind
        self.name = name
        super().__init__(409, "Conflict", message or f"{kind} '{name}' was modified concurrently")


class ConflictExhausted(HarnessError):
    """Every attempt of a read-modify-write cycle hit a conflict."""

    def __init__(self, kind: str, name: str, attempts: int):
        self.kind = kind
        self.name = name
        self.attempts = attempts
        super().__init__(f"{kind} '{name}' still conflicting after {attempts} attempts")


class TransportError(HarnessError):
    """The API server could not be reached or answered with a server error."""


class WaitTimeout(HarnessError, TimeoutError):
    """A wait exhausted its time budget without the condition being satisfied."""

    def __init__(self, description: str, timeout: float, last_observed=None):
        self.description = description
        self.timeout = timeout
        self.last_observed = last_observed
        super().__init__(f"Timed out after {timeout}s waiting for {description}")


class UnrecoverableStateError(HarnessError):
    """A wait observed a state from which the condition can never be satisfied."""

    def __init__(self, description: str, observed=None, elapsed: float = 0.0):
        self.description = description
        self.observed = observed
        self.elapsed = elapsed
        super().__init__(f"Unrecoverable state while waiting for {description}")


class RemoteExecError(HarnessError):
    """A command executed on a node exited with a non-zero status."""

    def __init__(self, node: str, cmd: list[str], returncode: int, stderr: str):
        self.node = node
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"command on node '{node}' failed (exit {returncode}):\n"
            f"  cmd: {' '.join(cmd)}\n"
            f"  stderr: {stderr.strip()}"
        )


class CleanupError(HarnessError):
    """One or more cleanup actions raised. All of them were still attempted."""

    def __init__(self, failures: list[tuple[str, Exception]]):
        self.failures = failures
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"{len(failures)} cleanup action(s) failed: {names}")


class ScenarioError(HarnessError):
    """A scenario phase failed. `kind` names the underlying error class."""

    def __init__(self, phase, cause: Exception):
        self.phase = phase
        self.cause = cause
        self.cleanup_error: CleanupError | None = None
        super().__init__(f"phase {phase} failed with {self.kind}: {cause}")

    @property
    def kind(self) -> str:
        return type(self.cause).__name__
