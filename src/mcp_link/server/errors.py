"""Fatal lifecycle errors and the JSON error envelope.

Neither lifecycle error is retried: the process logs it and exits non-zero,
leaving restart policy to the process manager.
"""

from __future__ import annotations

from starlette.responses import JSONResponse

from .schemas import ErrorInfo, ErrorResponse


class LifecycleError(Exception):
    """A startup or shutdown phase failed for the server at ``address``."""

    action = "lifecycle"

    def __init__(self, phase: str, address: str, cause: BaseException | None = None):
        self.phase = phase
        self.address = address
        message = f"{self.action} failed during {phase} on {address}"
        if cause is not None:
            message += f": {str(cause) or type(cause).__name__}"
        super().__init__(message)


class StartupError(LifecycleError):
    """Binding or serving the listener failed."""

    action = "startup"


class ShutdownError(LifecycleError):
    """A collaborator failed to stop, or the shutdown deadline expired."""

    action = "shutdown"


def error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, object] | list[object] | str | None = None,
) -> JSONResponse:
    payload = ErrorResponse(error=ErrorInfo(code=code, message=message, details=details))
    return JSONResponse(payload.model_dump(exclude_none=True), status_code=status_code)
