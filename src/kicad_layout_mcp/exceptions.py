"""Exception hierarchy for the layout pipeline.

Every command converts these into the ``{"error": ..., "trace": ...}``
payload, so the error code and any extra attributes travel to the client.
"""

from __future__ import annotations

from typing import Any


class LayoutMcpError(Exception):
    """Base exception for all kicad-layout-mcp errors."""

    error_code: str = ""

    def __init__(self, message: str, error_code: str | None = None, **kwargs: Any):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.__dict__.update(kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a serializable dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
        }
        result.update(
            {
                k: v
                for k, v in self.__dict__.items()
                if k not in ("message", "error_code") and v is not None
            }
        )
        return result


class ValidationError(LayoutMcpError):
    """Raised when command arguments are malformed or reference unknown objects."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, **kwargs: Any):
        super().__init__(message, "VALIDATION_ERROR", field=field, **kwargs)


class ResourceNotFoundError(LayoutMcpError):
    """Raised when a required file, net or component does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, message: str, resource_type: str | None = None, **kwargs: Any):
        super().__init__(message, "NOT_FOUND", resource_type=resource_type, **kwargs)


class ParseError(LayoutMcpError):
    """Raised when a DSN/SES document is malformed."""

    error_code = "PARSE_ERROR"

    def __init__(self, message: str, path: str | None = None, **kwargs: Any):
        super().__init__(message, "PARSE_ERROR", path=path, **kwargs)


class BackendError(LayoutMcpError):
    """Raised when an external tool fails."""

    error_code = "BACKEND_ERROR"

    def __init__(self, message: str, backend_name: str | None = None, **kwargs: Any):
        super().__init__(message, "BACKEND_ERROR", backend_name=backend_name, **kwargs)


class KiCadCliError(BackendError):
    """Raised when kicad-cli fails."""

    error_code = "KICAD_CLI_ERROR"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, "kicad-cli", exit_code=exit_code, stderr=stderr, **kwargs)
        self.error_code = "KICAD_CLI_ERROR"


class AutorouterError(BackendError):
    """Raised when the FreeRouting process fails for a reason other than a stall stop."""

    error_code = "AUTOROUTER_ERROR"

    def __init__(self, message: str, exit_code: int | None = None, **kwargs: Any):
        super().__init__(message, "freerouting", exit_code=exit_code, **kwargs)
        self.error_code = "AUTOROUTER_ERROR"


class NetlistToolError(BackendError):
    """Raised when kinet2pcb fails to build a board from a netlist."""

    error_code = "NETLIST_TOOL_ERROR"

    def __init__(self, message: str, stderr: str | None = None, **kwargs: Any):
        super().__init__(message, "kinet2pcb", stderr=stderr, **kwargs)
        self.error_code = "NETLIST_TOOL_ERROR"


class StateLockError(LayoutMcpError):
    """Raised when the per-project state lock cannot be acquired."""

    error_code = "STATE_LOCK_ERROR"

    def __init__(self, message: str, lock_path: str | None = None, **kwargs: Any):
        super().__init__(message, "STATE_LOCK_ERROR", lock_path=lock_path, **kwargs)


__all__ = [
    "AutorouterError",
    "BackendError",
    "KiCadCliError",
    "LayoutMcpError",
    "NetlistToolError",
    "ParseError",
    "ResourceNotFoundError",
    "StateLockError",
    "ValidationError",
]
