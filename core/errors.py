# =============================================================================
# core/errors.py  —  Error Taxonomy (every way a tool call can fail)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Defines ONE exception type, OperationError, tagged with an ErrorKind.
#   Each kind carries a stable string code ("VALIDATION_ERROR", ...) and
#   maps to exactly one MCP protocol error code.
#
# WHY ONE CLASS AND NOT SIX?
#   The six kinds differ only in data (code, protocol mapping, status), not
#   in behavior.  A lookup table keyed by ErrorKind is all the dispatcher
#   needs; there is nothing for subclasses to override.
#
# WHO RAISES WHAT:
#   core/validation.py   → VALIDATION
#   core/yaml_input.py   → NETWORK, FILESYSTEM, YAML_PROCESSING
#   core/spheron.py      → SPHERON (wraps anything unclassified from the SDK)
#   core/config.py       → CONFIGURATION (startup only)
#
#   Only tools/dispatcher.py turns these into protocol errors.
# =============================================================================

from enum import Enum
from typing import Any, Optional

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData


class ErrorKind(str, Enum):
    """Failure categories.  The value is the stable wire code."""

    CONFIGURATION = "CONFIGURATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    SPHERON = "SPHERON_ERROR"
    NETWORK = "NETWORK_ERROR"
    YAML_PROCESSING = "YAML_PROCESSING_ERROR"
    FILESYSTEM = "FILESYSTEM_ERROR"


# -----------------------------------------------------------------------------
# Lookup tables
# -----------------------------------------------------------------------------
# Caller mistakes (bad arguments, unreadable file, bad YAML) → INVALID_PARAMS.
# Our side or the remote side failing                      → INTERNAL_ERROR.
# -----------------------------------------------------------------------------
_PROTOCOL_CODES: dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: INTERNAL_ERROR,
    ErrorKind.VALIDATION: INVALID_PARAMS,
    ErrorKind.SPHERON: INTERNAL_ERROR,
    ErrorKind.NETWORK: INTERNAL_ERROR,
    ErrorKind.YAML_PROCESSING: INVALID_PARAMS,
    ErrorKind.FILESYSTEM: INVALID_PARAMS,
}

_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.VALIDATION: 400,
    ErrorKind.SPHERON: 500,
    ErrorKind.NETWORK: 500,
    ErrorKind.YAML_PROCESSING: 400,
    ErrorKind.FILESYSTEM: 400,
}


class OperationError(Exception):
    """A classified failure with a human-readable message.

    Args:
        kind: Which category this failure belongs to.
        message: What went wrong, phrased for the person reading the tool output.
        context: Optional structured details (the triggering input, the cause).
    """

    def __init__(self, kind: ErrorKind, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = context or {}

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs.  Context values that are exceptions become strings."""
        return {
            "code": self.code,
            "kind": self.kind.name,
            "message": self.message,
            "status_code": self.status_code,
            "context": {k: _plain(v) for k, v in self.context.items()},
        }

    def __repr__(self) -> str:
        return f"OperationError({self.kind.name}, {self.message!r})"


def _plain(value: Any) -> Any:
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return value


def protocol_code(kind: ErrorKind) -> int:
    """Return the MCP (JSON-RPC) error code for a failure kind."""
    return _PROTOCOL_CODES[kind]


def error_message(error: BaseException) -> str:
    """Best-effort message for any exception."""
    if isinstance(error, OperationError):
        return error.message
    return str(error) or type(error).__name__


def to_mcp_error(error: BaseException) -> McpError:
    """Map any exception onto a protocol-level McpError.

    Classified errors keep their message, get the code from the table and
    carry their wire code ("VALIDATION_ERROR", ...) in ``data``;
    everything else is an internal error carrying the stringified cause.
    """
    if isinstance(error, McpError):
        return error
    if isinstance(error, OperationError):
        return McpError(ErrorData(
            code=protocol_code(error.kind),
            message=error.message,
            data={"code": error.code},
        ))
    return McpError(ErrorData(
        code=INTERNAL_ERROR,
        message=f"Tool execution failed: {error_message(error)}",
    ))


def error_response(error: BaseException) -> dict[str, Any]:
    """Build the ``success: false`` envelope for an error.

    This shape is used for logging and diagnostics; tool calls surface
    failures as protocol errors instead.
    """
    if isinstance(error, OperationError):
        response: dict[str, Any] = {
            "success": False,
            "error": error.message,
            "code": error.code,
        }
        if error.context:
            response["context"] = error.to_dict()["context"]
        return response
    return {"success": False, "error": error_message(error)}
