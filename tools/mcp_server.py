# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (the single Spheron tool)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Builds the FastMCP server and registers ONE tool, `spheron_operation`.
#   The tool is a thin wrapper: it gathers its parameters into an
#   `arguments` dict and hands them to tools/dispatcher.py, which does the
#   validating, calling and serializing.
#
# HOW IT WORKS (the flow):
#   1. An assistant calls `spheron_operation` with an `operation` and the
#      fields that operation needs
#   2. FastMCP routes the call to the function registered below
#   3. The dispatcher validates, calls Spheron, and returns JSON text
#   4. The assistant receives {"success": true, "data": {...}}
#      or a protocol error with a code and message
#
# WHY ONE TOOL AND NOT FOUR?
#   Existing Spheron MCP clients already speak `spheron_operation` with an
#   `operation` discriminator.  Keeping that contract means prompts and
#   client configs written for it keep working unchanged.
#
# NO GLOBALS:
#   create_server() receives a ready dispatcher (built by main.py from the
#   config) and closes over it.  Nothing here reads the environment.
# =============================================================================

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import NotFoundError, ToolError
from mcp import types
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData

from core.config import DEFAULT_SERVER_NAME, DEFAULT_SERVER_VERSION
from tools.dispatcher import TOOL_DESCRIPTION, TOOL_NAME, OperationDispatcher

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because the MCP server communicates with the client via
# STDOUT (stdin/stdout is the MCP transport).  Anything printed to stdout
# would corrupt the JSON-RPC stream.
#
# With ENABLE_FILE_LOGGING=true the same records also go to LOG_FILE_PATH,
# one JSON object per line, rotated at 10 MB.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for response JSON
#     - YELLOW for intermediate status/progress messages
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses (JSON output)
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"     # Reset to default terminal color

_ANSI_CODES = re.compile(r"\033\[\d+m")

# Long YAML documents would drown the log; show a prefix only.
_MAX_LOGGED_VALUE = 120

_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


def _iso_time(created: float) -> str:
    stamp = datetime.fromtimestamp(created, timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JSONFormatter(logging.Formatter):
    """One JSON object per line for the log file (colour codes stripped)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": _iso_time(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": _ANSI_CODES.sub("", record.getMessage()),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Log to stderr, plus a rotating JSON file when `log_file` is given."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [MCP] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    if not log_file:
        return

    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        path,
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(JSONFormatter())
    logging.getLogger().addHandler(file_handler)


def _clip(value: object) -> str:
    text = repr(value)
    if len(text) > _MAX_LOGGED_VALUE:
        return text[:_MAX_LOGGED_VALUE] + "...'"
    return text


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={_clip(v)}" for k, v in params.items())
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, text: str) -> str:
    """Log the tool response as compact JSON in GREEN, then return it."""
    compact = json.dumps(json.loads(text), separators=(",", ":"))
    logging.info(f"{_GREEN}  ← {tool_name} response: {compact}{_RESET}")
    return text


# =============================================================================
# Protocol errors
# =============================================================================
# FastMCP catches whatever a tool raises and answers with an `isError`
# result holding plain text, so the code the dispatcher picked would never
# reach the client.  The tools/call handler below runs the same FastMCP
# call path, but lets the McpError through to the MCP session, which sends
# it back as a JSON-RPC error with that code (and the wire code in `data`).
# =============================================================================
def _raise_protocol_errors(mcp: FastMCP) -> None:
    async def handle_call_tool(req: types.CallToolRequest) -> types.ServerResult:
        name = req.params.name
        try:
            result = await mcp._mcp_call_tool(name, req.params.arguments or {})
        except NotFoundError as exc:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}")) from exc
        except ToolError as exc:
            mcp_error = exc.__cause__
            if isinstance(mcp_error, McpError):
                raise mcp_error from mcp_error.__cause__
            # The dispatcher never ran: FastMCP could not bind the arguments.
            raise McpError(ErrorData(code=INVALID_PARAMS, message=str(exc))) from exc

        content, structured = result if isinstance(result, tuple) else (result, None)
        return types.ServerResult(types.CallToolResult(
            content=list(content),
            structuredContent=structured,
            isError=False,
        ))

    mcp._mcp_server.request_handlers[types.CallToolRequest] = handle_call_tool


# =============================================================================
# Server factory
# =============================================================================
def create_server(
    dispatcher: OperationDispatcher,
    name: str = DEFAULT_SERVER_NAME,
    version: str = DEFAULT_SERVER_VERSION,
) -> FastMCP:
    """Create the FastMCP server with `spheron_operation` registered."""
    mcp = FastMCP(name, version=version)
    _raise_protocol_errors(mcp)

    # =========================================================================
    # TOOL: spheron_operation
    # =========================================================================
    # Which parameters are required depends on `operation`:
    #   deploy_compute         → exactly one of request / yaml_content / yaml_path
    #   fetch_balance          → token (wallet_address optional)
    #   fetch_deployment_urls  → lease_id (provider_proxy_url optional)
    #   fetch_lease_id         → lease_id
    # A JSON schema can't express that cleanly, so the dispatcher enforces it
    # and reports every problem at once.
    # =========================================================================
    @mcp.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    async def spheron_operation(
        operation: Literal["deploy_compute", "fetch_balance", "fetch_deployment_urls", "fetch_lease_id"],
        request: Optional[str] = None,
        yaml_content: Optional[str] = None,
        yaml_path: Optional[str] = None,
        token: Optional[str] = None,
        wallet_address: Optional[str] = None,
        lease_id: Optional[str] = None,
        provider_proxy_url: Optional[str] = None,
    ) -> str:
        """Deploy compute on Spheron, or look up balances, deployments and leases.

        Args:
            operation: deploy_compute, fetch_balance, fetch_deployment_urls or fetch_lease_id.
            request: Natural language description of what to deploy (deploy_compute only).
            yaml_content: Spheron deployment YAML (deploy_compute only).
            yaml_path: Path to a Spheron deployment YAML file (deploy_compute only).
            token: Token symbol such as CST or USDC (fetch_balance only).
            wallet_address: Wallet to check instead of the server's own (fetch_balance only).
            lease_id: Lease/deployment ID (fetch_deployment_urls and fetch_lease_id).
            provider_proxy_url: Custom provider proxy URL; defaults to the configured one.

        Returns:
            JSON text: {"success": true, "data": {...}}.
        """
        arguments = {
            key: value
            for key, value in {
                "operation": operation,
                "request": request,
                "yaml_content": yaml_content,
                "yaml_path": yaml_path,
                "token": token,
                "wallet_address": wallet_address,
                "lease_id": lease_id,
                "provider_proxy_url": provider_proxy_url,
            }.items()
            if value is not None
        }
        _log_request(TOOL_NAME, **arguments)

        content = await dispatcher.call_tool(TOOL_NAME, arguments)
        _log_status(f"{operation} succeeded")
        return _log_response(TOOL_NAME, content[0].text)

    return mcp
