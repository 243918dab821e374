# =============================================================================
# tools/dispatcher.py  —  spheron_operation: validate, dispatch, respond
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Handles one call of the `spheron_operation` tool, start to finish:
#
#     1. RECEIVE   check the tool name
#     2. VALIDATE  raw arguments → typed request (core/validation.py)
#     3. DISPATCH  exactly one SpheronClient method per request type
#     4. RESPOND   {"success": true, "data": ...} as one JSON text item
#     5. RECOVER   any failure → one McpError with a protocol code
#
#   The dispatcher holds a reference to the client and nothing else, so
#   concurrent calls never share mutable state.
# =============================================================================

import json
import logging
from collections.abc import Mapping
from typing import Any, Optional

from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND, ErrorData, TextContent

from core.errors import error_response, to_mcp_error
from core.models import (
    DeployComputeRequest,
    FetchBalanceRequest,
    FetchDeploymentUrlsRequest,
    FetchLeaseIdRequest,
    Operation,
    OperationRequest,
    OperationResult,
    success_response,
)
from core.spheron import SpheronClient
from core.validation import validate_operation_args

logger = logging.getLogger(__name__)

TOOL_NAME = "spheron_operation"

TOOL_DESCRIPTION = (
    "Perform operations with Spheron Protocol including deployment, "
    "balance checking, and lease management"
)

# JSON schema advertised for the tool.  The oneOf block documents which
# fields each operation needs; core/validation.py enforces it.
TOOL_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "operation": {
            "type": "string",
            "enum": Operation.names(),
            "description": "The operation to perform",
        },
        "request": {
            "type": "string",
            "description": "Natural language request for deployment (deploy_compute only)",
        },
        "yaml_content": {
            "type": "string",
            "description": "Direct YAML content for deployment (deploy_compute only)",
        },
        "yaml_path": {
            "type": "string",
            "description": "Path to YAML file for deployment (deploy_compute only)",
        },
        "token": {
            "type": "string",
            "description": "Token symbol (e.g., CST, USDC) for balance operations (fetch_balance only)",
        },
        "wallet_address": {
            "type": "string",
            "description": "Wallet address to check (optional for fetch_balance)",
        },
        "lease_id": {
            "type": "string",
            "description": "Lease/deployment ID (fetch_deployment_urls and fetch_lease_id only)",
        },
        "provider_proxy_url": {
            "type": "string",
            "description": "Custom provider proxy URL (optional, defaults to configured value)",
        },
    },
    "required": ["operation"],
    "oneOf": [
        {
            "properties": {"operation": {"const": "deploy_compute"}},
            "anyOf": [
                {"required": ["request"]},
                {"required": ["yaml_content"]},
                {"required": ["yaml_path"]},
            ],
        },
        {"properties": {"operation": {"const": "fetch_balance"}}, "required": ["token"]},
        {"properties": {"operation": {"const": "fetch_deployment_urls"}}, "required": ["lease_id"]},
        {"properties": {"operation": {"const": "fetch_lease_id"}}, "required": ["lease_id"]},
    ],
}


class OperationDispatcher:
    def __init__(self, client: SpheronClient):
        self.client = client

    def list_tools(self) -> list[dict[str, Any]]:
        return [{
            "name": TOOL_NAME,
            "description": TOOL_DESCRIPTION,
            "inputSchema": TOOL_INPUT_SCHEMA,
        }]

    async def dispatch(self, request: OperationRequest) -> OperationResult:
        """Route a validated request to exactly one client method."""
        if isinstance(request, DeployComputeRequest):
            return await self.client.deploy_compute(request)
        elif isinstance(request, FetchBalanceRequest):
            return await self.client.fetch_balance(request)
        elif isinstance(request, FetchDeploymentUrlsRequest):
            return await self.client.fetch_deployment_urls(request)
        elif isinstance(request, FetchLeaseIdRequest):
            return await self.client.fetch_lease_details(request)

        # Unreachable once validation passed; fail loudly if it ever isn't.
        tag = getattr(request, "operation", type(request).__name__)
        raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown operation: {tag}"))

    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> list[TextContent]:
        """Run one tool call and return its single text content item.

        Raises:
            McpError: for an unknown tool, invalid arguments, or any failure
                while talking to Spheron.
        """
        logger.info("Processing tool call %s", name)
        if name != TOOL_NAME:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))

        try:
            request = validate_operation_args(arguments or {})
            result = await self.dispatch(request)
        except McpError as exc:
            logger.error("Tool call %s failed: %s", name, exc.error.message)
            raise
        except Exception as exc:
            logger.error("Tool call %s failed: %s", name, json.dumps(error_response(exc), default=str))
            raise to_mcp_error(exc) from exc

        logger.info("Tool call %s completed (operation=%s)", name, request.operation.value)
        text = json.dumps(success_response(result), indent=2, default=str)
        return [TextContent(type="text", text=text)]
