"""
End-to-end tests through the FastMCP server, using the in-memory client.
"""
import asyncio
import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
from fastmcp import Client
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND

import main
from core.config import SpheronConfig
from core.errors import ErrorKind, OperationError
from tools.dispatcher import TOOL_NAME, OperationDispatcher
from tools.mcp_server import configure_logging, create_server
from conftest import TEST_LEASE_ID


@pytest.fixture
def server(client):
    return create_server(OperationDispatcher(client), name="spheron-test")


async def _call(server, arguments):
    async with Client(server) as mcp_client:
        return await mcp_client.call_tool_mcp(TOOL_NAME, arguments)


def test_tool_is_listed(server):
    async def list_names():
        async with Client(server) as mcp_client:
            return [tool.name for tool in await mcp_client.list_tools()]

    assert asyncio.run(list_names()) == [TOOL_NAME]


def test_tool_returns_dispatcher_json(server, sdk):
    sdk.leases.result = {"status": "active", "provider": "0xprovider", "tenant": "0xtenant",
                         "createdAt": "2026-01-01T00:00:00.000Z"}

    result = asyncio.run(_call(server, {"operation": "fetch_lease_id", "lease_id": TEST_LEASE_ID}))

    assert not result.isError
    text_items = [item for item in result.content if item.type == "text"]
    assert len(text_items) == 1
    envelope = json.loads(text_items[0].text)
    assert envelope["success"] is True
    assert envelope["data"]["leaseId"] == TEST_LEASE_ID
    assert envelope["data"]["status"] == "active"
    assert sdk.leases.calls == [("get_lease_details", TEST_LEASE_ID)]


def test_validation_failure_is_invalid_params_error(server, sdk):
    with pytest.raises(McpError) as exc_info:
        asyncio.run(_call(server, {"operation": "fetch_balance", "token": "usdc"}))

    error = exc_info.value.error
    assert error.code == INVALID_PARAMS
    assert error.message.startswith("Validation failed: token:")
    assert error.data == {"code": "VALIDATION_ERROR"}
    assert sdk.all_calls == []


def test_sdk_failure_is_internal_error(server, sdk):
    sdk.leases.error = RuntimeError("rpc unavailable")

    with pytest.raises(McpError) as exc_info:
        asyncio.run(_call(server, {"operation": "fetch_lease_id", "lease_id": TEST_LEASE_ID}))

    error = exc_info.value.error
    assert error.code == INTERNAL_ERROR
    assert error.message == f"Failed to fetch lease details for {TEST_LEASE_ID}: rpc unavailable"
    assert error.data == {"code": "SPHERON_ERROR"}


def test_unknown_operation_is_invalid_params_error(server, sdk):
    with pytest.raises(McpError) as exc_info:
        asyncio.run(_call(server, {"operation": "launch_rocket", "lease_id": TEST_LEASE_ID}))
    assert exc_info.value.error.code == INVALID_PARAMS
    assert sdk.all_calls == []


def test_unknown_tool_is_method_not_found(server):
    async def call_other():
        async with Client(server) as mcp_client:
            return await mcp_client.call_tool_mcp("other_tool", {})

    with pytest.raises(McpError) as exc_info:
        asyncio.run(call_other())
    assert exc_info.value.error.code == METHOD_NOT_FOUND
    assert exc_info.value.error.message == "Unknown tool: other_tool"


def test_server_reports_configured_version(client):
    server = create_server(OperationDispatcher(client), name="spheron-test", version="2.3.0")
    assert server.version == "2.3.0"


# =============================================================================
# Logging
# =============================================================================
@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_file_logging_writes_json_lines(root_logger, tmp_path):
    log_file = tmp_path / "logs" / "spheron-mcp.log"

    configure_logging(logging.INFO, str(log_file))
    logging.getLogger("core.spheron").warning("\033[33mlease %s is closing\033[0m", TEST_LEASE_ID)
    for handler in root_logger.handlers:
        handler.flush()

    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert records[-1]["level"] == "WARNING"
    assert records[-1]["logger"] == "core.spheron"
    assert records[-1]["message"] == f"lease {TEST_LEASE_ID} is closing"
    assert records[-1]["time"].endswith("Z")


def test_no_log_file_without_path(root_logger):
    before = list(root_logger.handlers)
    configure_logging(logging.INFO)
    assert not [h for h in root_logger.handlers if h not in before and isinstance(h, RotatingFileHandler)]


def test_build_server_requires_sdk_factory():
    config = SpheronConfig(private_key="0xkey")
    with pytest.raises(OperationError, match="SPHERON_SDK_FACTORY") as exc_info:
        main.build_server(config)
    assert exc_info.value.kind is ErrorKind.CONFIGURATION


def test_build_server_wires_everything():
    config = SpheronConfig(private_key="0xkey", sdk_factory="conftest:create_fake_sdk", server_name="spheron-wired")
    server = main.build_server(config)
    assert server.name == "spheron-wired"


def test_main_exits_on_bad_configuration(monkeypatch):
    monkeypatch.delenv("SPHERON_PRIVATE_KEY", raising=False)
    monkeypatch.setenv("SPHERON_NETWORK", "staging")
    with pytest.raises(SystemExit) as exc_info:
        main.main()
    assert exc_info.value.code == 1
