# =============================================================================
# main.py  —  Entry Point for the Spheron MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py            (or the `spheron-mcp` console script)
#
# WHAT HAPPENS:
#   1. Loads .env into the environment (SPHERON_PRIVATE_KEY, etc.)
#   2. Validates the configuration once (core/config.py)
#   3. Builds the Spheron SDK from SPHERON_SDK_FACTORY
#   4. Wires SDK → SpheronClient → OperationDispatcher → FastMCP server
#   5. Serves the `spheron_operation` tool over stdio
#
# Everything is built here, once, and passed down by reference.  A bad
# configuration stops the process before the server ever starts listening,
# so no tool call can run half-configured.
#
# MCP CLIENT CONFIG (example):
#   {
#     "mcpServers": {
#       "spheron": {
#         "command": "uv",
#         "args": ["run", "python", "/path/to/main.py"],
#         "env": {
#           "SPHERON_PRIVATE_KEY": "...",
#           "SPHERON_SDK_FACTORY": "my_spheron_bridge:create_sdk"
#         }
#       }
#     }
#   }
# =============================================================================

import logging
import sys

from dotenv import load_dotenv

# Load environment variables from .env file BEFORE reading the config.
load_dotenv()

from core.config import SpheronConfig
from core.errors import ErrorKind, OperationError
from core.sdk import create_sdk
from core.spheron import SpheronClient
from tools.dispatcher import OperationDispatcher
from tools.mcp_server import configure_logging, create_server

logger = logging.getLogger("spheron_mcp")


def build_server(config: SpheronConfig):
    """Wire the whole application together from a validated config."""
    if not config.sdk_factory:
        raise OperationError(
            ErrorKind.CONFIGURATION,
            "SPHERON_SDK_FACTORY is required (e.g. 'my_spheron_bridge:create_sdk')",
        )

    logger.info("Initializing Spheron SDK (network=%s)", config.network)
    sdk = create_sdk(config.sdk_factory, network=config.network, private_key=config.private_key)

    client = SpheronClient(sdk, config)
    dispatcher = OperationDispatcher(client)
    return create_server(dispatcher, name=config.server_name, version=config.server_version)


def main() -> None:
    try:
        config = SpheronConfig.from_env()
    except OperationError as exc:
        configure_logging()
        logger.error("Configuration error: %s", exc.message)
        logger.error("Please check your environment variables.")
        sys.exit(1)

    configure_logging(config.log_level_number, config.log_file)
    logger.info(
        "Starting Spheron MCP Server (name=%s, version=%s, network=%s, yaml_api=%s)",
        config.server_name, config.server_version, config.network, config.yaml_api_url,
    )
    if config.log_file:
        logger.info("Writing JSON logs to %s", config.log_file)

    try:
        server = build_server(config)
    except OperationError as exc:
        logger.error("Failed to start Spheron MCP Server [%s]: %s", exc.code, exc.message)
        sys.exit(1)

    logger.info("Server is running on stdio transport")
    server.run()


# =============================================================================
# Script entry point
# =============================================================================
if __name__ == "__main__":
    main()
