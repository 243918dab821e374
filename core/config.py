# =============================================================================
# core/config.py  —  Server configuration, read once at startup
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Reads the environment (after main.py has run load_dotenv()) into a
#   frozen SpheronConfig.  Nothing here is a singleton: main.py builds one
#   config, builds the client from it, and passes both down explicitly.
#
# ENVIRONMENT VARIABLES:
#   SPHERON_PRIVATE_KEY   required   wallet key handed to the SDK
#   SPHERON_NETWORK       optional   "testnet" (default) or "mainnet"
#   PROVIDER_PROXY_URL    optional   default provider proxy for deployments
#   YAML_API_URL          optional   natural-language → YAML generator
#   SPHERON_SDK_FACTORY   optional   "module:callable" that builds the SDK
#   LOG_LEVEL             optional   DEBUG / INFO / WARNING / ERROR
#   SERVER_NAME           optional   MCP server identity
#   SERVER_VERSION        optional   version reported to MCP clients
#   ENABLE_FILE_LOGGING   optional   "true" adds a JSON log file next to stderr
#   LOG_FILE_PATH         optional   where that file goes (required if enabled)
#
# Unset and empty values both mean "use the default".  A value that is set
# but invalid (SPHERON_NETWORK=staging) is rejected, never coerced.
# =============================================================================

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from core.errors import ErrorKind, OperationError

NETWORKS = ("testnet", "mainnet")

DEFAULT_NETWORK = "testnet"
DEFAULT_PROVIDER_PROXY_URL = "https://provider-proxy.spheron.network"
DEFAULT_YAML_API_URL = "http://provider.cpu.gpufarm.xyz:32692/generate"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVER_NAME = "spheron-mcp"
DEFAULT_SERVER_VERSION = "0.1.0"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class SpheronConfig:
    private_key: str = field(repr=False)
    network: str = DEFAULT_NETWORK
    provider_proxy_url: str = DEFAULT_PROVIDER_PROXY_URL
    yaml_api_url: str = DEFAULT_YAML_API_URL
    sdk_factory: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    server_name: str = DEFAULT_SERVER_NAME
    server_version: str = DEFAULT_SERVER_VERSION
    enable_file_logging: bool = False
    log_file_path: Optional[str] = None

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)

    @property
    def log_file(self) -> Optional[str]:
        """Path of the JSON log file, or None when file logging is off."""
        return self.log_file_path if self.enable_file_logging else None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SpheronConfig":
        """Build and validate a config from environment variables.

        Every problem is collected first, then reported in one
        CONFIGURATION error.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = (env.get(name) or "").strip()
            return value or default

        errors: list[str] = []

        private_key = get("SPHERON_PRIVATE_KEY")
        if not private_key:
            errors.append("SPHERON_PRIVATE_KEY is required")

        network = get("SPHERON_NETWORK", DEFAULT_NETWORK)
        if network not in NETWORKS:
            errors.append(f'SPHERON_NETWORK must be either "testnet" or "mainnet", got {network!r}')

        log_level = get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if log_level not in _LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}")

        enable_file_logging = get("ENABLE_FILE_LOGGING", "false").lower() == "true"
        log_file_path = get("LOG_FILE_PATH")
        if enable_file_logging and not log_file_path:
            errors.append("LOG_FILE_PATH is required when ENABLE_FILE_LOGGING is true")

        if errors:
            raise OperationError(
                ErrorKind.CONFIGURATION,
                f"Environment configuration validation failed: {', '.join(errors)}",
                {"errors": errors},
            )

        return cls(
            private_key=private_key,
            network=network,
            provider_proxy_url=get("PROVIDER_PROXY_URL", DEFAULT_PROVIDER_PROXY_URL),
            yaml_api_url=get("YAML_API_URL", DEFAULT_YAML_API_URL),
            sdk_factory=get("SPHERON_SDK_FACTORY"),
            log_level=log_level,
            server_name=get("SERVER_NAME", DEFAULT_SERVER_NAME),
            server_version=get("SERVER_VERSION", DEFAULT_SERVER_VERSION),
            enable_file_logging=enable_file_logging,
            log_file_path=log_file_path,
        )
