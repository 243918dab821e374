# =============================================================================
# core/spheron.py  —  Remote Operation Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Performs the four Spheron operations against the SDK and turns whatever
#   the SDK hands back into the result records of core/models.py.
#
# THE NORMALIZATION RULE:
#   SDK results are partially untyped and full of big integers (token
#   amounts in base units, on-chain IDs).  Before ANY field is read, the
#   raw result goes through stringify_big_ints(), which rewrites every int
#   as its base-10 string.  Field readers (get_string, get_mapping, ...)
#   are total: a missing or wrongly-typed key is None, never an exception.
#
# ERROR POLICY:
#   Errors that are already classified (NETWORK, FILESYSTEM, ...) pass
#   through untouched.  Anything else the SDK throws becomes a SPHERON
#   error with the original exception chained and kept in the context.
# =============================================================================

import asyncio
import dataclasses
import inspect
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from core.config import SpheronConfig
from core.errors import ErrorKind, OperationError
from core.models import (
    DeployComputeRequest,
    DeploymentDetails,
    DeploymentResult,
    FetchBalanceRequest,
    FetchDeploymentUrlsRequest,
    FetchLeaseIdRequest,
    LeaseDetails,
    TokenBalance,
)
from core.sdk import SpheronSDK
from core.yaml_input import YamlGenerator, parse_environment_variables, resolve_yaml

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 6

_INTEGER_STRING = re.compile(r"^-?\d+$")


# =============================================================================
# Normalization helpers
# =============================================================================
def stringify_big_ints(value: Any) -> Any:
    """Recursively replace every integer with its decimal string.

    bool is left alone (it is an int subclass, but not a number here).
    Mappings, sequences and dataclass instances are rebuilt; all other
    values are returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Mapping):
        return {key: stringify_big_ints(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [stringify_big_ints(item) for item in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: stringify_big_ints(getattr(value, f.name)) for f in dataclasses.fields(value)}
    return value


def convert_token_units(value: Any, decimals: int = TOKEN_DECIMALS) -> str:
    """Convert an integer amount in base units to a decimal string.

    "1500000" → "1.5", "1000000" → "1", "0" → "0" (with 6 decimals).
    Anything that isn't an integer string is logged and returned as-is.
    """
    raw = str(value).strip()
    if not _INTEGER_STRING.match(raw):
        logger.warning("Failed to convert token units (value=%r, decimals=%d)", value, decimals)
        return str(value)

    amount = int(raw)
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** decimals)
    fraction_digits = str(fraction).rjust(decimals, "0").rstrip("0")
    if fraction_digits:
        return f"{sign}{whole}.{fraction_digits}"
    return f"{sign}{whole}"


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def get_string(obj: Any, key: str) -> Optional[str]:
    value = _as_mapping(obj).get(key)
    return value if isinstance(value, str) else None


def get_string_list(obj: Any, key: str) -> Optional[list[str]]:
    value = _as_mapping(obj).get(key)
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return None


def get_mapping(obj: Any, key: str) -> Optional[dict[str, Any]]:
    value = _as_mapping(obj).get(key)
    return dict(value) if isinstance(value, Mapping) else None


def utc_now_iso() -> str:
    """Current time as ISO8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _call_sdk(method: Any, *args: Any) -> Any:
    # Sync SDK methods run in a worker thread so one blocking RPC never
    # holds up other tool calls on the event loop.
    if inspect.iscoroutinefunction(method):
        return await method(*args)
    result = await asyncio.to_thread(method, *args)
    if inspect.isawaitable(result):
        return await result
    return result


def _spheron_error(exc: Exception, message: str, req: Any) -> OperationError:
    return OperationError(
        ErrorKind.SPHERON,
        f"{message}: {exc}",
        {"request": dataclasses.asdict(req), "error": exc},
    )


# =============================================================================
# The client
# =============================================================================
class SpheronClient:
    """Runs Spheron operations through an SDK instance.

    Args:
        sdk: Anything shaped like core.sdk.SpheronSDK.
        config: Supplies the default provider proxy and the generator URL.
        yaml_generator: Override for the YAML generator (tests inject one
            with a mock transport).
    """

    def __init__(self, sdk: SpheronSDK, config: SpheronConfig, yaml_generator: Optional[YamlGenerator] = None):
        self.sdk = sdk
        self.config = config
        self.yaml_generator = yaml_generator or YamlGenerator(config.yaml_api_url)
        logger.info("Spheron client ready (network=%s)", config.network)

    def _proxy_url(self, override: Optional[str]) -> str:
        return override or self.config.provider_proxy_url

    # -------------------------------------------------------------------------
    # deploy_compute
    # -------------------------------------------------------------------------
    async def deploy_compute(self, req: DeployComputeRequest) -> DeploymentResult:
        logger.info("Starting compute deployment")
        try:
            yaml_text = await resolve_yaml(req, self.yaml_generator)
            environment = parse_environment_variables(yaml_text)

            logger.debug("Creating deployment with Spheron SDK")
            raw = await _call_sdk(
                self.sdk.deployment.create_deployment, yaml_text, self._proxy_url(req.provider_proxy_url)
            )
            result = stringify_big_ints(raw)

            lease_id = get_string(result, "leaseId")
            if not lease_id:
                raise ValueError("deployment response is missing leaseId")

            deployment = DeploymentResult(
                lease_id=lease_id,
                success=True,
                message=f"Deployment created successfully with lease ID: {lease_id}",
                environment=environment,
            )
        except Exception as exc:
            logger.error("Compute deployment failed: %s", exc)
            if isinstance(exc, OperationError):
                raise
            raise _spheron_error(exc, "Deployment failed", req) from exc

        logger.info("Compute deployment completed (lease_id=%s)", lease_id)
        return deployment

    # -------------------------------------------------------------------------
    # fetch_balance
    # -------------------------------------------------------------------------
    async def fetch_balance(self, req: FetchBalanceRequest) -> TokenBalance:
        logger.info("Fetching wallet balance (token=%s, custom_wallet=%s)", req.token, bool(req.wallet_address))
        try:
            raw = await _call_sdk(self.sdk.escrow.get_user_balance, req.token, req.wallet_address)
            balance = stringify_big_ints(raw)

            locked = _as_mapping(balance).get("lockedBalance")
            unlocked = _as_mapping(balance).get("unlockedBalance")
            if locked is None or unlocked is None:
                raise ValueError("balance response is missing lockedBalance or unlockedBalance")

            result = TokenBalance(
                token=get_string(balance, "token") or req.token,
                locked_balance=convert_token_units(locked),
                unlocked_balance=convert_token_units(unlocked),
            )
        except Exception as exc:
            logger.error("Failed to fetch balance for %s: %s", req.token, exc)
            if isinstance(exc, OperationError):
                raise
            raise _spheron_error(exc, f"Failed to fetch balance for token {req.token}", req) from exc

        logger.info(
            "Balance fetched (token=%s, locked=%s, unlocked=%s)",
            result.token, result.locked_balance, result.unlocked_balance,
        )
        return result

    # -------------------------------------------------------------------------
    # fetch_deployment_urls
    # -------------------------------------------------------------------------
    async def fetch_deployment_urls(self, req: FetchDeploymentUrlsRequest) -> DeploymentDetails:
        logger.info("Fetching deployment URLs (lease_id=%s)", req.lease_id)
        try:
            raw = await _call_sdk(
                self.sdk.deployment.get_deployment, req.lease_id, self._proxy_url(req.provider_proxy_url)
            )
            details = stringify_big_ints(raw)

            result = DeploymentDetails(
                lease_id=req.lease_id,
                status=get_string(details, "status") or "unknown",
                urls=get_string_list(details, "urls"),
                services=get_mapping(details, "services"),
                logs=get_string_list(details, "logs"),
            )
        except Exception as exc:
            logger.error("Failed to fetch deployment URLs for %s: %s", req.lease_id, exc)
            if isinstance(exc, OperationError):
                raise
            raise _spheron_error(exc, f"Failed to fetch deployment URLs for lease {req.lease_id}", req) from exc

        logger.info("Deployment URLs fetched (lease_id=%s, urls=%d)", req.lease_id, len(result.urls or []))
        return result

    # -------------------------------------------------------------------------
    # fetch_lease_id
    # -------------------------------------------------------------------------
    async def fetch_lease_details(self, req: FetchLeaseIdRequest) -> LeaseDetails:
        logger.info("Fetching lease details (lease_id=%s)", req.lease_id)
        try:
            raw = await _call_sdk(self.sdk.leases.get_lease_details, req.lease_id)
            details = stringify_big_ints(raw)

            result = LeaseDetails(
                lease_id=req.lease_id,
                status=get_string(details, "status") or "unknown",
                provider=get_string(details, "provider") or "",
                tenant=get_string(details, "tenant") or "",
                created_at=get_string(details, "createdAt") or utc_now_iso(),
                expires_at=get_string(details, "expiresAt"),
                specifications=get_mapping(details, "specifications"),
            )
        except Exception as exc:
            logger.error("Failed to fetch lease details for %s: %s", req.lease_id, exc)
            if isinstance(exc, OperationError):
                raise
            raise _spheron_error(exc, f"Failed to fetch lease details for {req.lease_id}", req) from exc

        logger.info("Lease details fetched (lease_id=%s, status=%s)", req.lease_id, result.status)
        return result
