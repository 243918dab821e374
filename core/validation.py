# =============================================================================
# core/validation.py  —  Operation Argument Validator
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns the untyped `arguments` dict of a tool call into one of the four
#   request records from core/models.py, or raises a VALIDATION error.
#
# HOW IT WORKS:
#   1. Check the discriminant (`operation`) first.  Without a known
#      operation we can't know which other fields matter, so this is the
#      only place we stop early.
#   2. Run EVERY rule of the resolved operation, collecting violations as
#      (field, constraint) pairs.
#   3. If anything was collected, raise once with all of them, so the
#      assistant can fix every field in a single retry.
#
# This module is pure: no network, no files, no logging side effects beyond
# a debug line.
# =============================================================================

import logging
import re
from collections.abc import Callable, Mapping
from typing import Any, Optional

from core.errors import ErrorKind, OperationError
from core.models import (
    DeployComputeRequest,
    FetchBalanceRequest,
    FetchDeploymentUrlsRequest,
    FetchLeaseIdRequest,
    Operation,
    OperationRequest,
)

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"^[A-Z]{2,10}$")
MIN_LEASE_ID_LENGTH = 10
MIN_WALLET_ADDRESS_LENGTH = 20
YAML_SOURCES = ("request", "yaml_content", "yaml_path")

Violations = list[tuple[str, str]]


# -----------------------------------------------------------------------------
# Field helpers
# -----------------------------------------------------------------------------
# Each helper appends to `violations` instead of raising, and returns the
# trimmed value (or None when the field is unusable).
# -----------------------------------------------------------------------------
def _required_string(raw: Mapping[str, Any], name: str, violations: Violations) -> Optional[str]:
    value = raw.get(name)
    if value is None:
        violations.append((name, "is required"))
        return None
    if not isinstance(value, str):
        violations.append((name, "must be a string"))
        return None
    value = value.strip()
    if not value:
        violations.append((name, "cannot be empty"))
        return None
    return value


def _optional_string(raw: Mapping[str, Any], name: str, violations: Violations) -> Optional[str]:
    """Trimmed value, "" when present but blank, None when absent."""
    value = raw.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        violations.append((name, "must be a string"))
        return None
    return value.strip()


def _lease_id(raw: Mapping[str, Any], violations: Violations) -> Optional[str]:
    lease_id = _required_string(raw, "lease_id", violations)
    if lease_id is not None and len(lease_id) < MIN_LEASE_ID_LENGTH:
        violations.append((
            "lease_id",
            f"appears to be too short (minimum {MIN_LEASE_ID_LENGTH} characters)",
        ))
        return None
    return lease_id


def _proxy_url(raw: Mapping[str, Any], violations: Violations) -> Optional[str]:
    # A blank proxy URL means "use the configured default".
    return _optional_string(raw, "provider_proxy_url", violations) or None


# -----------------------------------------------------------------------------
# One builder per operation
# -----------------------------------------------------------------------------
def _build_deploy_compute(raw: Mapping[str, Any], violations: Violations) -> DeployComputeRequest:
    sources: dict[str, str] = {}
    wrong_type = 0
    for name in YAML_SOURCES:
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            violations.append((name, "must be a string"))
            wrong_type += 1
            continue
        if value.strip():
            sources[name] = value

    # A source of the wrong type still counts as supplied.
    supplied = len(sources) + wrong_type
    if supplied == 0:
        violations.append((
            "input",
            "Must provide exactly one of: request, yaml_content, or yaml_path",
        ))
    elif supplied > 1:
        violations.append((
            "input",
            "Cannot provide multiple input methods. "
            "Choose one of: request, yaml_content, or yaml_path",
        ))

    request = sources.get("request")
    yaml_path = sources.get("yaml_path")
    return DeployComputeRequest(
        request=request.strip() if request else None,
        # YAML is whitespace-sensitive; keep it exactly as given.
        yaml_content=sources.get("yaml_content"),
        yaml_path=yaml_path.strip() if yaml_path else None,
        provider_proxy_url=_proxy_url(raw, violations),
    )


def _build_fetch_balance(raw: Mapping[str, Any], violations: Violations) -> FetchBalanceRequest:
    token = _required_string(raw, "token", violations)
    if token is not None and not TOKEN_PATTERN.match(token):
        violations.append(("token", "must be 2-10 uppercase letters (e.g., CST, USDC)"))

    wallet_address = _optional_string(raw, "wallet_address", violations)
    if wallet_address is not None and len(wallet_address) < MIN_WALLET_ADDRESS_LENGTH:
        violations.append((
            "wallet_address",
            f"appears to be too short (minimum {MIN_WALLET_ADDRESS_LENGTH} characters)",
        ))

    return FetchBalanceRequest(token=token or "", wallet_address=wallet_address)


def _build_fetch_deployment_urls(raw: Mapping[str, Any], violations: Violations) -> FetchDeploymentUrlsRequest:
    return FetchDeploymentUrlsRequest(
        lease_id=_lease_id(raw, violations) or "",
        provider_proxy_url=_proxy_url(raw, violations),
    )


def _build_fetch_lease_id(raw: Mapping[str, Any], violations: Violations) -> FetchLeaseIdRequest:
    return FetchLeaseIdRequest(lease_id=_lease_id(raw, violations) or "")


_BUILDERS: dict[Operation, Callable[[Mapping[str, Any], Violations], OperationRequest]] = {
    Operation.DEPLOY_COMPUTE: _build_deploy_compute,
    Operation.FETCH_BALANCE: _build_fetch_balance,
    Operation.FETCH_DEPLOYMENT_URLS: _build_fetch_deployment_urls,
    Operation.FETCH_LEASE_ID: _build_fetch_lease_id,
}


# =============================================================================
# PUBLIC API
# =============================================================================
def validate_operation_args(raw: Optional[Mapping[str, Any]]) -> OperationRequest:
    """Validate raw tool arguments and build the matching request record.

    Args:
        raw: The `arguments` object of the tool call.  None is treated as {}.

    Returns:
        One of DeployComputeRequest, FetchBalanceRequest,
        FetchDeploymentUrlsRequest or FetchLeaseIdRequest.

    Raises:
        OperationError: kind VALIDATION, listing every violated field.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise OperationError(ErrorKind.VALIDATION, "Tool arguments must be an object")

    allowed = ", ".join(Operation.names())
    operation = raw.get("operation")
    logger.debug("Validating operation arguments (operation=%r)", operation)

    if operation is None or (isinstance(operation, str) and not operation.strip()):
        raise OperationError(
            ErrorKind.VALIDATION,
            f"operation is required; expected one of: {allowed}",
        )
    if not isinstance(operation, str) or operation.strip() not in Operation.names():
        raise OperationError(
            ErrorKind.VALIDATION,
            f"Unknown operation: {operation}; expected one of: {allowed}",
            {"operation": operation},
        )

    op = Operation(operation.strip())
    violations: Violations = []
    record = _BUILDERS[op](raw, violations)

    if violations:
        details = "; ".join(f"{name}: {constraint}" for name, constraint in violations)
        raise OperationError(
            ErrorKind.VALIDATION,
            f"Validation failed: {details}",
            {
                "operation": op.value,
                "errors": [{"field": name, "constraint": c} for name, c in violations],
            },
        )

    logger.debug("Validation successful (operation=%s)", op.value)
    return record
