# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses define the *shape* of every piece of information that
# flows through one tool call:
#
#   raw arguments ──▶ OperationRequest ──▶ SDK ──▶ OperationResult ──▶ envelope
#
# REQUESTS are frozen dataclasses, one per operation.  The `operation` tag
# lives on the class (a ClassVar), so it can never be changed or mismatched
# after construction.  Fields that belong to other operations simply don't
# exist on the record.
#
# RESULTS serialize with camelCase keys (leaseId, lockedBalance, ...) because
# that is what MCP clients of the Spheron tool already consume.  Optional
# fields that are None are dropped from the JSON rather than sent as null.
#
# BIG NUMBERS:
#   Token amounts and on-chain IDs can exceed what a JSON number can carry
#   safely in most clients.  Every numeric value taken from the SDK is a
#   decimal *string* by the time it lands in one of these records.
# =============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class Operation(str, Enum):
    """The four things the spheron_operation tool can do."""

    DEPLOY_COMPUTE = "deploy_compute"
    FETCH_BALANCE = "fetch_balance"
    FETCH_DEPLOYMENT_URLS = "fetch_deployment_urls"
    FETCH_LEASE_ID = "fetch_lease_id"

    @classmethod
    def names(cls) -> list[str]:
        return [op.value for op in cls]


# =============================================================================
# Requests
# =============================================================================
@dataclass(frozen=True)
class DeployComputeRequest:
    """Deploy compute from exactly one YAML source."""

    operation: ClassVar[Operation] = Operation.DEPLOY_COMPUTE

    request: Optional[str] = None              # Natural language, sent to the YAML generator
    yaml_content: Optional[str] = None         # Literal YAML
    yaml_path: Optional[str] = None            # Path to a YAML file on this machine
    provider_proxy_url: Optional[str] = None   # Falls back to PROVIDER_PROXY_URL


@dataclass(frozen=True)
class FetchBalanceRequest:
    """Escrow balance for one token, optionally for another wallet."""

    operation: ClassVar[Operation] = Operation.FETCH_BALANCE

    token: str                                 # "USDC", "CST", ...
    wallet_address: Optional[str] = None


@dataclass(frozen=True)
class FetchDeploymentUrlsRequest:
    operation: ClassVar[Operation] = Operation.FETCH_DEPLOYMENT_URLS

    lease_id: str
    provider_proxy_url: Optional[str] = None


@dataclass(frozen=True)
class FetchLeaseIdRequest:
    operation: ClassVar[Operation] = Operation.FETCH_LEASE_ID

    lease_id: str


OperationRequest = Union[
    DeployComputeRequest,
    FetchBalanceRequest,
    FetchDeploymentUrlsRequest,
    FetchLeaseIdRequest,
]


# =============================================================================
# Results
# =============================================================================
def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class DeploymentResult:
    lease_id: str
    success: bool
    message: Optional[str] = None
    environment: dict[str, str] = field(default_factory=dict)
    # environment holds the `- KEY = VALUE` pairs found under `env:` in the
    # deployed YAML, so the assistant can tell the user what was configured.

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "leaseId": self.lease_id,
            "success": self.success,
            "message": self.message,
            "environment": dict(self.environment),
        })


@dataclass
class TokenBalance:
    token: str
    locked_balance: str                        # Decimal string, e.g. "1.5"
    unlocked_balance: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "lockedBalance": self.locked_balance,
            "unlockedBalance": self.unlocked_balance,
        }


@dataclass
class DeploymentDetails:
    lease_id: str
    status: str
    urls: Optional[list[str]] = None
    services: Optional[dict[str, Any]] = None
    logs: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "leaseId": self.lease_id,
            "status": self.status,
            "urls": self.urls,
            "services": self.services,
            "logs": self.logs,
        })


@dataclass
class LeaseDetails:
    lease_id: str
    status: str
    provider: str
    tenant: str
    created_at: str                            # ISO8601
    expires_at: Optional[str] = None           # ISO8601
    specifications: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "leaseId": self.lease_id,
            "status": self.status,
            "provider": self.provider,
            "tenant": self.tenant,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "specifications": self.specifications,
        })


OperationResult = Union[DeploymentResult, TokenBalance, DeploymentDetails, LeaseDetails]


def success_response(result: OperationResult) -> dict[str, Any]:
    """Wrap a result in the success envelope sent back to the client."""
    return {"success": True, "data": result.to_dict()}
