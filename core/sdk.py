# =============================================================================
# core/sdk.py  —  The Spheron SDK surface we depend on
# =============================================================================
#
# The Spheron compute-marketplace SDK is an external collaborator.  This
# module pins down the four calls we make on it as typing.Protocols, so the
# rest of core/ is written against an interface, not a vendor package:
#
#   sdk.deployment.create_deployment(yaml, proxy_url)
#   sdk.deployment.get_deployment(lease_id, proxy_url)
#   sdk.escrow.get_user_balance(token, wallet_address)
#   sdk.leases.get_lease_details(lease_id)
#
# Each method may be a coroutine function or a plain blocking one;
# core/spheron.py awaits the first and runs the second in a worker thread.
#
# WHERE THE REAL SDK COMES FROM:
#   SPHERON_SDK_FACTORY="some.module:create_sdk" names a callable that is
#   invoked once at startup as factory(network=..., private_key=...).
# =============================================================================

import importlib
from typing import Any, Callable, Optional, Protocol

from core.errors import ErrorKind, OperationError


class DeploymentModule(Protocol):
    def create_deployment(self, yaml_content: str, provider_proxy_url: str) -> Any: ...

    def get_deployment(self, lease_id: str, provider_proxy_url: str) -> Any: ...


class EscrowModule(Protocol):
    def get_user_balance(self, token: str, wallet_address: Optional[str] = None) -> Any: ...


class LeasesModule(Protocol):
    def get_lease_details(self, lease_id: str) -> Any: ...


class SpheronSDK(Protocol):
    deployment: DeploymentModule
    escrow: EscrowModule
    leases: LeasesModule


def load_factory(target: str) -> Callable[..., SpheronSDK]:
    """Resolve a ``"package.module:callable"`` string to the callable."""
    module_name, sep, attr = (target or "").strip().partition(":")
    if not sep or not module_name or not attr:
        raise OperationError(
            ErrorKind.CONFIGURATION,
            f"SPHERON_SDK_FACTORY must look like 'package.module:callable', got {target!r}",
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise OperationError(
            ErrorKind.CONFIGURATION,
            f"Cannot import Spheron SDK module {module_name!r}: {exc}",
            {"factory": target, "error": exc},
        ) from exc

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise OperationError(
            ErrorKind.CONFIGURATION,
            f"{target!r} does not name a callable",
            {"factory": target},
        )
    return factory


def create_sdk(target: str, network: str, private_key: str) -> SpheronSDK:
    """Build the SDK instance the server will use for its whole lifetime."""
    factory = load_factory(target)
    try:
        return factory(network=network, private_key=private_key)
    except Exception as exc:
        raise OperationError(
            ErrorKind.SPHERON,
            f"Failed to initialize Spheron SDK: {exc}",
            {"network": network, "error": exc},
        ) from exc
