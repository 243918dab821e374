"""
Tests for operation argument validation.
"""
import pytest

from core.errors import ErrorKind, OperationError
from core.models import (
    DeployComputeRequest,
    FetchBalanceRequest,
    FetchDeploymentUrlsRequest,
    FetchLeaseIdRequest,
    Operation,
)
from core.validation import validate_operation_args
from conftest import TEST_LEASE_ID, TEST_WALLET


def _violations(exc_info):
    return {(e["field"], e["constraint"]) for e in exc_info.value.context["errors"]}


@pytest.mark.parametrize("raw", [{}, {"operation": None}, {"operation": "   "}, None])
def test_missing_operation(raw):
    with pytest.raises(OperationError) as exc_info:
        validate_operation_args(raw)
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert "operation is required" in exc_info.value.message
    for name in Operation.names():
        assert name in exc_info.value.message


@pytest.mark.parametrize("operation", ["deploy", "FETCH_BALANCE", 42])
def test_unknown_operation_names_allowed_set(operation):
    with pytest.raises(OperationError, match="Unknown operation") as exc_info:
        validate_operation_args({"operation": operation})
    for name in Operation.names():
        assert name in exc_info.value.message


def test_arguments_must_be_an_object():
    with pytest.raises(OperationError, match="must be an object"):
        validate_operation_args(["deploy_compute"])


def test_deploy_compute_with_yaml_content():
    yaml = "version: '1.0'\nservices:\n  web:\n    image: nginx\n"
    request = validate_operation_args({"operation": "deploy_compute", "yaml_content": yaml})
    assert isinstance(request, DeployComputeRequest)
    assert request.operation is Operation.DEPLOY_COMPUTE
    assert request.yaml_content == yaml
    assert request.request is None and request.yaml_path is None


def test_deploy_compute_trims_request_and_ignores_foreign_fields():
    request = validate_operation_args({
        "operation": "deploy_compute",
        "request": "  a jupyter notebook with one GPU  ",
        "token": "USDC",
        "lease_id": "x",
    })
    assert request.request == "a jupyter notebook with one GPU"
    assert not hasattr(request, "token")
    assert not hasattr(request, "lease_id")


def test_deploy_compute_requires_a_source():
    with pytest.raises(OperationError, match="Must provide exactly one of"):
        validate_operation_args({"operation": "deploy_compute"})


def test_deploy_compute_blank_source_does_not_count():
    with pytest.raises(OperationError, match="Must provide exactly one of"):
        validate_operation_args({"operation": "deploy_compute", "yaml_path": "   "})


@pytest.mark.parametrize("sources", [
    {"request": "deploy nginx", "yaml_content": "version: 1"},
    {"request": "deploy nginx", "yaml_path": "/tmp/deploy.yaml"},
    {"request": "deploy nginx", "yaml_content": "version: 1", "yaml_path": "/tmp/deploy.yaml"},
])
def test_deploy_compute_rejects_multiple_sources(sources):
    with pytest.raises(OperationError, match="Cannot provide multiple input methods"):
        validate_operation_args({"operation": "deploy_compute", **sources})


def test_deploy_compute_blank_proxy_url_means_default():
    request = validate_operation_args({
        "operation": "deploy_compute",
        "yaml_path": "deploy.yaml",
        "provider_proxy_url": "",
    })
    assert request.provider_proxy_url is None


def test_fetch_balance_valid():
    request = validate_operation_args({
        "operation": "fetch_balance",
        "token": "USDC",
        "wallet_address": TEST_WALLET,
    })
    assert request == FetchBalanceRequest(token="USDC", wallet_address=TEST_WALLET)


def test_fetch_balance_lowercase_token_rejected():
    with pytest.raises(OperationError, match="uppercase") as exc_info:
        validate_operation_args({"operation": "fetch_balance", "token": "usdc"})
    assert exc_info.value.kind is ErrorKind.VALIDATION


@pytest.mark.parametrize("token", ["U", "ABCDEFGHIJK", "US1", "US DC"])
def test_fetch_balance_token_pattern(token):
    with pytest.raises(OperationError, match="token"):
        validate_operation_args({"operation": "fetch_balance", "token": token})


def test_fetch_balance_accumulates_all_violations():
    with pytest.raises(OperationError) as exc_info:
        validate_operation_args({
            "operation": "fetch_balance",
            "token": "usdc",
            "wallet_address": "0xshort",
        })
    fields = {name for name, _ in _violations(exc_info)}
    assert fields == {"token", "wallet_address"}
    assert "token:" in exc_info.value.message
    assert "wallet_address:" in exc_info.value.message
    assert exc_info.value.context["operation"] == "fetch_balance"


def test_fetch_balance_missing_token():
    with pytest.raises(OperationError, match="token: is required"):
        validate_operation_args({"operation": "fetch_balance"})


def test_fetch_balance_wrong_type():
    with pytest.raises(OperationError, match="token: must be a string"):
        validate_operation_args({"operation": "fetch_balance", "token": 7})


@pytest.mark.parametrize("operation", ["fetch_deployment_urls", "fetch_lease_id"])
def test_lease_id_rules(operation):
    with pytest.raises(OperationError, match="lease_id: cannot be empty"):
        validate_operation_args({"operation": operation, "lease_id": "  "})
    with pytest.raises(OperationError, match="lease_id: appears to be too short"):
        validate_operation_args({"operation": operation, "lease_id": "123"})


def test_fetch_deployment_urls_valid():
    request = validate_operation_args({
        "operation": "fetch_deployment_urls",
        "lease_id": f"  {TEST_LEASE_ID} ",
        "provider_proxy_url": "https://proxy.example.com",
    })
    assert request == FetchDeploymentUrlsRequest(
        lease_id=TEST_LEASE_ID, provider_proxy_url="https://proxy.example.com"
    )


def test_fetch_lease_id_valid():
    request = validate_operation_args({"operation": "fetch_lease_id", "lease_id": TEST_LEASE_ID})
    assert request == FetchLeaseIdRequest(lease_id=TEST_LEASE_ID)
    assert request.operation is Operation.FETCH_LEASE_ID


def test_request_records_are_immutable():
    request = validate_operation_args({"operation": "fetch_lease_id", "lease_id": TEST_LEASE_ID})
    with pytest.raises(AttributeError):
        request.lease_id = "other-lease-id"
