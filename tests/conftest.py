"""
Shared fixtures: a fake Spheron SDK and a client wired to it.
"""
import pytest

from core.config import SpheronConfig
from core.spheron import SpheronClient
from core.yaml_input import YamlGenerator

TEST_LEASE_ID = "lease-0123456789"
TEST_WALLET = "0x1234567890abcdef1234567890abcdef12345678"
TEST_PROXY_URL = "https://proxy.example.com"


class FakeDeployment:
    def __init__(self):
        self.calls = []
        self.create_result = {"leaseId": TEST_LEASE_ID}
        self.get_result = {}
        self.error = None

    def create_deployment(self, yaml_content, provider_proxy_url):
        self.calls.append(("create_deployment", yaml_content, provider_proxy_url))
        if self.error:
            raise self.error
        return self.create_result

    async def get_deployment(self, lease_id, provider_proxy_url):
        self.calls.append(("get_deployment", lease_id, provider_proxy_url))
        if self.error:
            raise self.error
        return self.get_result


class FakeEscrow:
    def __init__(self):
        self.calls = []
        self.result = {"token": "USDC", "lockedBalance": 1500000, "unlockedBalance": 1000000}
        self.error = None

    async def get_user_balance(self, token, wallet_address=None):
        self.calls.append(("get_user_balance", token, wallet_address))
        if self.error:
            raise self.error
        return self.result


class FakeLeases:
    def __init__(self):
        self.calls = []
        self.result = {}
        self.error = None

    def get_lease_details(self, lease_id):
        self.calls.append(("get_lease_details", lease_id))
        if self.error:
            raise self.error
        return self.result


class FakeSDK:
    def __init__(self, network="testnet", private_key="test-key"):
        self.network = network
        self.private_key = private_key
        self.deployment = FakeDeployment()
        self.escrow = FakeEscrow()
        self.leases = FakeLeases()

    @property
    def all_calls(self):
        return self.deployment.calls + self.escrow.calls + self.leases.calls


def create_fake_sdk(network, private_key):
    """Factory used by the SPHERON_SDK_FACTORY tests."""
    return FakeSDK(network=network, private_key=private_key)


@pytest.fixture
def config():
    return SpheronConfig(
        private_key="test-key",
        provider_proxy_url=TEST_PROXY_URL,
        yaml_api_url="https://yaml.example.com/generate",
    )


@pytest.fixture
def sdk():
    return FakeSDK()


@pytest.fixture
def client(sdk, config):
    return SpheronClient(sdk, config, yaml_generator=YamlGenerator(config.yaml_api_url))
