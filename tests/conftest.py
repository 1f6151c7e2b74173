import pytest
from solders.keypair import Keypair

from moltycash.config import Settings
from moltycash.networks import Network

# Generate valid dummy keys
dummy_svm_key = str(Keypair())
dummy_evm_key = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"

ENV_VARS = (
    "EVM_PRIVATE_KEY",
    "SVM_PRIVATE_KEY",
    "MOLTY_IDENTITY_TOKEN",
    "RESOURCE_SERVER_URL",
    "REQUEST_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real keys and tokens out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings():
    """Build Settings without reading a .env file."""

    def _make(**values) -> Settings:
        values.setdefault("resource_server_url", "http://molty.test")
        return Settings(_env_file=None, **values)

    return _make


class FakeSigner:
    """PaymentSigner stand-in that records what it was asked to sign."""

    def __init__(self, addresses=None):
        self._addresses = addresses or {
            Network.BASE: "0xFakePayer",
            Network.SOLANA: "FakeSolanaPayer111111111111111111111111111",
        }
        self.signed = []

    @property
    def addresses(self):
        return dict(self._addresses)

    @property
    def networks(self):
        return list(self._addresses)

    async def sign(self, requirements):
        self.signed.append(requirements)
        return {"x402Version": 2, "payload": {"signature": "0xsigned"}}


@pytest.fixture
def fake_signer():
    return FakeSigner()
