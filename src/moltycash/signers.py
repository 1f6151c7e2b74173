"""Payment signers backed by the x402 SDK.

The CLI never builds or signs payment payloads itself. A PaymentSigner turns
the server's payment requirements into a signed x402 payload; the only
implementation registers the exact EVM and/or SVM schemes on an x402Client.
"""

from typing import Any, Iterable, Protocol

import base58
from eth_account import Account
from x402 import parse_payment_required, x402Client
from x402.mechanisms.evm import EthAccountSigner
from x402.mechanisms.evm.exact.register import register_exact_evm_client
from x402.mechanisms.svm import KeypairSigner
from x402.mechanisms.svm.exact.register import register_exact_svm_client

from moltycash.config import Settings
from moltycash.errors import SignerError
from moltycash.logging_utils import get_logger
from moltycash.networks import Network, configured_networks

logger = get_logger(__name__)

SOLANA_SECRET_KEY_LENGTH = 64


class PaymentSigner(Protocol):
    """Signs x402 payment requirements for one or more networks."""

    @property
    def addresses(self) -> dict[Network, str]: ...

    @property
    def networks(self) -> list[Network]: ...

    async def sign(self, requirements: Any) -> dict[str, Any]: ...


class X402PaymentSigner:
    """PaymentSigner that delegates payload creation to an x402Client."""

    def __init__(self, client: x402Client, addresses: dict[Network, str]):
        self._client = client
        self._addresses = addresses

    @property
    def addresses(self) -> dict[Network, str]:
        return dict(self._addresses)

    @property
    def networks(self) -> list[Network]:
        return list(self._addresses)

    async def sign(self, requirements: Any) -> dict[str, Any]:
        """Create a signed payment payload for the server's requirements.

        Args:
            requirements: PaymentRequired as a raw dict or an x402 model.

        Returns:
            The signed payload, JSON-ready with protocol field names.

        Raises:
            SignerError: If the requirements are malformed or no registered
                scheme can satisfy them.
        """
        try:
            if isinstance(requirements, dict):
                requirements = parse_payment_required(requirements)
            payload = await self._client.create_payment_payload(requirements)
        except Exception as e:
            logger.error(f"Payment signing failed: {e}", exc_info=True)
            raise SignerError(f"Failed to sign payment: {e}") from e

        return payload.model_dump(by_alias=True, exclude_none=True, mode="json")


def _register_evm(client: x402Client, private_key: str) -> str:
    if not private_key.startswith("0x"):
        raise SignerError("EVM_PRIVATE_KEY must start with '0x'")
    try:
        account = Account.from_key(private_key)
    except Exception as e:
        raise SignerError(f"Invalid EVM_PRIVATE_KEY: {e}") from e
    register_exact_evm_client(client, EthAccountSigner(account))
    return account.address


def _register_svm(client: x402Client, private_key: str) -> str:
    try:
        secret = base58.b58decode(private_key)
    except ValueError as e:
        raise SignerError(f"SVM_PRIVATE_KEY is not valid base58: {e}") from e
    if len(secret) != SOLANA_SECRET_KEY_LENGTH:
        raise SignerError(
            f"SVM_PRIVATE_KEY must decode to {SOLANA_SECRET_KEY_LENGTH} bytes, got {len(secret)}"
        )
    try:
        signer = KeypairSigner.from_bytes(secret)
    except Exception as e:
        raise SignerError(f"Invalid SVM_PRIVATE_KEY: {e}") from e
    register_exact_svm_client(client, signer)
    return signer.address


def build_signer(settings: Settings, networks: Iterable[Network]) -> X402PaymentSigner:
    """Create a signer with the exact scheme registered for each network.

    Args:
        settings: Settings holding the private keys.
        networks: Networks to register; each needs its key configured.

    Returns:
        A ready X402PaymentSigner.

    Raises:
        SignerError: If a key is missing or malformed.
    """
    client = x402Client()
    addresses: dict[Network, str] = {}

    for network in networks:
        if network is Network.BASE:
            if not settings.has_evm_key:
                raise SignerError(f"Missing {network.key_env_var} environment variable")
            addresses[network] = _register_evm(client, settings.evm_private_key)
        else:
            if not settings.has_svm_key:
                raise SignerError(f"Missing {network.key_env_var} environment variable")
            addresses[network] = _register_svm(client, settings.svm_private_key)
        logger.info(f"Registered {network.display_name} signer {addresses[network]}")

    if not addresses:
        raise SignerError("No private keys found. Set EVM_PRIVATE_KEY or SVM_PRIVATE_KEY.")

    return X402PaymentSigner(client, addresses)


def build_available_signer(settings: Settings) -> X402PaymentSigner:
    """Create a signer for every network with a configured key."""
    return build_signer(
        settings, configured_networks(settings.evm_private_key, settings.svm_private_key)
    )
