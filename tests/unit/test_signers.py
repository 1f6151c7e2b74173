"""Unit tests for x402-backed payment signers."""

from unittest.mock import AsyncMock, MagicMock, patch

import base58
import pytest
from eth_account import Account
from solders.keypair import Keypair

from moltycash.errors import SignerError
from moltycash.networks import Network
from moltycash.signers import X402PaymentSigner, build_available_signer, build_signer

EVM_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.mark.unit
class TestBuildSigner:
    def test_evm_signer_address(self, make_settings):
        signer = build_signer(make_settings(evm_private_key=EVM_KEY), [Network.BASE])
        assert signer.addresses == {Network.BASE: Account.from_key(EVM_KEY).address}
        assert signer.networks == [Network.BASE]

    def test_svm_signer_address(self, make_settings):
        keypair = Keypair()
        signer = build_signer(make_settings(svm_private_key=str(keypair)), [Network.SOLANA])
        assert signer.addresses == {Network.SOLANA: str(keypair.pubkey())}

    def test_available_signer_registers_both(self, make_settings):
        settings = make_settings(evm_private_key=EVM_KEY, svm_private_key=str(Keypair()))
        signer = build_available_signer(settings)
        assert signer.networks == [Network.BASE, Network.SOLANA]

    def test_evm_key_without_prefix(self, make_settings):
        with pytest.raises(SignerError, match="EVM_PRIVATE_KEY must start with '0x'"):
            build_signer(make_settings(evm_private_key=EVM_KEY[2:]), [Network.BASE])

    def test_evm_key_invalid_hex(self, make_settings):
        with pytest.raises(SignerError, match="Invalid EVM_PRIVATE_KEY"):
            build_signer(make_settings(evm_private_key="0xnothex"), [Network.BASE])

    def test_svm_key_not_base58(self, make_settings):
        with pytest.raises(SignerError, match="not valid base58"):
            build_signer(make_settings(svm_private_key="0OIl"), [Network.SOLANA])

    def test_svm_key_wrong_length(self, make_settings):
        short_key = base58.b58encode(bytes(32)).decode()
        with pytest.raises(SignerError, match="must decode to 64 bytes, got 32"):
            build_signer(make_settings(svm_private_key=short_key), [Network.SOLANA])

    def test_missing_key_for_network(self, make_settings):
        with pytest.raises(SignerError, match="Missing SVM_PRIVATE_KEY"):
            build_signer(make_settings(evm_private_key=EVM_KEY), [Network.SOLANA])

    def test_no_keys(self, make_settings):
        with pytest.raises(SignerError, match="No private keys found"):
            build_available_signer(make_settings())


@pytest.mark.unit
class TestX402PaymentSigner:
    @pytest.mark.asyncio
    async def test_sign_parses_dict_and_dumps_payload(self):
        payload = MagicMock()
        payload.model_dump.return_value = {"x402Version": 2, "payload": {"signature": "0x1"}}
        client = MagicMock()
        client.create_payment_payload = AsyncMock(return_value=payload)
        signer = X402PaymentSigner(client, {Network.BASE: "0xPayer"})

        with patch("moltycash.signers.parse_payment_required") as parse:
            parse.return_value = "parsed"
            result = await signer.sign({"x402Version": 2, "accepts": []})

        parse.assert_called_once_with({"x402Version": 2, "accepts": []})
        client.create_payment_payload.assert_awaited_once_with("parsed")
        payload.model_dump.assert_called_once_with(by_alias=True, exclude_none=True, mode="json")
        assert result == {"x402Version": 2, "payload": {"signature": "0x1"}}

    @pytest.mark.asyncio
    async def test_sign_failure_is_wrapped(self):
        client = MagicMock()
        client.create_payment_payload = AsyncMock(side_effect=RuntimeError("no matching scheme"))
        signer = X402PaymentSigner(client, {Network.BASE: "0xPayer"})

        with pytest.raises(SignerError, match="Failed to sign payment: no matching scheme"):
            await signer.sign(object())

    def test_addresses_is_a_copy(self):
        signer = X402PaymentSigner(MagicMock(), {Network.BASE: "0xPayer"})
        signer.addresses[Network.SOLANA] = "x"
        assert signer.addresses == {Network.BASE: "0xPayer"}
