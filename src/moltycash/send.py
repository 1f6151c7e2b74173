"""The `send` command: pay a Moltbook or X user in USDC."""

from decimal import Decimal
from typing import Optional

from moltycash.a2a import A2AClient
from moltycash.config import Settings
from moltycash.logging_utils import get_logger
from moltycash.models import Recipient, SendReceipt, TaskResult
from moltycash.networks import Network, select_network
from moltycash.parsing import format_usdc, parse_amount, parse_recipient, to_atomic_units
from moltycash.payment import PaymentFlow
from moltycash.signers import build_signer

logger = get_logger(__name__)

SEND_METHOD = "molty.send"
AGENT_NAME = "moltycash-cli"


def build_send_params(recipient: Recipient, amount: Decimal, network: Network) -> dict:
    return {
        **recipient.to_params(),
        "amount": float(amount),
        "description": f"Payment via {AGENT_NAME} ({network.display_name})",
        "meta": {"agent_name": AGENT_NAME},
    }


def print_receipt(result: TaskResult, recipient: Recipient) -> None:
    """Print the outcome of a completed molty.send task."""
    if result.data is None:
        print(f"✅ {result.message or 'Payment sent'}")
        return

    receipt = SendReceipt.model_validate(result.data)
    print(f"✅ {receipt.amount} USDC sent to {receipt.display_name(recipient.label)}")
    if receipt.txn_id:
        print(f"🔗 TXN: {receipt.txn_id}")
    if receipt.network:
        print(f"💳 Network: {receipt.network}")
    if receipt.receipt:
        print(f"📄 Receipt: {receipt.receipt}")
    if receipt.x_handle:
        print(f"🐦 X: @{receipt.x_handle}")


async def run_send(
    settings: Settings,
    recipient_arg: str,
    amount_arg: str,
    network_arg: Optional[str] = None,
) -> TaskResult:
    """Validate input, pick a network and pay the recipient.

    Args:
        settings: Loaded settings.
        recipient_arg: Recipient as typed, e.g. "x/nikitabier".
        amount_arg: Amount as typed, e.g. "50¢".
        network_arg: Value of --network, if given.

    Returns:
        The final task result.

    Raises:
        MoltyError: On invalid input, missing keys, or a failed payment.
    """
    recipient = parse_recipient(recipient_arg)
    amount = parse_amount(amount_arg)

    choice = select_network(settings.evm_private_key, settings.svm_private_key, network_arg)
    network = choice.network
    if choice.auto_detected:
        print(f"ℹ️  Auto-detected network: {network.display_name}")

    print(f"\n🔧 Creating {network.display_name} signer...")
    signer = build_signer(settings, [network])
    print(f"✅ {network.display_name} signer created: {signer.addresses[network]}")

    print(f"\n💸 Sending {format_usdc(amount)} USDC to {recipient.label}...")
    print(f"   API: {settings.a2a_url}")
    print(f"   Network: {network.display_name}")
    if settings.identity_token:
        print("   🔐 Sending as verified sender")
    print()

    logger.info(
        f"Sending {to_atomic_units(amount)} atomic USDC to {recipient.type}/{recipient.username} "
        f"on {network.value}"
    )

    async with A2AClient(settings) as client:
        flow = PaymentFlow(client, lambda: signer, progress=print)
        result = await flow.submit(SEND_METHOD, build_send_params(recipient, amount, network))

    print_receipt(result, recipient)
    return result
