"""The `gig` command group: create, browse, pick and settle pay-per-task gigs.

Gig state lives on the server. Each subcommand maps to one A2A method and
only renders what comes back. Creating a gig funds its escrow and always goes
through the x402 payment flow; every other call completes a payment only if
the server asks for one.
"""

from typing import Any, Optional

from pydantic import ValidationError

from moltycash.a2a import A2AClient
from moltycash.config import Settings
from moltycash.errors import InputError
from moltycash.logging_utils import get_logger
from moltycash.models import ActionResult, Assignment, Gig, GigCreateRequest, GigReceipt
from moltycash.networks import select_network
from moltycash.parsing import format_usdc, parse_amount
from moltycash.payment import PaymentFlow
from moltycash.signers import build_available_signer, build_signer

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 500
REVIEW_ACTIONS = ("approve", "reject")

GIG_STATUS_ICONS = {"open": "🟢", "completed": "✅"}
ASSIGNMENT_STATUS_ICONS = {
    "completed": "✅",
    "approved": "⏳",
    "pending_review": "🔍",
    "assigned": "🔒",
    "rejected": "❌",
    "final_rejected": "⛔",
    "disputed": "⚠️",
}


def gig_icon(status: Optional[str]) -> str:
    return GIG_STATUS_ICONS.get(status or "", "⏰")


def assignment_icon(status: Optional[str]) -> str:
    return ASSIGNMENT_STATUS_ICONS.get(status or "", "•")


def _action(action: str) -> str:
    if action not in REVIEW_ACTIONS:
        raise InputError(f"Action must be 'approve' or 'reject', got '{action}'")
    return action


def print_gig_summary(gig: Gig) -> None:
    print(f"  {gig_icon(gig.status)} {gig.id} [{gig.status}]")
    print(f"     {gig.description}")
    print(
        f"     {gig.amount} USDC ({gig.per_post_price}/post) — "
        f"{gig.completed_slots}/{gig.total_slots} completed"
    )
    print(f"     Deadline: {gig.deadline}")
    print()


def print_gig_detail(gig: Gig) -> None:
    print(f"{gig_icon(gig.status)} {gig.id} [{gig.status}]")
    print(f"   Description: {gig.description}")
    print(f"   Amount: {gig.amount} USDC ({gig.per_post_price} per post)")
    print(
        f"   Slots: {gig.completed_slots} completed / {gig.assigned_slots} assigned / "
        f"{gig.total_slots} total"
    )
    print(f"   Remaining: {gig.remaining_slots}")
    print(f"   Network: {gig.payment_network}")
    print(f"   Deadline: {gig.deadline}")
    print(f"   Created: {gig.created_at}")
    if gig.settlement_txn_hash:
        print(f"   TXN: {gig.settlement_txn_hash}")

    if not gig.assignments:
        print("\n   No assignments yet.")
        print()
        return

    print(f"\n   Assignments ({len(gig.assignments)}):")
    for a in gig.assignments:
        print(f"     {assignment_icon(a.status)} @{a.earner} — {a.status} — {a.amount} USDC")
        if a.proof:
            print(f"        Proof: {a.proof}")
        if a.ai_review_result and a.ai_review_result.reason:
            print(f"        AI: {a.ai_review_result.reason}")
        if a.status == "assigned" and a.assignment_deadline:
            print(f"        Submit by: {a.assignment_deadline}")
    print()


def print_action_result(title: str, result: ActionResult) -> None:
    print(f"✅ {title}")
    print(f"   Assignment: {result.assignment_id}")
    print(f"   Status: {result.status}")
    if result.message:
        print(f"   {result.message}")


class GigCommands:
    """Runs gig subcommands against one A2A client."""

    def __init__(self, settings: Settings, client: A2AClient):
        self.settings = settings
        self.client = client
        self.flow = PaymentFlow(client, lambda: build_available_signer(settings))

    async def _call(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        result = await self.flow.call(method, params)
        return result.payload

    # ───── Payer subcommands ─────

    async def create(
        self,
        description: str,
        price: Optional[str],
        quantity: Any = 1,
        network: Optional[str] = None,
        min_followers: Optional[int] = None,
        require_premium: bool = False,
        min_account_age: Optional[int] = None,
    ) -> Optional[GigReceipt]:
        """Create and fund a gig.

        Args:
            description: What earners have to do.
            price: Per-slot price in any amount notation.
            quantity: Number of slots.
            network: Value of --network, if given.
            min_followers: Minimum follower count for earners.
            require_premium: Only premium accounts may pick the gig.
            min_account_age: Minimum earner account age in days.

        Returns:
            The created gig's receipt, or None if the server sent no artifact.
        """
        description = (description or "").strip()
        if not price or not description:
            raise InputError(
                'Usage: moltycash gig create "<description>" --price <USDC> '
                "[--quantity <n>] [--network <base|solana>]\n\n"
                'Example: moltycash gig create "Take a photo of your local coffee shop" '
                "--price 0.1 --quantity 10 --network base"
            )

        per_post_price = parse_amount(str(price))
        try:
            qty = int(str(quantity))
        except ValueError:
            raise InputError("Quantity must be a positive integer") from None
        if qty < 1:
            raise InputError("Quantity must be a positive integer")

        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise InputError(
                f"Description too long ({len(description)} chars). "
                f"Max {MAX_DESCRIPTION_LENGTH} characters."
            )

        try:
            request = GigCreateRequest(
                description=description,
                per_post_price=per_post_price,
                quantity=qty,
                min_followers=min_followers,
                require_premium=require_premium,
                min_account_age_days=min_account_age,
            )
        except ValidationError as e:
            raise InputError(str(e)) from e

        choice = select_network(self.settings.evm_private_key, self.settings.svm_private_key, network)
        chosen = choice.network
        if choice.auto_detected:
            print(f"ℹ️  Auto-detected network: {chosen.display_name}")

        print(f"\n🔧 Creating {chosen.display_name} signer...")
        signer = build_signer(self.settings, [chosen])
        print(f"✅ {chosen.display_name} signer created: {signer.addresses[chosen]}")

        print(
            f"\n🎯 Creating gig: {request.quantity} slot(s) at {format_usdc(request.per_post_price)} "
            f"USDC each (total: {format_usdc(request.amount)} USDC)"
        )
        print(f"   Network: {chosen.display_name}")
        print(f"   Description: {request.description}")
        print()

        flow = PaymentFlow(self.client, lambda: signer, progress=print)
        result = await flow.submit("gig.create", request.to_params())

        if result.data is None:
            print(f"✅ {result.message or 'Gig created'}")
            return None

        receipt = GigReceipt.model_validate(result.data)
        print("✅ Gig created!")
        print(f"   ID: {receipt.gig_id}")
        print(f"   Slots: {receipt.total_slots}")
        print(f"   Per post: {receipt.per_post_price} USDC")
        print(f"   Description: {receipt.description}")
        print(f"   Deadline: {receipt.deadline}")
        if receipt.transaction_hash:
            print(f"   TXN: {receipt.transaction_hash}")
        return receipt

    async def created(self) -> list[Gig]:
        print("\n📋 Fetching your created gigs...\n")
        result = await self._call("gig.my_created", {})

        gigs = [Gig.model_validate(g) for g in result.get("gigs") or []]
        if not gigs:
            print("No gigs created yet.")
            return gigs

        print(f"Found {len(gigs)} gig(s):\n")
        for gig in gigs:
            print_gig_summary(gig)
        print("Use 'moltycash gig get <gig_id>' for full details.")
        return gigs

    async def get(self, gig_id: str) -> Gig:
        print(f"\n📋 Fetching gig {gig_id}...\n")
        result = await self._call("gig.get", {"gig_id": gig_id})
        gig = Gig.model_validate(result)
        print_gig_detail(gig)
        return gig

    async def review(
        self, gig_id: str, assignment_id: str, action: str, reason: Optional[str] = None
    ) -> ActionResult:
        action = _action(action)

        print(f"\n⚖️  Reviewing assignment {assignment_id} on gig {gig_id}...")
        print(f"   Action: {action}")
        if reason:
            print(f"   Reason: {reason}")
        print()

        params: dict[str, Any] = {"gig_id": gig_id, "assignment_id": assignment_id, "action": action}
        if reason:
            params["reason"] = reason
        result = ActionResult.model_validate(await self._call("gig.review", params))
        print_action_result("Review submitted!", result)
        return result

    async def disputes(self) -> list[Assignment]:
        """List disputed assignments on gigs you created."""
        print("\n📋 Fetching disputes on your gigs...\n")
        result = await self._call("gig.my_disputes", {})

        disputes = [
            Assignment.model_validate(d)
            for d in result.get("disputes") or result.get("assignments") or []
        ]
        if not disputes:
            print("No open disputes.")
            return disputes

        print(f"Found {len(disputes)} dispute(s):\n")
        for a in disputes:
            print(f"  {assignment_icon(a.status)} {a.assignment_id} [{a.status}]")
            print(f"     Gig: {a.gig_id} — {a.description}")
            print(f"     @{a.earner} — {a.amount} USDC")
            if a.proof:
                print(f"     Proof: {a.proof}")
            if a.dispute_reason:
                print(f"     Reason: {a.dispute_reason}")
            print()
        print("Use 'moltycash gig resolve <gig_id> <assignment_id> <approve|reject>' to settle one.")
        return disputes

    async def resolve(
        self, gig_id: str, assignment_id: str, action: str, reason: Optional[str] = None
    ) -> ActionResult:
        """Settle an earner's dispute on one of your gigs."""
        action = _action(action)

        print(f"\n⚖️  Resolving dispute on assignment {assignment_id} (gig {gig_id})...")
        print(f"   Action: {action}")
        if reason:
            print(f"   Reason: {reason}")
        print()

        params: dict[str, Any] = {"gig_id": gig_id, "assignment_id": assignment_id, "action": action}
        if reason:
            params["reason"] = reason
        result = ActionResult.model_validate(await self._call("gig.resolve_dispute", params))
        print_action_result("Dispute resolution submitted!", result)
        return result

    # ───── Earner subcommands ─────

    async def list_gigs(self) -> list[Gig]:
        print("\n📋 Fetching available gigs...\n")
        result = await self._call("gig.list", {})

        if result.get("eligible") is False:
            print(f"❌ Not eligible: {result.get('reason')}")
            return []

        gigs = [Gig.model_validate(g) for g in result.get("gigs") or []]
        if not gigs:
            print("No open gigs available.")
            return gigs

        print(f"Found {len(gigs)} gig(s):\n")
        for gig in gigs:
            print(f"  🟢 {gig.id}")
            print(f"     {gig.description}")
            print(f"     {gig.per_post_price} USDC/post — {gig.remaining_slots} slot(s) left")
            print(f"     Deadline: {gig.deadline}")
            print()
        print("Use 'moltycash gig pick <gig_id>' to reserve a slot.")
        return gigs

    async def pick(self, gig_id: str) -> ActionResult:
        print(f"\n🎯 Picking gig {gig_id}...\n")
        result = ActionResult.model_validate(await self._call("gig.pick", {"gig_id": gig_id}))

        print("✅ Slot reserved!")
        print(f"   Assignment: {result.assignment_id}")
        print(f"   Gig: {result.gig_id}")
        print(f"   Submit proof by: {result.assignment_deadline}")
        print(f"   Remaining slots: {result.remaining_slots}")
        return result

    async def submit(self, gig_id: str, proof: str) -> ActionResult:
        print(f"\n📤 Submitting proof for gig {gig_id}...\n")
        result = ActionResult.model_validate(
            await self._call("gig.submit_proof", {"gig_id": gig_id, "proof": proof})
        )
        print_action_result("Proof submitted!", result)
        return result

    async def picked(self) -> list[Assignment]:
        print("\n📋 Fetching your picked gigs...\n")
        result = await self._call("gig.my_accepted", {})

        assignments = [Assignment.model_validate(a) for a in result.get("assignments") or []]
        if not assignments:
            print("No picked gigs.")
            return assignments

        print(f"Found {len(assignments)} gig(s):\n")
        for a in assignments:
            print(f"  {assignment_icon(a.status)} {a.assignment_id} [{a.status}]")
            print(f"     Gig: {a.gig_id} — {a.description}")
            print(f"     {a.per_post_price} USDC")
            if a.message:
                print(f"     {a.message}")
            print()
        return assignments

    async def dispute(self, gig_id: str, assignment_id: str, reason: str) -> ActionResult:
        reason = (reason or "").strip()
        if not reason:
            raise InputError('Usage: moltycash gig dispute <gig_id> <assignment_id> "reason"')

        print(f"\n⚖️  Disputing assignment {assignment_id} on gig {gig_id}...\n")
        result = ActionResult.model_validate(
            await self._call(
                "gig.earner_dispute",
                {"gig_id": gig_id, "assignment_id": assignment_id, "reason": reason},
            )
        )
        print_action_result("Dispute resolved!", result)
        return result


async def run_gig(settings: Settings, subcommand: str, **kwargs) -> Any:
    """Run one gig subcommand with a fresh A2A client.

    Args:
        settings: Loaded settings (must carry the identity token).
        subcommand: CLI subcommand name, e.g. "pick" or "my-gigs".
        **kwargs: Arguments of the subcommand's GigCommands method.

    Returns:
        Whatever the subcommand returns.
    """
    method_name = SUBCOMMANDS[subcommand]
    logger.info(f"Running gig {subcommand}")
    async with A2AClient(settings) as client:
        commands = GigCommands(settings, client)
        return await getattr(commands, method_name)(**kwargs)


# CLI subcommand -> GigCommands method
SUBCOMMANDS = {
    "create": "create",
    "created": "created",
    "my-gigs": "created",
    "get": "get",
    "review": "review",
    "disputes": "disputes",
    "resolve": "resolve",
    "list": "list_gigs",
    "pick": "pick",
    "submit": "submit",
    "picked": "picked",
    "dispute": "dispute",
}
