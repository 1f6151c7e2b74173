"""Two-phase x402 payment flow over A2A.

Phase 1 submits the action and receives payment requirements, either in the
task status metadata or as an HTTP 402. The requirements are signed by a
PaymentSigner and phase 2 resubmits the same action with the signed payload
and the task ID issued in phase 1.
"""

import base64
import binascii
import json
from typing import Any, Callable, Optional

from moltycash.a2a import A2AClient
from moltycash.errors import A2AError, PaymentRequiredError, TaskFailedError
from moltycash.logging_utils import get_logger
from moltycash.models import TaskResult
from moltycash.signers import PaymentSigner

logger = get_logger(__name__)

PAYMENT_REQUIRED_KEY = "x402.payment.required"
FAILED_STATES = ("failed", "canceled")

Progress = Callable[[str], None]


def _task_status(result: dict[str, Any]) -> dict[str, Any]:
    # Plain gig records carry "status" as a string like "open"
    status = result.get("status")
    return status if isinstance(status, dict) else {}


def _status_message(result: dict[str, Any]) -> dict[str, Any]:
    message = _task_status(result).get("message")
    return message if isinstance(message, dict) else {}


def payment_requirements(result: dict[str, Any]) -> Optional[Any]:
    """Payment requirements carried in a task's status message metadata."""
    metadata = _status_message(result).get("metadata")
    if not isinstance(metadata, dict):
        return None
    return metadata.get(PAYMENT_REQUIRED_KEY)


def task_state(result: dict[str, Any]) -> Optional[str]:
    return _task_status(result).get("state")


def task_text(result: dict[str, Any]) -> str:
    """Text parts of the task's status message, one per line."""
    parts = _status_message(result).get("parts") or []
    return "\n".join(
        p.get("text", "") for p in parts if isinstance(p, dict) and p.get("kind") == "text"
    )


def decode_artifact(result: dict[str, Any]) -> Optional[dict[str, Any]]:
    """First artifact whose data is base64-encoded JSON, decoded."""
    for artifact in result.get("artifacts") or []:
        data = artifact.get("data") if isinstance(artifact, dict) else None
        if not isinstance(data, str):
            continue
        try:
            decoded = json.loads(base64.b64decode(data))
        except (binascii.Error, ValueError):
            logger.debug("Skipping artifact that is not base64 JSON")
            continue
        if isinstance(decoded, dict):
            return decoded
    return None


def to_task_result(result: dict[str, Any], method: str, paid: bool = False) -> TaskResult:
    """Interpret a final task result.

    Raises:
        TaskFailedError: If the task ended in a failed or canceled state.
    """
    state = task_state(result)
    message = task_text(result)
    if state in FAILED_STATES:
        raise TaskFailedError(message or f"{method} failed", state=state)
    return TaskResult(
        task=result,
        state=state,
        data=decode_artifact(result),
        message=message or None,
        paid=paid,
    )


class PaymentFlow:
    """Runs A2A calls that may require an x402 payment."""

    def __init__(
        self,
        client: A2AClient,
        signer_factory: Callable[[], PaymentSigner],
        progress: Optional[Progress] = None,
    ):
        """Initialize the flow.

        Args:
            client: A2A client used for both phases.
            signer_factory: Returns the signer; called only once a payment is
                actually requested.
            progress: Optional callback receiving one line per phase.
        """
        self.client = client
        self._signer_factory = signer_factory
        self._signer: Optional[PaymentSigner] = None
        self._progress = progress

    @property
    def signer(self) -> PaymentSigner:
        if self._signer is None:
            self._signer = self._signer_factory()
        return self._signer

    def _report(self, line: str) -> None:
        if self._progress:
            self._progress(line)

    async def submit(
        self,
        method: str,
        params: dict[str, Any],
        require_payment: bool = True,
    ) -> TaskResult:
        """Run the two-phase handshake for one action.

        Args:
            method: JSON-RPC method name.
            params: Parameters sent in both phases.
            require_payment: Fail if phase 1 does not ask for payment. When
                False and no payment is requested, phase 1 is the final result.

        Returns:
            The interpreted final task result.

        Raises:
            A2AError: JSON-RPC or HTTP error in either phase.
            SignerError: The requirements could not be signed.
            TaskFailedError: The server reported the task as failed.
        """
        self._report("💳 Phase 1: Requesting payment requirements...")
        try:
            phase1 = await self.client.call(method, params, x402=True)
            requirements = payment_requirements(phase1)
            task_id = phase1.get("id")
        except PaymentRequiredError as e:
            phase1 = None
            requirements = e.requirements
            task_id = e.task_id

        if requirements is None:
            if require_payment:
                state = task_state(phase1 or {})
                if state in FAILED_STATES:
                    raise TaskFailedError(task_text(phase1) or f"{method} failed", state=state)
                raise A2AError("No payment requirements found in response")
            return to_task_result(phase1 or {}, method)

        return await self._pay(method, params, requirements, task_id)

    async def call(self, method: str, params: dict[str, Any]) -> TaskResult:
        """Single call that completes the handshake only if the server asks.

        The request announces the x402 extension like submit(), but a
        missing payment requirement is not an error.
        """
        try:
            result = await self.client.call(method, params, x402=True)
        except PaymentRequiredError as e:
            return await self._pay(method, params, e.requirements, e.task_id)

        requirements = payment_requirements(result)
        if requirements is None:
            return to_task_result(result, method)
        return await self._pay(method, params, requirements, result.get("id"))

    async def _pay(
        self, method: str, params: dict[str, Any], requirements: Any, task_id: Optional[str]
    ) -> TaskResult:
        logger.info(f"{method}: payment requested (task_id={task_id})")

        self._report("🔐 Phase 2: Signing payment...")
        signed_payment = await self.signer.sign(requirements)

        self._report("📤 Submitting signed payment...\n")
        paid_params = dict(params)
        if task_id:
            paid_params["taskId"] = task_id
        paid_params["payment"] = signed_payment
        result = await self.client.call(method, paid_params, x402=True)
        return to_task_result(result, method, paid=True)
