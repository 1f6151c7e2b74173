"""Unit tests for the two-phase x402 payment flow."""

import base64
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from moltycash.errors import A2AError, PaymentRequiredError, SignerError, TaskFailedError
from moltycash.payment import (
    PAYMENT_REQUIRED_KEY,
    PaymentFlow,
    decode_artifact,
    payment_requirements,
    task_state,
    task_text,
    to_task_result,
)

REQUIREMENTS = {"x402Version": 2, "accepts": [{"scheme": "exact", "network": "eip155:8453"}]}


def encode(data) -> str:
    return base64.b64encode(json.dumps(data).encode()).decode()


def input_required(task_id="task-1"):
    return {
        "id": task_id,
        "status": {
            "state": "input-required",
            "message": {
                "parts": [{"kind": "text", "text": "Payment required"}],
                "metadata": {PAYMENT_REQUIRED_KEY: REQUIREMENTS},
            },
        },
    }


def completed(data=None, text="Done"):
    result = {
        "id": "task-1",
        "status": {"state": "completed", "message": {"parts": [{"kind": "text", "text": text}]}},
    }
    if data is not None:
        result["artifacts"] = [{"data": encode(data)}]
    return result


def failed(text):
    return {"id": "task-1", "status": {"state": "failed", "message": {"parts": [{"kind": "text", "text": text}]}}}


@pytest.fixture
def client():
    mock = MagicMock()
    mock.call = AsyncMock()
    return mock


@pytest.mark.unit
class TestTaskHelpers:
    def test_payment_requirements(self):
        assert payment_requirements(input_required()) == REQUIREMENTS
        assert payment_requirements(completed()) is None
        assert payment_requirements({}) is None

    def test_task_text_joins_text_parts(self):
        result = {
            "status": {
                "message": {
                    "parts": [
                        {"kind": "text", "text": "first"},
                        {"kind": "data", "data": {}},
                        {"kind": "text", "text": "second"},
                    ]
                }
            }
        }
        assert task_text(result) == "first\nsecond"

    def test_decode_artifact_skips_undecodable(self):
        result = {
            "artifacts": [
                {"data": "not base64 json!"},
                {"name": "no data"},
                {"data": encode({"txn_id": "0xabc"})},
            ]
        }
        assert decode_artifact(result) == {"txn_id": "0xabc"}

    def test_decode_artifact_none(self):
        assert decode_artifact({}) is None

    def test_to_task_result(self):
        result = to_task_result(completed({"amount": "0.5"}), "molty.send", paid=True)
        assert result.state == "completed"
        assert result.data == {"amount": "0.5"}
        assert result.payload == {"amount": "0.5"}
        assert result.message == "Done"
        assert result.paid is True

    def test_to_task_result_payload_falls_back_to_task(self):
        raw = {"gigs": []}
        assert to_task_result(raw, "gig.list").payload == raw

    @pytest.mark.parametrize("state", ["failed", "canceled"])
    def test_to_task_result_failed(self, state):
        raw = {"status": {"state": state, "message": {"parts": [{"kind": "text", "text": "Nope"}]}}}
        with pytest.raises(TaskFailedError, match="Nope") as exc:
            to_task_result(raw, "molty.send")
        assert exc.value.state == state

    def test_to_task_result_failed_without_text(self):
        with pytest.raises(TaskFailedError, match="molty.send failed"):
            to_task_result({"status": {"state": "failed"}}, "molty.send")

    def test_record_with_string_status(self):
        record = {"assignment_id": "asg_1", "status": "approved"}
        assert payment_requirements(record) is None
        assert task_state(record) is None
        assert task_text(record) == ""
        assert to_task_result(record, "gig.review").payload == record

    def test_status_message_that_is_not_an_object(self):
        result = {"status": {"state": "completed", "message": "done"}}
        assert payment_requirements(result) is None
        assert task_text(result) == ""


@pytest.mark.unit
class TestPaymentFlowSubmit:
    """Test PaymentFlow.submit()."""

    @pytest.mark.asyncio
    async def test_two_phase_success(self, client, fake_signer):
        client.call.side_effect = [input_required(), completed({"txn_id": "0xabc"})]
        progress = []
        flow = PaymentFlow(client, lambda: fake_signer, progress=progress.append)

        result = await flow.submit("molty.send", {"molty": "bob", "amount": 0.5})

        assert result.paid is True
        assert result.data == {"txn_id": "0xabc"}
        assert fake_signer.signed == [REQUIREMENTS]

        first, second = client.call.await_args_list
        assert first.args == ("molty.send", {"molty": "bob", "amount": 0.5})
        assert first.kwargs == {"x402": True}
        assert second.args[1] == {
            "molty": "bob",
            "amount": 0.5,
            "taskId": "task-1",
            "payment": {"x402Version": 2, "payload": {"signature": "0xsigned"}},
        }
        assert second.kwargs == {"x402": True}
        assert progress[0].startswith("💳 Phase 1")
        assert progress[1].startswith("🔐 Phase 2")

    @pytest.mark.asyncio
    async def test_params_are_not_mutated(self, client, fake_signer):
        client.call.side_effect = [input_required(), completed()]
        params = {"molty": "bob"}

        await PaymentFlow(client, lambda: fake_signer).submit("molty.send", params)

        assert params == {"molty": "bob"}

    @pytest.mark.asyncio
    async def test_http_402_in_phase_one(self, client, fake_signer):
        client.call.side_effect = [PaymentRequiredError(REQUIREMENTS, "task-9"), completed()]

        result = await PaymentFlow(client, lambda: fake_signer).submit("gig.create", {"amount": 1.0})

        assert result.paid is True
        assert client.call.await_args_list[1].args[1]["taskId"] == "task-9"

    @pytest.mark.asyncio
    async def test_phase_one_error_stops_before_signing(self, client, fake_signer):
        client.call.side_effect = A2AError("Recipient not found", code=-32602)

        with pytest.raises(A2AError, match="Recipient not found"):
            await PaymentFlow(client, lambda: fake_signer).submit("molty.send", {})

        assert client.call.await_count == 1
        assert fake_signer.signed == []

    @pytest.mark.asyncio
    async def test_missing_requirements(self, client, fake_signer):
        client.call.return_value = completed()

        with pytest.raises(A2AError, match="No payment requirements found in response"):
            await PaymentFlow(client, lambda: fake_signer).submit("molty.send", {})

        assert fake_signer.signed == []

    @pytest.mark.asyncio
    async def test_failed_phase_one_reports_server_text(self, client, fake_signer):
        client.call.return_value = failed("Recipient has no wallet")

        with pytest.raises(TaskFailedError, match="Recipient has no wallet"):
            await PaymentFlow(client, lambda: fake_signer).submit("molty.send", {})

    @pytest.mark.asyncio
    async def test_optional_payment_returns_phase_one(self, client, fake_signer):
        client.call.return_value = completed({"ok": True})

        result = await PaymentFlow(client, lambda: fake_signer).submit(
            "gig.list", {}, require_payment=False
        )

        assert result.paid is False
        assert result.data == {"ok": True}

    @pytest.mark.asyncio
    async def test_failed_phase_two(self, client, fake_signer):
        client.call.side_effect = [input_required(), failed("Settlement failed")]

        with pytest.raises(TaskFailedError, match="Settlement failed"):
            await PaymentFlow(client, lambda: fake_signer).submit("molty.send", {})

    @pytest.mark.asyncio
    async def test_signer_error_propagates(self, client):
        client.call.return_value = input_required()
        signer = MagicMock()
        signer.sign = AsyncMock(side_effect=SignerError("Failed to sign payment: no scheme"))

        with pytest.raises(SignerError):
            await PaymentFlow(client, lambda: signer).submit("molty.send", {})

        assert client.call.await_count == 1


@pytest.mark.unit
class TestPaymentFlowCall:
    """Test PaymentFlow.call()."""

    @pytest.mark.asyncio
    async def test_no_payment_needed_never_builds_signer(self, client):
        client.call.return_value = {"gigs": [{"id": "g1"}]}
        factory = MagicMock()

        result = await PaymentFlow(client, factory).call("gig.list", {})

        assert result.payload == {"gigs": [{"id": "g1"}]}
        factory.assert_not_called()
        assert client.call.await_args.kwargs == {"x402": True}

    @pytest.mark.asyncio
    async def test_pays_when_server_asks_with_402(self, client, fake_signer):
        client.call.side_effect = [PaymentRequiredError(REQUIREMENTS), completed({"assignment_id": "a1"})]

        result = await PaymentFlow(client, lambda: fake_signer).call("gig.pick", {"gig_id": "g1"})

        assert result.paid is True
        assert result.payload == {"assignment_id": "a1"}
        paid_params = client.call.await_args_list[1].args[1]
        assert "taskId" not in paid_params
        assert paid_params["payment"]["x402Version"] == 2

    @pytest.mark.asyncio
    async def test_pays_when_server_asks_in_metadata(self, client, fake_signer):
        client.call.side_effect = [input_required("task-5"), completed()]

        result = await PaymentFlow(client, lambda: fake_signer).call("gig.pick", {"gig_id": "g1"})

        assert result.paid is True
        assert client.call.await_args_list[1].args[1]["taskId"] == "task-5"

    @pytest.mark.asyncio
    async def test_signer_built_once(self, client, fake_signer):
        client.call.side_effect = [
            PaymentRequiredError(REQUIREMENTS),
            completed(),
            PaymentRequiredError(REQUIREMENTS),
            completed(),
        ]
        factory = MagicMock(return_value=fake_signer)
        flow = PaymentFlow(client, factory)

        await flow.call("gig.pick", {"gig_id": "g1"})
        await flow.call("gig.pick", {"gig_id": "g2"})

        factory.assert_called_once()
        assert len(fake_signer.signed) == 2

    @pytest.mark.asyncio
    async def test_plain_record_with_string_status(self, client):
        record = {"id": "ppp_1", "status": "open", "description": "Post about us"}
        client.call.return_value = record
        factory = MagicMock()

        result = await PaymentFlow(client, factory).call("gig.get", {"gig_id": "ppp_1"})

        assert result.payload == record
        assert result.paid is False
        factory.assert_not_called()
