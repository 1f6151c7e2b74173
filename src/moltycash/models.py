"""Data models shared by the moltycash commands.

Gig and assignment records are owned by the server; these models only give
the CLI typed access to the fields it renders and tolerate anything else the
server sends.
"""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Recipient(BaseModel):
    """Payment recipient on one of the supported platforms."""

    type: Literal["x", "moltbook"] = Field(description="Platform of the recipient")
    username: str = Field(description="Username on that platform")

    @property
    def label(self) -> str:
        if self.type == "moltbook":
            return f"@{self.username}"
        return f"x/@{self.username}"

    def to_params(self) -> dict[str, str]:
        """JSON-RPC parameters identifying the recipient."""
        if self.type == "moltbook":
            return {"molty": self.username}
        return {"x_handle": self.username}


class ServerRecord(BaseModel):
    """Base for records returned by the server."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class SendReceipt(ServerRecord):
    """Artifact of a completed molty.send task."""

    amount: Optional[str] = None
    molty: Optional[str] = None
    x_handle: Optional[str] = None
    txn_id: Optional[str] = None
    network: Optional[str] = None
    receipt: Optional[str] = None

    def display_name(self, fallback: str) -> str:
        if self.molty:
            return f"@{self.molty}"
        if self.x_handle:
            return f"x/@{self.x_handle}"
        return fallback


class GigReceipt(ServerRecord):
    """Artifact of a completed gig.create task."""

    gig_id: Optional[str] = None
    total_slots: Optional[str] = None
    per_post_price: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    transaction_hash: Optional[str] = None


class AIReview(ServerRecord):
    reason: Optional[str] = None


class Assignment(ServerRecord):
    """One earner's slot on a gig."""

    assignment_id: Optional[str] = None
    gig_id: Optional[str] = None
    earner: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    per_post_price: Optional[str] = None
    description: Optional[str] = None
    proof: Optional[str] = None
    ai_review_result: Optional[AIReview] = None
    dispute_reason: Optional[str] = None
    assignment_deadline: Optional[str] = None
    message: Optional[str] = None


class Gig(ServerRecord):
    """A payer-funded multi-slot task."""

    id: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    per_post_price: Optional[str] = None
    total_slots: Optional[str] = None
    completed_slots: Optional[str] = None
    assigned_slots: Optional[str] = None
    remaining_slots: Optional[str] = None
    payment_network: Optional[str] = None
    deadline: Optional[str] = None
    created_at: Optional[str] = None
    settlement_txn_hash: Optional[str] = None
    assignments: list[Assignment] = Field(default_factory=list)


class ActionResult(ServerRecord):
    """Result of review, pick, submit, dispute and resolve calls."""

    assignment_id: Optional[str] = None
    gig_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    assignment_deadline: Optional[str] = None
    remaining_slots: Optional[str] = None


class TaskResult(BaseModel):
    """Outcome of an A2A task once the payment flow is done."""

    task: dict[str, Any] = Field(default_factory=dict, description="Raw JSON-RPC result")
    state: Optional[str] = Field(default=None, description="Task state reported by the server")
    data: Optional[dict[str, Any]] = Field(default=None, description="First decoded artifact")
    message: Optional[str] = Field(default=None, description="Joined text parts of the status")
    paid: bool = Field(default=False, description="Whether a signed payment was submitted")

    @property
    def payload(self) -> dict[str, Any]:
        """Decoded artifact if present, otherwise the raw result."""
        return self.data if self.data is not None else self.task


class GigCreateRequest(BaseModel):
    """Validated parameters for gig.create."""

    description: str = Field(min_length=1, max_length=500)
    per_post_price: Decimal = Field(gt=0)
    quantity: int = Field(ge=1)
    min_followers: Optional[int] = Field(default=None, ge=0)
    require_premium: bool = False
    min_account_age_days: Optional[int] = Field(default=None, ge=0)

    @property
    def amount(self) -> Decimal:
        return self.per_post_price * self.quantity

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "amount": float(self.amount),
            "per_post_price": float(self.per_post_price),
            "description": self.description,
        }
        if self.min_followers is not None:
            params["min_followers"] = self.min_followers
        if self.require_premium:
            params["require_premium"] = True
        if self.min_account_age_days is not None:
            params["min_account_age_days"] = self.min_account_age_days
        return params
