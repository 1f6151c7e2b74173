"""Exceptions raised by moltycash commands.

Every failure the CLI reports to the user derives from MoltyError; the
dispatcher prints the message and exits with status 1.
"""

from typing import Any, Optional


class MoltyError(Exception):
    """Base class for all user-facing failures."""


class InputError(MoltyError, ValueError):
    """Invalid command-line input (amount, recipient, gig arguments)."""


class ConfigError(MoltyError):
    """Required configuration is missing or malformed."""


class NetworkSelectionError(MoltyError):
    """No usable network could be chosen from the flag and configured keys."""


class SignerError(MoltyError):
    """A payment signer could not be created or failed to sign."""


class A2AError(MoltyError):
    """The A2A server returned an error or could not be reached."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class PaymentRequiredError(A2AError):
    """The server answered with HTTP 402 and payment requirements."""

    def __init__(self, requirements: Any, task_id: Optional[str] = None):
        super().__init__("Payment required", status_code=402)
        self.requirements = requirements
        self.task_id = task_id


class TaskFailedError(MoltyError):
    """The server reported the task as failed or canceled."""

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.state = state
