"""Parsing of amounts and recipients given on the command line."""

import re
from decimal import Decimal, InvalidOperation

from moltycash.errors import InputError
from moltycash.models import Recipient

# USDC has 6 decimals on both Base and Solana
USDC_DECIMALS = 6

X_PREFIXES = ("x", "x.com", "twitter", "twitter.com")
MOLTBOOK_PREFIXES = ("moltbook", "moltbook.com")
MOLTBOOK_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{1,30}$")
SHELL_POSITIONAL_RE = re.compile(r"^\d+$")

RECIPIENT_USAGE = (
    "Use one of these formats:\n"
    "  moltbook/USERNAME    Send to a Moltbook user\n"
    "  x/USERNAME           Send to an X (Twitter) user\n"
    "\n"
    "Examples:\n"
    "  moltycash send moltbook/KarpathyMolty 1¢\n"
    "  moltycash send x/nikitabier 50¢"
)


def _to_decimal(text: str, error: str) -> Decimal:
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        raise InputError(error) from None
    if not value.is_finite():
        raise InputError(error)
    return value


def parse_amount(amount_str: str) -> Decimal:
    """Parse a USDC amount in cents, dollar or decimal notation.

    Accepted forms:
        "50¢"   -> 0.50
        "$0.5"  -> 0.50
        "0.5"   -> 0.50

    A "$" followed by a bare integer is rejected because shells expand it as
    a positional parameter.

    Args:
        amount_str: The amount as typed by the user.

    Returns:
        The amount in USDC dollars.

    Raises:
        InputError: If the amount is malformed, not positive, or finer than
            USDC precision.
    """
    trimmed = amount_str.strip()

    if trimmed.endswith("¢"):
        amount = _to_decimal(trimmed[:-1], f"Invalid cents amount: {amount_str}") / 100
    elif trimmed.startswith("$"):
        dollar_part = trimmed[1:]
        if SHELL_POSITIONAL_RE.fullmatch(dollar_part):
            dollars = int(dollar_part)
            raise InputError(
                f"Dollar amounts like ${dollars} can be interpreted as shell variables. "
                f"Please use {dollars * 100}¢ instead."
            )
        amount = _to_decimal(dollar_part, f"Invalid dollar amount: {amount_str}")
    else:
        amount = _to_decimal(trimmed, f"Invalid amount: {amount_str}")

    if amount <= 0:
        raise InputError("Amount must be greater than 0")

    if amount.normalize().as_tuple().exponent < -USDC_DECIMALS:
        raise InputError(
            f"Invalid amount: {amount_str}. USDC supports at most {USDC_DECIMALS} decimal places."
        )

    return amount


def to_atomic_units(amount: Decimal) -> int:
    """Convert a USDC amount in dollars to the token's smallest unit."""
    return int(amount.scaleb(USDC_DECIMALS))


def format_usdc(amount: Decimal) -> str:
    """Render an amount without exponent or trailing zeros (0.50 -> "0.5")."""
    return f"{amount.normalize():f}"


def parse_recipient(text: str) -> Recipient:
    """Parse a recipient of the form <platform>/<username>.

    Args:
        text: Recipient as typed by the user, e.g. "x/nikitabier".

    Returns:
        The parsed Recipient.

    Raises:
        InputError: If the format, platform or username is invalid.
    """
    platform, sep, username = text.partition("/")
    if not sep:
        raise InputError(f"Invalid recipient format: {text}\n\n{RECIPIENT_USAGE}")

    platform = platform.lower()
    if not username:
        raise InputError(f'Missing username after "{platform}/"')

    if platform in X_PREFIXES:
        return Recipient(type="x", username=username)

    if platform in MOLTBOOK_PREFIXES:
        if not MOLTBOOK_USERNAME_RE.fullmatch(username):
            raise InputError(
                f"Invalid moltbook username: {username}. "
                "Must be 1-30 alphanumeric characters, underscores, or hyphens."
            )
        return Recipient(type="moltbook", username=username)

    raise InputError(
        f'Unknown platform: "{platform}". Use "x/" for X users or "moltbook/" for Moltbook users.'
    )
