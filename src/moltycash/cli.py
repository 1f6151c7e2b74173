#!/usr/bin/env python3
"""
moltycash: send USDC payments and manage gigs via the molty.cash API.

Usage:
    moltycash send <recipient> <amount> [--network base|solana]
    moltycash gig <subcommand> ...
    moltycash --help | --version
"""

import argparse
import asyncio
import sys
from typing import NoReturn, Optional, Sequence

from moltycash import __version__
from moltycash.config import Settings, load_settings, validate_settings_for_command
from moltycash.errors import A2AError, ConfigError, MoltyError
from moltycash.gig import run_gig
from moltycash.logging_utils import CorrelationIdContext, get_logger, setup_logging
from moltycash.send import run_send

logger = get_logger(__name__)

BANNER = """
╔════════════════════════════════════════════════════════════╗
║                       molty.cash CLI                       ║
╚════════════════════════════════════════════════════════════╝

Send USDC payments and manage gigs via molty.cash API
"""

EPILOG = """
RECIPIENT FORMATS:
  moltbook/USERNAME    Send to a Moltbook user
  x/USERNAME           Send to an X (Twitter) user

SEND EXAMPLES:
  moltycash send moltbook/KarpathyMolty 1¢
  moltycash send x/nikitabier 50¢
  moltycash send x/nikitabier 100¢ --network solana

GIG EXAMPLES:
  moltycash gig create "Post about molty.cash" --price 0.1 --quantity 5
  moltycash gig create "Review our product" --price 2 --quantity 10 --min-followers 500 --require-premium
  moltycash gig created
  moltycash gig get ppp_123

AMOUNT FORMATS:
  1¢               Cents notation (recommended)
  $0.5             Dollar notation (use quotes)
  0.5              Decimal USDC

ENVIRONMENT VARIABLES:
  SVM_PRIVATE_KEY         Your Solana private key
  EVM_PRIVATE_KEY         Your Base/EVM private key
  MOLTY_IDENTITY_TOKEN    Identity token (required for gig commands)
  RESOURCE_SERVER_URL     API base URL (default: https://api.molty.cash)

  If only one key is set, that network is used automatically.
  If both are set, you must specify --network.

DOCUMENTATION:
  https://molty.cash
"""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"❌ {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="moltycash",
        description=BANNER,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"moltycash v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", metavar="<command>", parser_class=ArgumentParser)

    # send
    send_parser = commands.add_parser("send", help="Send USDC to a Moltbook or X user")
    send_parser.add_argument("recipient", help="moltbook/USERNAME or x/USERNAME")
    send_parser.add_argument("amount", help="Amount, e.g. 50¢, '$0.5' or 0.5")
    send_parser.add_argument("--network", help="Network to pay on (base or solana)")

    # gig
    gig_parser = commands.add_parser("gig", help="Create, browse and work on gigs")
    gig = gig_parser.add_subparsers(dest="subcommand", metavar="<subcommand>", parser_class=ArgumentParser)

    create = gig.add_parser("create", help="Create and fund a gig")
    create.add_argument("description", nargs="+", help="What earners have to do")
    create.add_argument("--price", help="Per-slot price in USDC")
    create.add_argument("--quantity", default="1", help="Number of slots (default: 1)")
    create.add_argument("--network", help="Network to pay on (base or solana)")
    create.add_argument("--min-followers", type=int, help="Minimum follower count for earners")
    create.add_argument("--require-premium", action="store_true", help="Only premium accounts")
    create.add_argument("--min-account-age", type=int, help="Minimum account age in days")

    gig.add_parser("created", help="List gigs you created")
    gig.add_parser("my-gigs", help="Alias for 'created'")

    get = gig.add_parser("get", help="Get gig details")
    get.add_argument("gig_id")

    for name, help_text in (("review", "Approve or reject a submission"), ("resolve", "Resolve a dispute")):
        sub = gig.add_parser(name, help=help_text)
        sub.add_argument("gig_id")
        sub.add_argument("assignment_id")
        sub.add_argument("action", help="approve or reject")
        sub.add_argument("reason", nargs="?", help="Optional reason")

    gig.add_parser("disputes", help="List disputes on gigs you created")
    gig.add_parser("list", help="Browse available gigs")

    pick = gig.add_parser("pick", help="Accept a gig slot")
    pick.add_argument("gig_id")

    submit = gig.add_parser("submit", help="Submit proof for a picked gig")
    submit.add_argument("gig_id")
    submit.add_argument("proof", help="Proof URL, e.g. a tweet")

    gig.add_parser("picked", help="List gigs you've picked")

    dispute = gig.add_parser("dispute", help="Dispute a rejected submission")
    dispute.add_argument("gig_id")
    dispute.add_argument("assignment_id")
    dispute.add_argument("reason", nargs="+")

    return parser


def gig_arguments(args: argparse.Namespace) -> dict:
    """Keyword arguments for the GigCommands method of a parsed subcommand."""
    sub = args.subcommand
    if sub == "create":
        return {
            "description": " ".join(args.description),
            "price": args.price,
            "quantity": args.quantity,
            "network": args.network,
            "min_followers": args.min_followers,
            "require_premium": args.require_premium,
            "min_account_age": args.min_account_age,
        }
    if sub == "get" or sub == "pick":
        return {"gig_id": args.gig_id}
    if sub in ("review", "resolve"):
        return {
            "gig_id": args.gig_id,
            "assignment_id": args.assignment_id,
            "action": args.action,
            "reason": args.reason,
        }
    if sub == "submit":
        return {"gig_id": args.gig_id, "proof": args.proof}
    if sub == "dispute":
        return {
            "gig_id": args.gig_id,
            "assignment_id": args.assignment_id,
            "reason": " ".join(args.reason),
        }
    return {}


async def dispatch(settings: Settings, args: argparse.Namespace) -> None:
    if args.command == "send":
        validate_settings_for_command(settings, "send")
        await run_send(settings, args.recipient, args.amount, args.network)
    elif args.command == "gig":
        validate_settings_for_command(settings, "gig")
        await run_gig(settings, args.subcommand, **gig_arguments(args))


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    """Entry point of the moltycash console script.

    Args:
        argv: Command-line arguments without the program name.
        settings: Pre-built settings; loaded from the environment if None.

    Returns:
        Process exit status: 0 on success, 1 on any failure.
    """
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)

    if args.command == "gig" and not args.subcommand:
        print(
            "Usage: moltycash gig <create|created|get|review|disputes|resolve|"
            "list|pick|submit|picked|dispute>",
            file=sys.stderr,
        )
        return 1

    if settings is None:
        try:
            settings = load_settings()
        except ConfigError as e:
            print(f"❌ {e}", file=sys.stderr)
            return 1

    setup_logging(
        settings.log_level,
        settings.log_format,
        secrets=(settings.evm_private_key, settings.svm_private_key, settings.molty_identity_token),
    )

    with CorrelationIdContext() as correlation_id:
        logger.debug(f"Running {args.command} (correlation_id={correlation_id})")
        try:
            asyncio.run(dispatch(settings, args))
        except MoltyError as e:
            print(f"❌ {e}", file=sys.stderr)
            if isinstance(e, A2AError) and e.status_code:
                print(f"   Status: {e.status_code}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("\n❌ Interrupted", file=sys.stderr)
            return 1
        except Exception as e:
            logger.error(f"Unexpected error running {args.command}: {e}", exc_info=True)
            print(f"❌ {e or 'Command failed'}", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
