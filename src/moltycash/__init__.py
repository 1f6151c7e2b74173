"""moltycash - send USDC and manage gigs on molty.cash over x402."""

__version__ = "0.1.0"
