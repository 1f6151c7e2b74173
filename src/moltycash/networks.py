"""Supported settlement networks and selection of the one to pay on."""

from enum import Enum
from typing import NamedTuple, Optional

from moltycash.errors import NetworkSelectionError


class Network(str, Enum):
    """Chain family a payment is settled on."""

    BASE = "base"
    SOLANA = "solana"

    @property
    def display_name(self) -> str:
        return "Base" if self is Network.BASE else "Solana"

    @property
    def key_env_var(self) -> str:
        return "EVM_PRIVATE_KEY" if self is Network.BASE else "SVM_PRIVATE_KEY"


ALLOWED_NETWORKS = tuple(n.value for n in Network)


class NetworkChoice(NamedTuple):
    network: Network
    auto_detected: bool


def select_network(
    evm_private_key: Optional[str],
    svm_private_key: Optional[str],
    requested: Optional[str] = None,
) -> NetworkChoice:
    """Pick the network to pay on.

    With an explicit ``requested`` network the matching key must be set.
    Without one, exactly one of the two keys must be set and its network is
    used.

    Args:
        evm_private_key: Configured EVM key, empty or None if unset.
        svm_private_key: Configured Solana key, empty or None if unset.
        requested: Value of --network, if given.

    Returns:
        The chosen network and whether it was auto-detected.

    Raises:
        NetworkSelectionError: If no single network can be chosen.
    """
    has_evm = bool(evm_private_key)
    has_svm = bool(svm_private_key)

    if requested is not None:
        try:
            network = Network(requested.strip().lower())
        except ValueError:
            raise NetworkSelectionError("Network must be either 'base' or 'solana'") from None

        if network is Network.SOLANA and not has_svm:
            raise NetworkSelectionError(
                "Missing SVM_PRIVATE_KEY environment variable (needed for --network solana)"
            )
        if network is Network.BASE and not has_evm:
            raise NetworkSelectionError(
                "Missing EVM_PRIVATE_KEY environment variable (needed for --network base)"
            )
        return NetworkChoice(network, auto_detected=False)

    if has_evm and has_svm:
        raise NetworkSelectionError(
            "Both EVM_PRIVATE_KEY and SVM_PRIVATE_KEY are set\n"
            "   Please specify which network to use with --network <base|solana>"
        )
    if has_svm:
        return NetworkChoice(Network.SOLANA, auto_detected=True)
    if has_evm:
        return NetworkChoice(Network.BASE, auto_detected=True)

    raise NetworkSelectionError(
        "No private keys found\n"
        "   Set EVM_PRIVATE_KEY (for Base) or SVM_PRIVATE_KEY (for Solana)"
    )


def configured_networks(evm_private_key: Optional[str], svm_private_key: Optional[str]) -> list[Network]:
    """All networks that have a key configured, Base first."""
    networks = []
    if evm_private_key:
        networks.append(Network.BASE)
    if svm_private_key:
        networks.append(Network.SOLANA)
    return networks
