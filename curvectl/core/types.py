"""Type definitions and enums for curvectl."""

from enum import Enum


LAMPORTS_PER_SOL = 1_000_000_000


class Cluster(str, Enum):
    """Named Solana clusters."""

    MAINNET = "mainnet-beta"
    TESTNET = "testnet"
    DEVNET = "devnet"

    @property
    def default_rpc(self) -> str:
        """Public RPC endpoint used when no ``--rpc`` is supplied."""
        endpoints = {
            self.MAINNET: "https://api.mainnet-beta.solana.com",
            self.TESTNET: "https://api.testnet.solana.com",
            self.DEVNET: "https://api.devnet.solana.com",
        }
        return endpoints[self]

    @classmethod
    def parse(cls, name: str) -> "Cluster":
        """Resolve a cluster name or short alias (``main``, ``test``, ``dev``)."""
        aliases = {
            "main": cls.MAINNET,
            "mainnet": cls.MAINNET,
            "test": cls.TESTNET,
            "dev": cls.DEVNET,
        }
        key = name.strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


class SwapStyle(str, Enum):
    """Trade direction against the bonding curve."""

    ACQUIRE = "0"   # SOL in, token out
    DISPOSE = "1"   # token in, SOL out

    @property
    def display_name(self) -> str:
        """Human-readable display name."""
        names = {
            self.ACQUIRE: "buy",
            self.DISPOSE: "sell",
        }
        return names[self]


class FundingStatus(str, Enum):
    """Progress of a single faucet funding attempt."""

    REQUESTED = "requested"     # Faucet request accepted, not yet confirmed
    FINALIZED = "finalized"     # Funding transaction finalized
    EMPTY = "empty"             # Finalized but the disposable balance is zero
    SWEPT = "swept"             # Funds forwarded to the primary signer
    FAILED = "failed"           # Attempt aborted by an error


class CommandName(str, Enum):
    """Operator commands."""

    AIRDROP = "airdrop"
    CONFIG = "config"
    LAUNCH = "launch"
    SWAP = "swap"
    MIGRATE = "migrate"
    WITHDRAW = "withdraw"


# Type aliases for common patterns
Lamports = int      # Native units, 1 SOL = 10^9 lamports
Percentage = float  # 0-100 scale
