"""curvectl - operator command surface for a bonding-curve token launchpad.

Funds an operating wallet from a devnet faucet and dispatches the token
lifecycle operations (config, launch, swap, migrate, withdraw) against a
Solana cluster.
"""

__version__ = "0.1.0"
