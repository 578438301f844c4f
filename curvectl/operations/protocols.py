"""Contract for lifecycle operation backends.

A backend performs the on-chain work for each operator command. curvectl
only validates inputs, binds the cluster and calls exactly one of these
methods per invocation; it never inspects how the transactions are built.
"""

from typing import Any, Protocol, runtime_checkable

from ..cluster import ClusterContext
from ..core.models import ConfigureRequest, LaunchRequest, SwapRequest, TokenRequest


@runtime_checkable
class LifecycleOperations(Protocol):
    """Configure / Launch / Swap / Migrate / Withdraw.

    Implementations may return any result (typically a transaction
    signature) and signal failure by raising.
    """

    async def configure(self, context: ClusterContext, request: ConfigureRequest) -> Any:
        """Write the global launchpad configuration."""
        ...

    async def launch(self, context: ClusterContext, request: LaunchRequest) -> Any:
        """Create a token and its bonding curve."""
        ...

    async def swap(self, context: ClusterContext, request: SwapRequest) -> Any:
        """Trade against the token's bonding curve."""
        ...

    async def migrate(self, context: ClusterContext, request: TokenRequest) -> Any:
        """Move a completed curve's liquidity to the AMM."""
        ...

    async def withdraw(self, context: ClusterContext, request: TokenRequest) -> Any:
        """Withdraw curve proceeds to the team wallet."""
        ...
