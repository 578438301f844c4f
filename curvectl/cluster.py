"""Cluster binding: resolve env / RPC endpoint / keypair into a context.

The context is built once per invocation and passed explicitly to every
operation. There is no process-wide connection or wallet.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .core.exceptions import IdentityLoadError, ValidationError
from .core.types import Cluster

logger = logging.getLogger(__name__)

KEYPAIR_LENGTH = 64


class ClusterContext(BaseModel):
    """Network connection and signer bound for one invocation."""

    environment: Cluster
    rpc_endpoint: str
    signer: Keypair
    connection: Any     # solana.rpc.async_api.AsyncClient or compatible

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def public_key(self) -> Pubkey:
        """Primary signer address."""
        return self.signer.pubkey()

    async def close(self) -> None:
        """Release the RPC connection."""
        await self.connection.close()

    async def __aenter__(self) -> "ClusterContext":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def load_keypair(path: str | Path) -> Keypair:
    """
    Load a Solana CLI keypair file (JSON array of 64 secret-key bytes).

    Args:
        path: Keypair file location; ``~`` is expanded

    Raises:
        IdentityLoadError: If the file is missing, unreadable or malformed
    """
    keypair_path = Path(path).expanduser()
    try:
        raw = keypair_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise IdentityLoadError(str(keypair_path), "file not found") from e
    except OSError as e:
        raise IdentityLoadError(str(keypair_path), str(e)) from e

    try:
        secret = json.loads(raw)
    except json.JSONDecodeError as e:
        raise IdentityLoadError(str(keypair_path), f"invalid JSON: {e}") from e

    if (
        not isinstance(secret, list)
        or len(secret) != KEYPAIR_LENGTH
        or not all(isinstance(b, int) and 0 <= b <= 255 for b in secret)
    ):
        raise IdentityLoadError(
            str(keypair_path),
            f"expected a JSON array of {KEYPAIR_LENGTH} byte values",
        )

    try:
        return Keypair.from_bytes(bytes(secret))
    except ValueError as e:
        raise IdentityLoadError(str(keypair_path), f"invalid key material: {e}") from e


def bind(
    environment: str | Cluster,
    rpc_endpoint: str | None,
    keypair_path: str | Path,
    client_factory: Callable[[str], Any] = AsyncClient,
) -> ClusterContext:
    """
    Bind a cluster context.

    Args:
        environment: Cluster name or alias (``devnet``, ``dev``, ...)
        rpc_endpoint: RPC URL; the cluster's public endpoint when ``None``
        keypair_path: Path to the operator's keypair file
        client_factory: Builds the connection from an endpoint URL

    Returns:
        ClusterContext bound to exactly the resolved endpoint and signer

    Raises:
        ValidationError: If the environment name is unknown
        IdentityLoadError: If the keypair cannot be loaded
    """
    if isinstance(environment, Cluster):
        cluster = environment
    else:
        try:
            cluster = Cluster.parse(environment)
        except ValueError as e:
            raise ValidationError("env", "Error cluster env", value=environment) from e

    endpoint = rpc_endpoint or cluster.default_rpc
    # Signer first so a bad keypair never leaves an open connection behind
    signer = load_keypair(keypair_path)

    logger.debug(f"Binding {cluster.value} at {endpoint} as {signer.pubkey()}")
    return ClusterContext(
        environment=cluster,
        rpc_endpoint=endpoint,
        signer=signer,
        connection=client_factory(endpoint),
    )
