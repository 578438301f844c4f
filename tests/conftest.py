"""Pytest configuration and fixtures for curvectl tests."""

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from solana.rpc.commitment import Finalized
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from curvectl.cluster import ClusterContext
from curvectl.core.types import Cluster

SIGNATURE_FEE = 5_000


class FakeConnection:
    """In-memory stand-in for ``solana.rpc.async_api.AsyncClient``.

    Airdrops are credited when confirmed at ``finalized``; sweeps move
    lamports between accounts and charge a flat signature fee. Every call
    is appended to ``calls`` so tests can assert on ordering.
    """

    def __init__(
        self,
        balances: dict[Pubkey, int] | None = None,
        airdrop_error: Exception | None = None,
        send_error: Exception | None = None,
    ):
        self.balances: dict[Pubkey, int] = dict(balances or {})
        self.airdrop_error = airdrop_error
        self.send_error = send_error
        self.calls: list[tuple[Any, ...]] = []
        self.pending: dict[Signature, tuple[Pubkey, int]] = {}
        self.closed = False

    async def get_balance(self, pubkey: Pubkey) -> Any:
        self.calls.append(("get_balance", pubkey))
        return SimpleNamespace(value=self.balances.get(pubkey, 0))

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> Any:
        self.calls.append(("request_airdrop", pubkey, lamports))
        if self.airdrop_error is not None:
            raise self.airdrop_error
        signature = Signature.new_unique()
        self.pending[signature] = (pubkey, lamports)
        return SimpleNamespace(value=signature)

    async def confirm_transaction(self, signature: Signature, commitment: Any = None, **kwargs: Any) -> Any:
        self.calls.append(("confirm_transaction", signature, commitment))
        if signature in self.pending and commitment == Finalized:
            pubkey, lamports = self.pending.pop(signature)
            self.balances[pubkey] = self.balances.get(pubkey, 0) + lamports
        return SimpleNamespace(value=[SimpleNamespace(err=None)])

    async def get_latest_blockhash(self) -> Any:
        self.calls.append(("get_latest_blockhash",))
        return SimpleNamespace(value=SimpleNamespace(blockhash=Hash.default()))

    async def send_transaction(self, tx: Any, opts: Any = None) -> Any:
        self.calls.append(("send_transaction", tx))
        if self.send_error is not None:
            raise self.send_error
        # System transfer: u32 instruction index followed by u64 lamports
        ix = tx.message.instructions[0]
        keys = tx.message.account_keys
        sender, recipient = keys[ix.accounts[0]], keys[ix.accounts[1]]
        lamports = int.from_bytes(bytes(ix.data)[4:12], "little")
        self.balances[sender] = self.balances.get(sender, 0) - lamports - SIGNATURE_FEE
        self.balances[recipient] = self.balances.get(recipient, 0) + lamports
        return SimpleNamespace(value=tx.signatures[0])

    async def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class SpyOperations:
    """Lifecycle backend that records every call."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple[str, Any, Any]] = []
        self.error = error

    async def _record(self, name: str, context: Any, request: Any) -> str:
        self.calls.append((name, context, request))
        if self.error is not None:
            raise self.error
        return f"{name}-signature"

    async def configure(self, context, request):
        return await self._record("configure", context, request)

    async def launch(self, context, request):
        return await self._record("launch", context, request)

    async def swap(self, context, request):
        return await self._record("swap", context, request)

    async def migrate(self, context, request):
        return await self._record("migrate", context, request)

    async def withdraw(self, context, request):
        return await self._record("withdraw", context, request)


class RecordingBinder:
    """Replacement for ``cluster.bind`` that never touches the network."""

    def __init__(self, connection: FakeConnection | None = None):
        self.connection = connection or FakeConnection()
        self.signer = Keypair()
        self.calls: list[tuple[Any, Any, Any]] = []
        self.contexts: list[ClusterContext] = []

    def __call__(self, environment, rpc_endpoint, keypair_path) -> ClusterContext:
        self.calls.append((environment, rpc_endpoint, keypair_path))
        cluster = Cluster.parse(environment)
        context = ClusterContext(
            environment=cluster,
            rpc_endpoint=rpc_endpoint or cluster.default_rpc,
            signer=self.signer,
            connection=self.connection,
        )
        self.contexts.append(context)
        return context


@pytest.fixture
def token_address() -> str:
    """A valid base58 mint address."""
    return str(Pubkey.new_unique())


@pytest.fixture
def keypair() -> Keypair:
    """Operator keypair."""
    return Keypair()


@pytest.fixture
def keypair_file(tmp_path: Path, keypair: Keypair) -> Path:
    """Keypair written in the Solana CLI JSON format."""
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))
    return path


@pytest.fixture
def fake_connection() -> FakeConnection:
    """Fresh fake RPC connection."""
    return FakeConnection()


@pytest.fixture
def spy_operations() -> SpyOperations:
    """Recording lifecycle backend."""
    return SpyOperations()


@pytest.fixture
def binder(fake_connection: FakeConnection) -> RecordingBinder:
    """Recording cluster binder over the fake connection."""
    return RecordingBinder(fake_connection)


@pytest.fixture
def context(keypair: Keypair, fake_connection: FakeConnection) -> ClusterContext:
    """Bound devnet context over the fake connection."""
    return ClusterContext(
        environment=Cluster.DEVNET,
        rpc_endpoint=Cluster.DEVNET.default_rpc,
        signer=keypair,
        connection=fake_connection,
    )


@pytest.fixture
def settings_file(tmp_path: Path, token_address: str) -> Path:
    """Settings file with launch parameters."""
    path = tmp_path / "curvectl.yaml"
    path.write_text(
        "env: testnet\n"
        "operations: pumpfun\n"
        "faucet:\n"
        "  amount_sol: 2\n"
        "  backoff_seconds: 0.5\n"
        "launch_config:\n"
        f"  team_wallet: {token_address}\n"
        "  platform_buy_fee: 1.0\n"
        "  platform_sell_fee: 1.5\n"
        "  curve_limit: 85000000000\n"
        "  token_decimals_config: 6\n"
        "token:\n"
        "  name: Example\n"
        "  symbol: EXM\n"
        "  uri: https://example.com/meta.json\n"
    )
    return path
