"""Faucet funding loop.

Repeatedly funds a throwaway keypair from the cluster faucet, waits for
the airdrop to finalize and forwards most of it to the primary signer.
Faucets rate-limit aggressively, so every failure is treated as
transient: the loop backs off for a fixed interval and starts over with
a new keypair.

Known limitation: the sweep moves 95% of the disposable balance instead of
``balance - fee``. The remaining 5% covers the transfer fee and is left
behind as dust on the abandoned keypair.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from solana.rpc.commitment import Finalized, Processed
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from .cluster import ClusterContext
from .core.exceptions import TransientNetworkError
from .core.models import FarmerStats, FundingAttempt
from .core.types import LAMPORTS_PER_SOL, FundingStatus, Lamports

logger = logging.getLogger(__name__)

DEFAULT_FUNDING_LAMPORTS = 5 * LAMPORTS_PER_SOL
DEFAULT_BACKOFF_SECONDS = 1.0
SWEEP_PERCENT = 95


def sweep_amount(balance: Lamports) -> Lamports:
    """Lamports forwarded for a disposable balance (95%, rounded half up)."""
    return (balance * SWEEP_PERCENT + 50) // 100


def _check_confirmation(resp: Any, stage: str) -> None:
    """Raise if the confirmed signature status carries a transaction error."""
    statuses = getattr(resp, "value", None) or []
    status = statuses[0] if statuses else None
    if status is not None and getattr(status, "err", None) is not None:
        raise TransientNetworkError(stage, f"transaction failed: {status.err}")


class FaucetFarmer:
    """Accumulates faucet funds into the context's primary signer."""

    def __init__(
        self,
        context: ClusterContext,
        funding_lamports: Lamports = DEFAULT_FUNDING_LAMPORTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        identity_factory: Callable[[], Keypair] = Keypair,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_attempt: Callable[[FundingAttempt], None] | None = None,
    ):
        """
        Initialize the farmer.

        Args:
            context: Bound cluster context; its signer receives the sweeps
            funding_lamports: Amount requested from the faucet per attempt
            backoff_seconds: Fixed pause after a failed attempt
            identity_factory: Creates a fresh disposable keypair
            sleep: Awaitable sleep used for backoff
            on_attempt: Called with every finished attempt, failed or not
        """
        self.context = context
        self.funding_lamports = funding_lamports
        self.backoff_seconds = backoff_seconds
        self._identity_factory = identity_factory
        self._sleep = sleep
        self._on_attempt = on_attempt
        self.stats = FarmerStats()

    async def run(
        self,
        cancel: asyncio.Event | None = None,
        max_iterations: int | None = None,
    ) -> FarmerStats:
        """
        Run the funding loop until cancelled.

        Without ``cancel`` or ``max_iterations`` this never returns; the
        operator stops it by terminating the process.

        Args:
            cancel: Loop exits before the next attempt once this is set;
                    a backoff in progress is cut short
            max_iterations: Optional cap on attempts

        Returns:
            Final counters
        """
        iterations = 0
        while cancel is None or not cancel.is_set():
            if max_iterations is not None and iterations >= max_iterations:
                break
            iterations += 1
            try:
                await self.run_once()
            except TransientNetworkError as e:
                logger.warning(
                    f"Funding attempt failed ({self.stats.consecutive_failures} in a row): {e}"
                )
                await self._backoff(cancel)
        return self.stats

    async def run_once(self) -> FundingAttempt:
        """
        Fund one disposable keypair and sweep it to the primary signer.

        Returns:
            The finished attempt

        Raises:
            TransientNetworkError: On any failure; the attempt is still
                recorded in ``stats``
        """
        attempt = FundingAttempt(requested_lamports=self.funding_lamports)
        stage = "balance"
        try:
            connection = self.context.connection
            primary = self.context.public_key

            wallet_balance = (await connection.get_balance(primary)).value
            logger.info(f"wallet balance {wallet_balance / LAMPORTS_PER_SOL} SOL")

            stage = "airdrop"
            identity = self._identity_factory()
            attempt.identity = str(identity.pubkey())
            airdrop = await connection.request_airdrop(identity.pubkey(), self.funding_lamports)
            attempt.funding_signature = str(airdrop.value)

            stage = "confirm"
            resp = await connection.confirm_transaction(airdrop.value, commitment=Finalized)
            _check_confirmation(resp, stage)
            attempt.status = FundingStatus.FINALIZED

            stage = "balance"
            balance = (await connection.get_balance(identity.pubkey())).value
            attempt.balance = balance
            if balance <= 0:
                attempt.status = FundingStatus.EMPTY
                logger.debug(f"Airdrop to {attempt.identity} finalized with zero balance")
            else:
                logger.info(f"new balance {attempt.identity} {balance / LAMPORTS_PER_SOL} SOL")
                stage = "sweep"
                lamports = sweep_amount(balance)
                signature = await self._sweep(identity, lamports)
                attempt.swept_lamports = lamports
                attempt.sweep_signature = signature
                attempt.status = FundingStatus.SWEPT
                logger.info(f"signature {signature}")
        except Exception as e:
            attempt.status = FundingStatus.FAILED
            attempt.error = str(e)
            self._finish(attempt)
            if isinstance(e, TransientNetworkError):
                raise
            raise TransientNetworkError(stage, f"{type(e).__name__}: {e}") from e

        self._finish(attempt)
        return attempt

    async def _sweep(self, identity: Keypair, lamports: Lamports) -> str:
        """Transfer ``lamports`` from the disposable keypair to the primary signer."""
        connection = self.context.connection
        blockhash = (await connection.get_latest_blockhash()).value.blockhash
        ix = transfer(
            TransferParams(
                from_pubkey=identity.pubkey(),
                to_pubkey=self.context.public_key,
                lamports=lamports,
            )
        )
        msg = Message.new_with_blockhash([ix], identity.pubkey(), blockhash)
        tx = Transaction([identity], msg, blockhash)

        result = await connection.send_transaction(tx, opts=TxOpts(preflight_commitment=Processed))
        resp = await connection.confirm_transaction(result.value, commitment=Processed)
        _check_confirmation(resp, "sweep")
        return str(result.value)

    async def _backoff(self, cancel: asyncio.Event | None) -> None:
        """Wait ``backoff_seconds``, returning early once ``cancel`` is set."""
        if cancel is None:
            await self._sleep(self.backoff_seconds)
            return

        sleeper = asyncio.ensure_future(self._sleep(self.backoff_seconds))
        waiter = asyncio.ensure_future(cancel.wait())
        _, pending = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _finish(self, attempt: FundingAttempt) -> None:
        self.stats.record(attempt)
        if self._on_attempt is None:
            return
        try:
            self._on_attempt(attempt)
        except Exception:
            logger.exception(f"on_attempt callback failed for {attempt.identity}")
