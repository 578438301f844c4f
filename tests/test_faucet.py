"""Tests for the faucet funding loop."""

import asyncio
import time
from types import SimpleNamespace

import httpx
import pytest
from solana.rpc.commitment import Finalized, Processed

from curvectl.core.exceptions import TransientNetworkError
from curvectl.core.types import LAMPORTS_PER_SOL, FundingStatus
from curvectl.faucet import DEFAULT_FUNDING_LAMPORTS, FaucetFarmer, sweep_amount

from conftest import SIGNATURE_FEE, FakeConnection


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class TestSweepAmount:
    """Tests for the 95% sweep computation."""

    def test_five_sol(self):
        """Test sweep of a full 5 SOL airdrop."""
        assert sweep_amount(5 * LAMPORTS_PER_SOL) == 4_750_000_000

    def test_rounds_half_up(self):
        """Test fractional lamports round half up."""
        # 10 * 0.95 = 9.5 -> 10
        assert sweep_amount(10) == 10
        # 9 * 0.95 = 8.55 -> 9
        assert sweep_amount(9) == 9
        # 1 * 0.95 = 0.95 -> 1
        assert sweep_amount(1) == 1

    def test_never_exceeds_balance(self):
        """Test sweep leaves something behind for large balances."""
        for balance in (100, 12_345, 2 * LAMPORTS_PER_SOL):
            assert sweep_amount(balance) < balance


class TestRunOnce:
    """Tests for a single funding attempt."""

    @pytest.mark.asyncio
    async def test_successful_attempt(self, context, fake_connection):
        """Test a finalized airdrop is swept to the primary signer."""
        farmer = FaucetFarmer(context)

        attempt = await farmer.run_once()

        assert attempt.status == FundingStatus.SWEPT
        assert attempt.requested_lamports == DEFAULT_FUNDING_LAMPORTS
        assert attempt.balance == DEFAULT_FUNDING_LAMPORTS
        assert attempt.swept_lamports == 4_750_000_000
        assert attempt.sweep_signature is not None
        assert fake_connection.balances[context.public_key] == 4_750_000_000

    @pytest.mark.asyncio
    async def test_disposable_keeps_reserve(self, context, fake_connection):
        """Test the 5% reserve minus the fee stays on the disposable keypair."""
        farmer = FaucetFarmer(context)

        attempt = await farmer.run_once()

        leftover = [
            balance for key, balance in fake_connection.balances.items()
            if str(key) == attempt.identity
        ][0]
        assert leftover == DEFAULT_FUNDING_LAMPORTS - 4_750_000_000 - SIGNATURE_FEE

    @pytest.mark.asyncio
    async def test_sweep_follows_finalized_confirmation(self, context, fake_connection):
        """Test ordering: finalize, re-query, build, broadcast, confirm."""
        farmer = FaucetFarmer(context)

        attempt = await farmer.run_once()

        names = fake_connection.call_names()
        assert names == [
            "get_balance",
            "request_airdrop",
            "confirm_transaction",
            "get_balance",
            "get_latest_blockhash",
            "send_transaction",
            "confirm_transaction",
        ]
        # Funding confirmed at finalized, sweep at processed
        assert fake_connection.calls[2][2] == Finalized
        assert fake_connection.calls[6][2] == Processed
        # Re-query targets the disposable keypair, not the primary
        assert str(fake_connection.calls[3][1]) == attempt.identity

    @pytest.mark.asyncio
    async def test_fresh_identity_each_attempt(self, context):
        """Test disposable keypairs are never reused."""
        farmer = FaucetFarmer(context)

        first = await farmer.run_once()
        second = await farmer.run_once()

        assert first.identity != second.identity

    @pytest.mark.asyncio
    async def test_empty_balance_skips_sweep(self, context, fake_connection):
        """Test no transfer is built when the airdrop left nothing."""
        farmer = FaucetFarmer(context, funding_lamports=0)

        attempt = await farmer.run_once()

        assert attempt.status == FundingStatus.EMPTY
        assert "send_transaction" not in fake_connection.call_names()
        assert farmer.stats.successes == 0
        assert farmer.stats.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_faucet_failure_is_transient(self, context, fake_connection):
        """Test faucet errors surface as TransientNetworkError."""
        fake_connection.airdrop_error = httpx.ReadTimeout("faucet timed out")
        farmer = FaucetFarmer(context)

        with pytest.raises(TransientNetworkError) as exc_info:
            await farmer.run_once()

        assert exc_info.value.stage == "airdrop"
        assert farmer.stats.failures == 1
        assert "faucet timed out" in farmer.stats.last_error

    @pytest.mark.asyncio
    async def test_sweep_failure_never_credits_primary(self, context, fake_connection):
        """Test a failed broadcast leaves the primary balance untouched."""
        fake_connection.send_error = RuntimeError("blockhash not found")
        farmer = FaucetFarmer(context)

        with pytest.raises(TransientNetworkError) as exc_info:
            await farmer.run_once()

        assert exc_info.value.stage == "sweep"
        assert fake_connection.balances.get(context.public_key, 0) == 0


class TestRunLoop:
    """Tests for the indefinite loop."""

    @pytest.mark.asyncio
    async def test_balance_grows_every_iteration(self, context, fake_connection):
        """Test each successful iteration adds 95% of the airdrop."""
        observed: list[int] = []
        farmer = FaucetFarmer(
            context,
            sleep=SleepRecorder(),
            on_attempt=lambda a: observed.append(fake_connection.balances[context.public_key]),
        )

        stats = await farmer.run(max_iterations=4)

        assert observed == [4_750_000_000 * i for i in range(1, 5)]
        assert stats.successes == 4
        assert stats.total_swept_lamports == 4 * 4_750_000_000

    @pytest.mark.asyncio
    async def test_keeps_running_through_failures(self, context, fake_connection):
        """Test N induced failures produce N backoffs and no crash."""
        fake_connection.airdrop_error = RuntimeError("429 Too Many Requests")
        sleep = SleepRecorder()
        farmer = FaucetFarmer(context, backoff_seconds=1.0, sleep=sleep)

        stats = await farmer.run(max_iterations=25)

        assert stats.attempts == 25
        assert stats.failures == 25
        assert stats.consecutive_failures == 25
        assert sleep.delays == [1.0] * 25

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self, context, fake_connection):
        """Test the consecutive-failure counter resets on success."""
        fake_connection.airdrop_error = httpx.ConnectError("connection refused")
        sleep = SleepRecorder()
        farmer = FaucetFarmer(context, sleep=sleep)

        await farmer.run(max_iterations=3)
        fake_connection.airdrop_error = None
        stats = await farmer.run(max_iterations=1)

        assert stats.failures == 3
        assert stats.successes == 1
        assert stats.consecutive_failures == 0
        assert len(sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_cancel_stops_loop(self, context):
        """Test the loop exits once the cancel event is set."""
        cancel = asyncio.Event()
        attempts = []

        def on_attempt(attempt):
            attempts.append(attempt)
            if len(attempts) == 2:
                cancel.set()

        farmer = FaucetFarmer(context, sleep=SleepRecorder(), on_attempt=on_attempt)

        stats = await farmer.run(cancel=cancel)

        assert stats.attempts == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, context, fake_connection):
        """Test a pre-set cancel event runs no attempts."""
        cancel = asyncio.Event()
        cancel.set()
        farmer = FaucetFarmer(context)

        stats = await farmer.run(cancel=cancel)

        assert stats.attempts == 0
        assert fake_connection.calls == []

    @pytest.mark.asyncio
    async def test_failed_confirmation_status(self, context):
        """Test a confirmed-but-errored airdrop counts as a failure."""

        class ErroredConfirm(FakeConnection):
            async def confirm_transaction(self, signature, commitment=None, **kwargs):
                await super().confirm_transaction(signature, commitment)
                return SimpleNamespace(value=[SimpleNamespace(err="InstructionError")])

        connection = ErroredConfirm()
        ctx = context.model_copy(update={"connection": connection})
        sleep = SleepRecorder()
        farmer = FaucetFarmer(ctx, sleep=sleep)

        stats = await farmer.run(max_iterations=2)

        assert stats.failures == 2
        assert "send_transaction" not in connection.call_names()
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_cancel_interrupts_backoff(self, context, fake_connection):
        """Test setting the cancel event mid-backoff ends the wait early."""
        fake_connection.airdrop_error = RuntimeError("429 Too Many Requests")
        cancel = asyncio.Event()
        farmer = FaucetFarmer(context, backoff_seconds=5.0)
        asyncio.get_running_loop().call_later(0.05, cancel.set)

        started = time.monotonic()
        stats = await farmer.run(cancel=cancel)
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert stats.attempts == 1

    @pytest.mark.asyncio
    async def test_backoff_uses_injected_sleep_with_cancel(self, context, fake_connection):
        """Test the injected sleep still paces backoff when a cancel event is given."""
        fake_connection.airdrop_error = RuntimeError("429 Too Many Requests")
        sleep = SleepRecorder()
        farmer = FaucetFarmer(context, backoff_seconds=2.0, sleep=sleep)

        stats = await farmer.run(cancel=asyncio.Event(), max_iterations=3)

        assert stats.failures == 3
        assert sleep.delays == [2.0] * 3

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_loop(self, context, fake_connection):
        """Test an on_attempt callback that raises is logged and the loop continues."""
        def raising_hook(attempt):
            raise RuntimeError("metrics sink down")

        farmer = FaucetFarmer(context, sleep=SleepRecorder(), on_attempt=raising_hook)

        stats = await farmer.run(max_iterations=3)

        assert stats.attempts == 3
        assert stats.successes == 3
        assert fake_connection.balances[context.public_key] == 3 * 4_750_000_000

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_failure_transient(self, context, fake_connection):
        """Test a raising callback on a failed attempt still backs off and retries."""
        fake_connection.airdrop_error = httpx.ConnectError("connection refused")
        sleep = SleepRecorder()

        def raising_hook(attempt):
            raise RuntimeError("metrics sink down")

        farmer = FaucetFarmer(context, sleep=sleep, on_attempt=raising_hook)

        stats = await farmer.run(max_iterations=2)

        assert stats.failures == 2
        assert len(sleep.delays) == 2
