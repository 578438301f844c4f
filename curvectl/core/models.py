"""Pydantic data models for curvectl.

Requests handed to lifecycle operations are immutable (frozen) so that a
validated request cannot be altered between the router and the operation.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator
from solders.pubkey import Pubkey

from .types import CommandName, FundingStatus, Lamports, Percentage, SwapStyle


def parse_address(value: Any) -> Pubkey:
    """Parse a base58 address into a ``Pubkey``.

    Raises:
        ValueError: If the value is not a valid on-chain address.
    """
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not an address: {value!r}")
    return Pubkey.from_string(value.strip())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommandSpec(BaseModel):
    """Static description of an operator command."""

    name: CommandName
    required_options: tuple[str, ...] = ()
    description: str = ""

    model_config = {"frozen": True}


class TokenMetadata(BaseModel):
    """Metadata for the token minted by the launch operation."""

    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1, max_length=10)
    uri: str = ""

    model_config = {"frozen": True}


class LaunchConfig(BaseModel):
    """Global launchpad configuration written by the config operation.

    Mirrors the on-chain config account. Fields left as ``None`` are filled
    in by the operation backend.
    """

    authority: Pubkey | None = None
    pending_authority: Pubkey | None = None
    team_wallet: Pubkey | None = None

    init_bonding_curve: Percentage | None = Field(default=None, ge=0, le=100)

    platform_buy_fee: Percentage | None = Field(default=None, ge=0, le=100)
    platform_sell_fee: Percentage | None = Field(default=None, ge=0, le=100)
    platform_migration_fee: Percentage | None = Field(default=None, ge=0, le=100)

    curve_limit: Lamports | None = Field(default=None, ge=0)  # lamports to complete the curve

    lamport_amount_config: Lamports | None = Field(default=None, ge=0)
    token_supply_config: int | None = Field(default=None, ge=0)
    token_decimals_config: int | None = Field(default=None, ge=0, le=255)

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("authority", "pending_authority", "team_wallet", mode="before")
    @classmethod
    def _parse_wallet(cls, v: Any) -> Pubkey | None:
        if v is None:
            return None
        return parse_address(v)


class ConfigureRequest(BaseModel):
    """Input to the config operation."""

    config: LaunchConfig = Field(default_factory=LaunchConfig)

    model_config = {"frozen": True}


class LaunchRequest(BaseModel):
    """Input to the launch operation."""

    metadata: TokenMetadata | None = None

    model_config = {"frozen": True}


class SwapRequest(BaseModel):
    """Input to the swap operation."""

    token: Pubkey
    amount: int = Field(ge=0)   # base units of the input side
    style: SwapStyle

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("token", mode="before")
    @classmethod
    def _parse_token(cls, v: Any) -> Pubkey:
        return parse_address(v)


class TokenRequest(BaseModel):
    """Input to the migrate and withdraw operations."""

    token: Pubkey

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("token", mode="before")
    @classmethod
    def _parse_token(cls, v: Any) -> Pubkey:
        return parse_address(v)


OperationRequest = ConfigureRequest | LaunchRequest | SwapRequest | TokenRequest


class FundingAttempt(BaseModel):
    """One iteration of the faucet funding loop."""

    identity: str | None = None     # disposable public address
    requested_lamports: Lamports
    status: FundingStatus = FundingStatus.REQUESTED
    funding_signature: str | None = None
    balance: Lamports | None = None
    swept_lamports: Lamports = 0
    sweep_signature: str | None = None
    error: str | None = None
    started_at: datetime = Field(default_factory=_utcnow)

    @property
    def succeeded(self) -> bool:
        """Whether funds reached the primary signer."""
        return self.status == FundingStatus.SWEPT


class FarmerStats(BaseModel):
    """Running counters for the funding loop."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    total_swept_lamports: Lamports = 0
    last_error: str | None = None

    def record(self, attempt: FundingAttempt) -> None:
        """Fold a finished attempt into the counters."""
        self.attempts += 1
        if attempt.status == FundingStatus.FAILED:
            self.failures += 1
            self.consecutive_failures += 1
            self.last_error = attempt.error
            return
        self.consecutive_failures = 0
        if attempt.succeeded:
            self.successes += 1
            self.total_swept_lamports += attempt.swept_lamports
