"""Command routing: validate operator options, bind the cluster, dispatch.

Each invocation runs exactly one command. Inputs are validated before the
cluster is bound, so a rejected command has no side effects and never
reaches its operation.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError
from solders.pubkey import Pubkey

from .cluster import ClusterContext, bind
from .core.config import FaucetSettings, Settings
from .core.exceptions import CurveCtlError, OperationError, ValidationError
from .core.models import (
    CommandSpec,
    ConfigureRequest,
    LaunchRequest,
    OperationRequest,
    SwapRequest,
    TokenRequest,
    parse_address,
)
from .core.types import LAMPORTS_PER_SOL, CommandName, SwapStyle
from .faucet import FaucetFarmer
from .operations import LifecycleOperations, load_operations

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")

COMMAND_SPECS: dict[CommandName, CommandSpec] = {
    CommandName.AIRDROP: CommandSpec(
        name=CommandName.AIRDROP,
        description="Farm the devnet faucet into the primary wallet",
    ),
    CommandName.CONFIG: CommandSpec(
        name=CommandName.CONFIG,
        description="Write the global launchpad configuration",
    ),
    CommandName.LAUNCH: CommandSpec(
        name=CommandName.LAUNCH,
        description="Create a token and its bonding curve",
    ),
    CommandName.SWAP: CommandSpec(
        name=CommandName.SWAP,
        required_options=("token", "amount", "style"),
        description="Buy or sell against a bonding curve",
    ),
    CommandName.MIGRATE: CommandSpec(
        name=CommandName.MIGRATE,
        required_options=("token",),
        description="Migrate a completed curve to the AMM",
    ),
    CommandName.WITHDRAW: CommandSpec(
        name=CommandName.WITHDRAW,
        required_options=("token",),
        description="Withdraw curve proceeds",
    ),
}

# Operator-facing messages for rejected options
FIELD_ERRORS = {
    "token": "Error token address",
    "amount": "Error swap amount",
    "style": "Error swap style",
    "funding_sol": "Error airdrop amount",
    "backoff": "Error airdrop backoff",
}

# Command -> LifecycleOperations method
OPERATION_METHODS = {
    CommandName.CONFIG: "configure",
    CommandName.LAUNCH: "launch",
    CommandName.SWAP: "swap",
    CommandName.MIGRATE: "migrate",
    CommandName.WITHDRAW: "withdraw",
}


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_token(value: Any) -> Pubkey:
    if _is_missing(value):
        raise ValidationError("token", FIELD_ERRORS["token"])
    try:
        return parse_address(value)
    except ValueError as e:
        raise ValidationError("token", FIELD_ERRORS["token"], value=str(value)) from e


def _parse_amount(value: Any) -> int:
    if _is_missing(value) or isinstance(value, bool):
        raise ValidationError("amount", FIELD_ERRORS["amount"])
    text = str(value).strip()
    # Plain ASCII base-10 only: no sign, underscores or other scripts' digits
    if not _DIGITS.fullmatch(text):
        raise ValidationError("amount", FIELD_ERRORS["amount"], value=str(value))
    return int(text)


def _parse_style(value: Any) -> SwapStyle:
    if _is_missing(value):
        raise ValidationError("style", FIELD_ERRORS["style"])
    if isinstance(value, SwapStyle):
        return value
    try:
        return SwapStyle(str(value).strip())
    except ValueError as e:
        raise ValidationError("style", FIELD_ERRORS["style"], value=str(value)) from e


FIELD_PARSERS: dict[str, Callable[[Any], Any]] = {
    "token": _parse_token,
    "amount": _parse_amount,
    "style": _parse_style,
}

# Commands whose request is built from their required options
REQUEST_TYPES = {
    CommandName.SWAP: SwapRequest,
    CommandName.MIGRATE: TokenRequest,
    CommandName.WITHDRAW: TokenRequest,
}

# FaucetSettings field -> airdrop option name
FAUCET_OPTIONS = {
    "amount_sol": "funding_sol",
    "backoff_seconds": "backoff",
}


class CommandRouter:
    """Routes one operator command to one lifecycle operation."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        operations: Optional[LifecycleOperations] = None,
        binder: Callable[..., ClusterContext] = bind,
        farmer_factory: Callable[..., FaucetFarmer] = FaucetFarmer,
    ):
        """
        Initialize router.

        Args:
            settings: Defaults for options not given on the command line
            operations: Lifecycle backend; discovered from entry points
                        on first use when not provided
            binder: Builds the ClusterContext (``cluster.bind``)
            farmer_factory: Builds the funding loop for ``airdrop``
        """
        self.settings = settings or Settings()
        self._operations = operations
        self._binder = binder
        self._farmer_factory = farmer_factory

    @property
    def operations(self) -> LifecycleOperations:
        """The lifecycle backend, loaded on first access."""
        if self._operations is None:
            self._operations = load_operations(self.settings.operations)
        return self._operations

    @staticmethod
    def resolve_command(command: str | CommandName) -> CommandName:
        """Map a command name to its enum member."""
        try:
            return CommandName(command)
        except ValueError as e:
            raise ValidationError("command", f"Unknown command: {command}", value=str(command)) from e

    def build_request(
        self,
        command: str | CommandName,
        options: Mapping[str, Any],
    ) -> Optional[OperationRequest]:
        """
        Validate options and build the operation request.

        Fields are checked in the order of the command's
        ``required_options``; the first failure is raised.

        Returns:
            The request, or ``None`` for ``airdrop`` which takes none

        Raises:
            ValidationError: If a required option is missing or malformed
        """
        name = self.resolve_command(command)

        if name == CommandName.AIRDROP:
            return None
        if name == CommandName.CONFIG:
            return ConfigureRequest(config=self.settings.launch_config)
        if name == CommandName.LAUNCH:
            return LaunchRequest(metadata=self.settings.token)

        fields = {}
        for option in COMMAND_SPECS[name].required_options:
            fields[option] = FIELD_PARSERS[option](options.get(option))
        return REQUEST_TYPES[name](**fields)

    def build_faucet_settings(self, options: Mapping[str, Any]) -> FaucetSettings:
        """
        Merge airdrop options over the settings file's faucet section.

        Raises:
            ValidationError: If the amount is not positive or the backoff
                is negative
        """
        faucet = self.settings.faucet
        overrides = {
            field: options[option]
            for field, option in FAUCET_OPTIONS.items()
            if options.get(option) is not None
        }
        try:
            merged = FaucetSettings.model_validate({**faucet.model_dump(), **overrides})
        except PydanticValidationError as e:
            option = FAUCET_OPTIONS.get(str(e.errors()[0]["loc"][0]), "funding_sol")
            raise ValidationError(option, FIELD_ERRORS[option], value=str(options.get(option))) from e

        if round(merged.amount_sol * LAMPORTS_PER_SOL) < 1:
            raise ValidationError(
                "funding_sol", FIELD_ERRORS["funding_sol"], value=str(merged.amount_sol)
            )
        return merged

    def bind_context(self, options: Mapping[str, Any]) -> ClusterContext:
        """Bind the cluster from options, falling back to settings."""
        return self._binder(
            options.get("env") or self.settings.env,
            options.get("rpc") or self.settings.rpc,
            options.get("keypair") or self.settings.keypair,
        )

    async def dispatch(
        self,
        command: str | CommandName,
        options: Mapping[str, Any],
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Run one command end to end.

        Args:
            command: Command name
            options: Operator options (env, rpc, keypair and command fields)
            cancel: Stops the ``airdrop`` loop when set

        Returns:
            The operation's result, or final farmer stats for ``airdrop``

        Raises:
            ValidationError: Rejected options; nothing was invoked
            IdentityLoadError: Keypair could not be loaded
            OperationError: The lifecycle operation failed
        """
        name = self.resolve_command(command)
        request = self.build_request(name, options)

        if name == CommandName.AIRDROP:
            faucet = self.build_faucet_settings(options)
            operations = None
        else:
            operations = self.operations

        context = self.bind_context(options)
        try:
            logger.debug(
                f"{name.value} on {context.environment.value} ({context.rpc_endpoint}) "
                f"as {context.public_key}"
            )
            if name == CommandName.AIRDROP:
                return await self._run_airdrop(context, faucet, options, cancel)
            return await self._invoke(operations, name, context, request)
        finally:
            await context.close()

    async def _invoke(
        self,
        operations: LifecycleOperations,
        name: CommandName,
        context: ClusterContext,
        request: OperationRequest,
    ) -> Any:
        method = getattr(operations, OPERATION_METHODS[name])
        try:
            result = await method(context, request)
        except OperationError:
            raise
        except CurveCtlError as e:
            raise OperationError(name.value, e.message) from e
        except Exception as e:
            raise OperationError(name.value, f"{type(e).__name__}: {e}") from e

        logger.info(f"{name.value} completed" + (f": {result}" if result is not None else ""))
        return result

    async def _run_airdrop(
        self,
        context: ClusterContext,
        faucet: FaucetSettings,
        options: Mapping[str, Any],
        cancel: Optional[asyncio.Event],
    ) -> Any:
        farmer = self._farmer_factory(
            context,
            funding_lamports=round(faucet.amount_sol * LAMPORTS_PER_SOL),
            backoff_seconds=faucet.backoff_seconds,
        )
        return await farmer.run(cancel=cancel, max_iterations=options.get("max_iterations"))
