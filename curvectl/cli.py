"""CLI entry point for curvectl.

Usage:
    curvectl airdrop
    curvectl config -e devnet -k ~/.config/solana/id.json
    curvectl launch
    curvectl swap -t FpE6ndGpMGaPqh56vig1xDtAkGhNQSZb6hFEyyBQYd8G -a 1000000000 -s 0
    curvectl migrate -t FpE6ndGpMGaPqh56vig1xDtAkGhNQSZb6hFEyyBQYd8G
    curvectl withdraw -t FpE6ndGpMGaPqh56vig1xDtAkGhNQSZb6hFEyyBQYd8G
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .core.config import Settings, reload_settings
from .core.exceptions import CurveCtlError, ValidationError
from .core.types import CommandName
from .router import CommandRouter

# Initialize app
app = typer.Typer(
    name="curvectl",
    help="Bonding-curve launchpad operator CLI",
    add_completion=False,
)

console = Console()

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

# Options shared by every command
ENV_OPTION = typer.Option(
    None,
    "--env", "-e",
    help="Solana cluster env name: mainnet-beta, testnet, devnet [default: devnet]",
)
RPC_OPTION = typer.Option(
    None,
    "--rpc", "-r",
    help="Solana cluster RPC URL [default: the cluster's public endpoint]",
)
KEYPAIR_OPTION = typer.Option(
    None,
    "--keypair", "-k",
    help="Solana wallet keypair path [default: ~/.config/solana/id.json]",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config", "-c",
    help="Settings file [default: ./curvectl.yaml if present]",
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose", "-v",
    help="Enable verbose logging",
)
TOKEN_OPTION = typer.Option(None, "--token", "-t", help="Token mint address")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def build_router(settings: Settings) -> CommandRouter:
    """Create the router for one invocation."""
    return CommandRouter(settings=settings)


def _run(command: CommandName, options: dict[str, Any], config: Optional[Path], verbose: bool) -> Any:
    """Run one command inside the CLI error boundary."""
    setup_logging(verbose)

    try:
        settings = reload_settings(config)
        router = build_router(settings)
        return asyncio.run(router.dispatch(command, options))

    except ValidationError as e:
        console.print(f"[red]{escape(e.message)}[/]")
        raise typer.Exit(EXIT_ERROR)

    except CurveCtlError as e:
        console.print(f"[red]Error: {escape(str(e))}[/]")
        if verbose:
            console.print_exception()
        raise typer.Exit(EXIT_ERROR)

    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/]")
        raise typer.Exit(EXIT_INTERRUPTED)

    except Exception as e:
        console.print(f"[red]Error: {escape(f'{type(e).__name__}: {e}')}[/]")
        if verbose:
            console.print_exception()
        raise typer.Exit(EXIT_ERROR)


@app.command()
def airdrop(
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    amount: Optional[float] = typer.Option(
        None,
        "--amount", "-a",
        help="SOL requested from the faucet per attempt [default: 5]",
    ),
    backoff: Optional[float] = typer.Option(
        None,
        "--backoff",
        help="Seconds to wait after a failed attempt [default: 1]",
    ),
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Farm the faucet into the primary wallet until interrupted.

    Each round funds a fresh throwaway keypair, waits for the airdrop to
    finalize and sweeps 95% of it to the wallet given by --keypair.
    """
    options = {
        "env": env,
        "rpc": rpc,
        "keypair": keypair,
        "funding_sol": amount,
        "backoff": backoff,
    }
    _run(CommandName.AIRDROP, options, config, verbose)


@app.command("config")
def config_command(
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Write the global launchpad configuration.

    Parameters come from the launch_config section of the settings file.
    """
    _run(CommandName.CONFIG, {"env": env, "rpc": rpc, "keypair": keypair}, config, verbose)


@app.command()
def launch(
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a token and its bonding curve."""
    _run(CommandName.LAUNCH, {"env": env, "rpc": rpc, "keypair": keypair}, config, verbose)


@app.command()
def swap(
    token: Optional[str] = TOKEN_OPTION,
    amount: Optional[str] = typer.Option(None, "--amount", "-a", help="Swap amount in base units"),
    style: Optional[str] = typer.Option(None, "--style", "-s", help="0: buy token, 1: sell token"),
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Buy or sell a token against its bonding curve.

    Examples:
        curvectl swap -t <MINT> -a 1000000000 -s 0
    """
    options = {
        "env": env,
        "rpc": rpc,
        "keypair": keypair,
        "token": token,
        "amount": amount,
        "style": style,
    }
    _run(CommandName.SWAP, options, config, verbose)


@app.command()
def migrate(
    token: Optional[str] = TOKEN_OPTION,
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Migrate a completed bonding curve to the AMM."""
    options = {"env": env, "rpc": rpc, "keypair": keypair, "token": token}
    _run(CommandName.MIGRATE, options, config, verbose)


@app.command()
def withdraw(
    token: Optional[str] = TOKEN_OPTION,
    env: Optional[str] = ENV_OPTION,
    rpc: Optional[str] = RPC_OPTION,
    keypair: Optional[str] = KEYPAIR_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Withdraw bonding curve proceeds."""
    options = {"env": env, "rpc": rpc, "keypair": keypair, "token": token}
    _run(CommandName.WITHDRAW, options, config, verbose)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"curvectl v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
