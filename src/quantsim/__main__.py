import logging
import sys

import click
from pydantic import ValidationError

from quantsim.analysis.simulation import kelly_analysis, simulate_heston, simulate_merton
from quantsim.analysis.variates import make_source
from quantsim.config import Settings
from quantsim.errors import QuantSimError
from quantsim.logging_config import setup_logging
from quantsim.schemas import HestonParameters, KellyParameters, MertonParameters

logger = logging.getLogger(__name__)


def _emit(result, full: bool):
    """Print a result bundle as JSON, without full paths unless asked."""
    exclude = None if full else {"paths"}
    click.echo(result.model_dump_json(indent=2, exclude=exclude))


def _run(build, run):
    try:
        params = build()
    except ValidationError as e:
        click.echo(f"Invalid parameters:\n{e}", err=True)
        sys.exit(2)
    try:
        return run(params)
    except QuantSimError as e:
        click.echo(f"Simulation failed: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """quantsim - Heston, Merton and Kelly simulation engine"""
    setup_logging()
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.option("--s0", type=float, default=100.0, show_default=True, help="Initial stock price")
@click.option("--v0", type=float, default=0.04, show_default=True, help="Initial variance")
@click.option("--r", type=float, default=0.05, show_default=True, help="Risk-free rate")
@click.option("--kappa", type=float, default=2.0, show_default=True, help="Mean reversion speed")
@click.option("--theta", type=float, default=0.04, show_default=True, help="Long-run variance")
@click.option("--sigma", type=float, default=0.3, show_default=True, help="Volatility of variance")
@click.option("--rho", type=float, default=-0.7, show_default=True, help="Shock correlation")
@click.option("--t", type=float, default=1.0, show_default=True, help="Horizon in years")
@click.option("--steps", type=int, default=252, show_default=True)
@click.option("--paths", "num_paths", type=int, default=100, show_default=True)
@click.option("--strike", type=float, default=None, help="Option strike (default: at the money)")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--full", is_flag=True, help="Include display paths in the output")
def heston(seed: int | None, full: bool, **fields):
    """Simulate the Heston stochastic volatility model."""
    result = _run(
        lambda: HestonParameters(**fields),
        lambda params: simulate_heston(params, make_source(seed), Settings()),
    )
    _emit(result, full)


@cli.command()
@click.option("--s0", type=float, default=100.0, show_default=True, help="Initial stock price")
@click.option("--r", type=float, default=0.05, show_default=True, help="Risk-free rate")
@click.option("--sigma", type=float, default=0.2, show_default=True, help="Diffusion volatility")
@click.option("--lam", type=float, default=0.1, show_default=True, help="Jumps per year")
@click.option("--mu-j", "mu_j", type=float, default=-0.1, show_default=True, help="Mean log-jump")
@click.option("--sigma-j", "sigma_j", type=float, default=0.15, show_default=True,
              help="Log-jump volatility")
@click.option("--t", type=float, default=1.0, show_default=True, help="Horizon in years")
@click.option("--steps", type=int, default=252, show_default=True)
@click.option("--paths", "num_paths", type=int, default=100, show_default=True)
@click.option("--strike", type=float, default=100.0, show_default=True)
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--full", is_flag=True, help="Include display paths in the output")
def merton(seed: int | None, full: bool, **fields):
    """Simulate the Merton jump-diffusion model."""
    result = _run(
        lambda: MertonParameters(**fields),
        lambda params: simulate_merton(params, make_source(seed), Settings()),
    )
    _emit(result, full)


@cli.command()
@click.option("--win-prob", "win_prob", type=float, default=0.55, show_default=True)
@click.option("--win-ratio", "win_ratio", type=float, default=1.0, show_default=True)
@click.option("--loss-ratio", "loss_ratio", type=float, default=1.0, show_default=True)
@click.option("--capital", "initial_capital", type=float, default=10000.0, show_default=True)
@click.option("--bets", "num_bets", type=int, default=100, show_default=True)
@click.option("--runs", "num_simulations", type=int, default=10, show_default=True,
              help="Runs averaged per strategy")
@click.option("--seed", type=int, default=None, help="Random seed")
def kelly(seed: int | None, **fields):
    """Kelly fraction and strategy comparison."""
    result = _run(
        lambda: KellyParameters(**fields),
        lambda params: kelly_analysis(params, make_source(seed)),
    )
    _emit(result, full=True)


if __name__ == "__main__":
    cli()
