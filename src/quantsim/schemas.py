"""Pydantic schemas for engine inputs and outputs.

Parameter records are immutable and validated on construction; result
bundles are plain structured data for whatever front end renders them.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quantsim.errors import InvalidParameterError


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


# --- Parameter records ---


class HestonParameters(FrozenModel):
    s0: float = Field(100.0, gt=0, description="Initial stock price")
    v0: float = Field(0.04, gt=0, description="Initial variance")
    r: float = Field(0.05, description="Risk-free rate")
    kappa: float = Field(2.0, gt=0, description="Speed of mean reversion")
    theta: float = Field(0.04, gt=0, description="Long-run variance")
    sigma: float = Field(0.3, gt=0, description="Volatility of variance")
    rho: float = Field(-0.7, gt=-1, lt=1, description="Price/variance shock correlation")
    t: float = Field(1.0, gt=0, description="Horizon in years")
    steps: int = Field(252, ge=1, description="Time steps over the horizon")
    num_paths: int = Field(100, ge=1, description="Monte Carlo paths")
    strike: float | None = Field(
        None, gt=0, description="Option strike; None prices at the money (strike = s0)"
    )

    @property
    def effective_strike(self) -> float:
        return self.s0 if self.strike is None else self.strike


class MertonParameters(FrozenModel):
    s0: float = Field(100.0, gt=0, description="Initial stock price")
    r: float = Field(0.05, description="Risk-free rate")
    sigma: float = Field(0.2, gt=0, description="Diffusion volatility")
    lam: float = Field(0.1, ge=0, description="Jump intensity (jumps per year)")
    mu_j: float = Field(-0.1, description="Mean log-jump size")
    sigma_j: float = Field(0.15, ge=0, description="Log-jump size volatility")
    t: float = Field(1.0, gt=0, description="Horizon in years")
    steps: int = Field(252, ge=1, description="Time steps over the horizon")
    num_paths: int = Field(100, ge=1, description="Monte Carlo paths")
    strike: float = Field(100.0, gt=0, description="Option strike")


class KellyParameters(FrozenModel):
    win_prob: float = Field(0.55, ge=0, le=1, description="Probability of winning a bet")
    win_ratio: float = Field(1.0, gt=0, description="Payout multiple on a win")
    loss_ratio: float = Field(1.0, gt=0, description="Stake multiple lost on a loss")
    initial_capital: float = Field(10000.0, gt=0)
    num_bets: int = Field(100, ge=1)
    num_simulations: int = Field(10, ge=1, description="Runs averaged per strategy")


def validated(params: FrozenModel) -> FrozenModel:
    """Re-run validation on a record, e.g. one built with ``model_construct``."""
    try:
        return type(params).model_validate(params.model_dump())
    except ValidationError as e:
        raise InvalidParameterError(str(e)) from e


# --- Path schemas ---


class PathPoint(FrozenModel):
    time: float
    price: float
    variance: float | None = None
    jump: bool = False
    jump_size: float = 0.0
    jump_count: int = 0
    diffusion: float | None = Field(None, description="Diffusion log-return σ·dW of the step")


class JumpEvent(FrozenModel):
    path: int = Field(description="Index of the path within the batch")
    time: float
    price: float = Field(description="Price after the step's jumps")
    jump_size: float = Field(description="Summed log-jump size within the step")
    jump_count: int


class HistogramBin(FrozenModel):
    lower: float
    upper: float
    count: int
    frequency: float


# --- Result bundles ---


class StatisticsBundle(FrozenModel):
    num_paths: int
    mean: float
    std: float
    strike: float
    call_price: float
    put_price: float
    call_stderr: float
    put_stderr: float
    bs_call_price: float
    bs_put_price: float
    diagnostics: dict[str, float] = Field(default_factory=dict)


class HestonResult(FrozenModel):
    paths: list[list[PathPoint]]
    statistics: StatisticsBundle


class MertonResult(FrozenModel):
    paths: list[list[PathPoint]]
    jumps: list[JumpEvent]
    distribution: list[HistogramBin]
    jump_distribution: list[HistogramBin]
    results: StatisticsBundle


class StrategyResult(FrozenModel):
    name: str
    fraction: float
    trajectory: list[float]
    growth_rate: float | None = Field(
        description="Expected log-growth per bet; None if the fraction risks ruin in one bet"
    )
    ruined_runs: int


class KellyResult(FrozenModel):
    optimal_fraction: float
    growth_rate: float
    strategies: dict[str, StrategyResult]
