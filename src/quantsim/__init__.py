"""Stochastic simulation and pricing engine for the Heston, Merton and Kelly explainers."""

from quantsim.analysis.simulation import kelly_analysis, simulate_heston, simulate_merton
from quantsim.schemas import HestonParameters, KellyParameters, MertonParameters

__all__ = [
    "simulate_heston",
    "simulate_merton",
    "kelly_analysis",
    "HestonParameters",
    "MertonParameters",
    "KellyParameters",
]
