"""Exception taxonomy for the simulation engine."""


class QuantSimError(Exception):
    """Base class for all engine errors."""


class InvalidParameterError(QuantSimError, ValueError):
    """A parameter lies outside its valid domain; nothing was simulated."""


class NumericalDegeneracyError(QuantSimError, ArithmeticError):
    """A closed-form formula is undefined at the given inputs.

    Raised instead of letting NaN or infinity leak into results, e.g. a
    Black-Scholes price with zero total volatility or a growth rate whose
    fraction risks total ruin in one bet.
    """


class SimulationAborted(QuantSimError):
    """The caller asked a batch to stop before all paths were simulated."""
