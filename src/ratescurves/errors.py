"""
Exception hierarchy for curve construction and risk.

Every exception subclasses CurveError (itself a ValueError) and keeps the
numeric context of the failure as attributes, so callers can branch on
the failure kind without parsing messages.

Taxonomy:
- InstrumentValidationError: bad maturity, malformed FRA window, bad future price
- CurveConstructionError: inconsistent pillar arrays or out-of-order appends
- OutOfBoundsError / InvalidMaturityError: curve queries outside the domain
- BootstrapError and subclasses: solver failures during bootstrapping
"""

from typing import Dict, Optional


class CurveError(ValueError):
    """Base class for all library errors."""


class InstrumentValidationError(CurveError):
    """
    Raised when a market instrument fails validation.

    Attributes:
        instrument_type: "OIS", "IRS", "FRA" or "Future"
        reason: Human-readable reason
        index: Position of the instrument in the caller's list (if known)
    """

    def __init__(self, instrument_type: str, reason: str, index: Optional[int] = None):
        self.instrument_type = instrument_type
        self.reason = reason
        self.index = index
        prefix = f"{instrument_type}" if index is None else f"{instrument_type} (input {index})"
        super().__init__(f"Invalid {prefix}: {reason}")

    def with_index(self, index: int) -> "InstrumentValidationError":
        """Return a copy tagged with the input index."""
        return InstrumentValidationError(self.instrument_type, self.reason, index)


class CurveConstructionError(CurveError):
    """Raised when pillar data cannot form a valid curve."""


class InvalidMaturityError(CurveError):
    """Raised for negative query times."""

    def __init__(self, t: float):
        self.t = t
        super().__init__(f"Invalid maturity {t}: time must be non-negative")


class OutOfBoundsError(CurveError):
    """Raised when a query falls outside the pillar range and extrapolation is off."""

    def __init__(self, t: float, t_min: float, t_max: float):
        self.t = t
        self.t_min = t_min
        self.t_max = t_max
        super().__init__(
            f"Time {t} outside curve domain [{t_min}, {t_max}] and extrapolation is disabled"
        )


class BootstrapError(CurveError):
    """
    Bootstrap failure.

    Raised directly when there is nothing to bootstrap; subclasses cover
    the individual solver failure modes.
    """

    @classmethod
    def insufficient_data(cls, required: int, provided: int) -> "BootstrapError":
        err = cls(f"Insufficient instruments: need at least {required}, got {provided}")
        err.required = required
        err.provided = provided
        return err


class ConvergenceError(BootstrapError):
    """
    Root finding failed for one instrument.

    Attributes:
        index: Position in the maturity-sorted instrument list
        maturity: Pillar maturity being solved
        residual: Last residual observed
        iterations: Iterations spent
    """

    def __init__(self, index: int, maturity: float, residual: float, iterations: int):
        self.index = index
        self.maturity = maturity
        self.residual = residual
        self.iterations = iterations
        super().__init__(
            f"Failed to converge for instrument {index} at maturity {maturity}: "
            f"residual = {residual:.3e} after {iterations} iterations"
        )


class DuplicateMaturityError(BootstrapError):
    """Two instruments determine the same pillar."""

    def __init__(self, maturity: float):
        self.maturity = maturity
        super().__init__(f"Duplicate maturity detected: {maturity}")


class NegativeRateError(BootstrapError):
    """Solved pillar implies a negative zero rate while those are disallowed."""

    def __init__(self, maturity: float, rate: float):
        self.maturity = maturity
        self.rate = rate
        super().__init__(f"Negative rate detected at maturity {maturity}: rate = {rate:.6g}")


class ArbitrageError(BootstrapError):
    """Solved discount factor is not below the previous pillar's."""

    def __init__(self, maturity: float):
        self.maturity = maturity
        super().__init__(
            f"Arbitrage detected: discount factor not monotonically decreasing at maturity {maturity}"
        )


class BatchBuildError(BootstrapError):
    """
    One or more elements of a batch build failed.

    Attributes:
        errors: Mapping of batch index -> exception raised by that element
    """

    def __init__(self, errors: Dict[int, Exception]):
        self.errors = dict(errors)
        failed = ", ".join(str(i) for i in sorted(self.errors))
        super().__init__(f"{len(self.errors)} batch element(s) failed: [{failed}]")


__all__ = [
    "CurveError",
    "InstrumentValidationError",
    "CurveConstructionError",
    "InvalidMaturityError",
    "OutOfBoundsError",
    "BootstrapError",
    "ConvergenceError",
    "DuplicateMaturityError",
    "NegativeRateError",
    "ArbitrageError",
    "BatchBuildError",
]
