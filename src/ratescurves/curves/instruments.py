"""
Curve instruments for bootstrapping.

Defines the market instruments used to build yield curves:
- Ois: Overnight Index Swaps (single or multi-period)
- Irs: Fixed-vs-floating interest rate swaps
- Fra: Forward Rate Agreements
- Future: Interest rate futures quoted as 100 - rate

Each instrument knows how to:
1. Report the pillar maturity it determines
2. Report its market rate
3. Express "this discount factor reprices my quote" as a residual
   f(DF) = implied_rate(DF) - market_rate, given a lookup over the
   already-solved part of the curve

Times are year fractions; rates are decimals.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, ClassVar, List, Tuple

import numpy as np

from ..errors import InstrumentValidationError

# Discount factor lookup over already-solved pillars
PartialCurveFn = Callable[[float], float]

# Step for finite-difference residual derivatives
FD_STEP = 1e-8

# Slack when counting periods so exact multiples are not rounded up
_PERIOD_SLACK = 1e-9


class Frequency(Enum):
    """Payment frequency (payments per year)."""
    ANNUAL = 1
    SEMI_ANNUAL = 2
    QUARTERLY = 4
    MONTHLY = 12
    DAILY = 365

    @property
    def payments_per_year(self) -> int:
        return self.value

    @property
    def period_years(self) -> float:
        """Length of one accrual period in years."""
        return 1.0 / self.value

    @classmethod
    def from_string(cls, s: str) -> "Frequency":
        """Parse frequency from string representation."""
        mapping = {
            "ANNUAL": cls.ANNUAL,
            "1Y": cls.ANNUAL,
            "SEMI": cls.SEMI_ANNUAL,
            "SEMIANNUAL": cls.SEMI_ANNUAL,
            "6M": cls.SEMI_ANNUAL,
            "QUARTERLY": cls.QUARTERLY,
            "3M": cls.QUARTERLY,
            "MONTHLY": cls.MONTHLY,
            "1M": cls.MONTHLY,
            "DAILY": cls.DAILY,
            "1D": cls.DAILY,
        }
        key = s.upper().replace("_", "").replace("-", "").replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown frequency: {s}")


class CurveInstrument(ABC):
    """
    Abstract base for curve construction instruments.

    Concrete instruments are frozen dataclasses exposing ``maturity``
    (the pillar time they determine) and ``rate`` (the market rate).
    """
    instrument_type: ClassVar[str] = ""

    @abstractmethod
    def implied_rate(self, df: float, partial_curve: PartialCurveFn) -> float:
        """
        Rate implied by a trial discount factor at maturity.

        Args:
            df: Trial discount factor at the instrument's maturity
            partial_curve: DF lookup over already-solved pillars

        Returns:
            Implied rate in the instrument's quoting convention
        """

    @abstractmethod
    def with_rate_bump(self, bump: float) -> "CurveInstrument":
        """Return a copy with the market rate shifted by ``bump``."""

    def start_time(self) -> float:
        """Start of the accrual period (0 except for forward-starting instruments)."""
        return 0.0

    def residual(self, df: float, partial_curve: PartialCurveFn) -> float:
        """implied_rate(df) - market rate; zero at the bootstrapped DF."""
        return self.implied_rate(df, partial_curve) - self.rate

    def residual_derivative(self, df: float, partial_curve: PartialCurveFn) -> float:
        """d(residual)/d(df), by central finite difference unless overridden."""
        return self._numerical_residual_derivative(df, partial_curve)

    def _numerical_residual_derivative(
        self, df: float, partial_curve: PartialCurveFn
    ) -> float:
        r_up = self.residual(df + FD_STEP, partial_curve)
        r_down = self.residual(df - FD_STEP, partial_curve)
        return (r_up - r_down) / (2.0 * FD_STEP)

    def validate(self, max_maturity: float) -> None:
        """
        Check instrument data.

        Raises:
            InstrumentValidationError: If maturity is non-positive or
                beyond max_maturity, or the instrument's own checks fail
        """
        mat = self.maturity
        if not mat > 0:
            raise InstrumentValidationError(
                self.instrument_type, f"maturity must be positive, got {mat}"
            )
        if mat > max_maturity:
            raise InstrumentValidationError(
                self.instrument_type, f"maturity {mat} exceeds maximum {max_maturity}"
            )


class _SwapInstrument(CurveInstrument):
    """Shared par-rate logic for OIS and IRS."""

    def _schedule_frequency(self) -> Frequency:
        raise NotImplementedError

    def period_count(self) -> int:
        """Number of fixed-leg periods, counting a final stub as a period."""
        ppy = self._schedule_frequency().payments_per_year
        n = int(np.ceil(float(self.maturity) * ppy - _PERIOD_SLACK))
        return max(n, 1)

    def accrual_schedule(self) -> List[Tuple[float, float]]:
        """
        Fixed-leg payment times and accrual fractions.

        Regular periods run forward from t=0; the last period ends at
        maturity and may be a short stub.

        Returns:
            List of (payment_time, accrual_fraction)
        """
        dt = self._schedule_frequency().period_years
        n = self.period_count()
        schedule = []
        for i in range(1, n):
            t_i = dt * i
            if t_i < self.maturity:
                schedule.append((t_i, dt))
        schedule.append((self.maturity, self.maturity - dt * (n - 1)))
        return schedule

    def implied_rate(self, df: float, partial_curve: PartialCurveFn) -> float:
        """
        Par swap rate with the final DF as unknown.

        Single period:  R = (1/DF(T) - 1) / T
        Multi-period:   R = (1 - DF(T)) / sum(delta_i * DF(T_i))
        """
        schedule = self.accrual_schedule()
        if len(schedule) == 1:
            return (1.0 / df - 1.0) / self.maturity

        annuity = 0.0
        for t_i, tau in schedule[:-1]:
            annuity = annuity + partial_curve(t_i) * tau
        annuity = annuity + df * schedule[-1][1]

        if annuity <= 0:
            return 0.0
        return (1.0 - df) / annuity

    def residual_derivative(self, df: float, partial_curve: PartialCurveFn) -> float:
        if self.period_count() == 1:
            return -1.0 / (df * df * self.maturity)
        return self._numerical_residual_derivative(df, partial_curve)


@dataclass(frozen=True)
class Ois(_SwapInstrument):
    """
    Overnight Index Swap.

    Fixed leg pays at ``payment_frequency``; the compounded overnight leg
    is worth 1 - DF(T) under self-discounting.

    Attributes:
        maturity: Swap maturity in years
        rate: Par fixed rate (decimal)
        payment_frequency: Fixed-leg payment frequency
    """
    maturity: float
    rate: float
    payment_frequency: Frequency = Frequency.ANNUAL

    instrument_type: ClassVar[str] = "OIS"

    def _schedule_frequency(self) -> Frequency:
        return self.payment_frequency

    def with_rate_bump(self, bump: float) -> "Ois":
        return replace(self, rate=self.rate + bump)


@dataclass(frozen=True)
class Irs(_SwapInstrument):
    """
    Fixed-vs-floating interest rate swap.

    The par rate is computed on the fixed-leg schedule; the floating
    frequency is carried for consumers that project the float leg.

    Attributes:
        maturity: Swap maturity in years
        rate: Par fixed rate (decimal)
        fixed_frequency: Fixed-leg payment frequency
        float_frequency: Floating-leg payment frequency
    """
    maturity: float
    rate: float
    fixed_frequency: Frequency = Frequency.ANNUAL
    float_frequency: Frequency = Frequency.QUARTERLY

    instrument_type: ClassVar[str] = "IRS"

    def _schedule_frequency(self) -> Frequency:
        return self.fixed_frequency

    def with_rate_bump(self, bump: float) -> "Irs":
        return replace(self, rate=self.rate + bump)


@dataclass(frozen=True)
class Fra(CurveInstrument):
    """
    Forward Rate Agreement.

    FRA rate: F = (DF(T1)/DF(T2) - 1) / tau, tau = T2 - T1.
    The pillar it determines is T2; DF(T1) comes from the partial curve.
    """
    start: float
    end: float
    rate: float

    instrument_type: ClassVar[str] = "FRA"

    @property
    def maturity(self) -> float:
        return self.end

    def start_time(self) -> float:
        return self.start

    def implied_rate(self, df: float, partial_curve: PartialCurveFn) -> float:
        df_start = partial_curve(self.start)
        tau = self.end - self.start
        return (df_start / df - 1.0) / tau

    def residual_derivative(self, df: float, partial_curve: PartialCurveFn) -> float:
        df_start = partial_curve(self.start)
        tau = self.end - self.start
        return -df_start / (df * df * tau)

    def with_rate_bump(self, bump: float) -> "Fra":
        return replace(self, rate=self.rate + bump)

    def validate(self, max_maturity: float) -> None:
        super().validate(max_maturity)
        if self.start >= self.end:
            raise InstrumentValidationError(
                self.instrument_type,
                f"start {self.start} must be before end {self.end}",
            )
        if self.start < 0:
            raise InstrumentValidationError(
                self.instrument_type, f"start must be non-negative, got {self.start}"
            )


@dataclass(frozen=True)
class Future(CurveInstrument):
    """
    Interest rate future (e.g., SOFR future).

    Quote is 100 - rate (in percentage points). The market rate used for
    bootstrapping is the futures rate less the convexity adjustment.
    """
    maturity: float
    price: float
    convexity_adjustment: float = 0.0

    instrument_type: ClassVar[str] = "Future"

    @classmethod
    def from_rate(
        cls, maturity: float, rate: float, convexity_adjustment: float = 0.0
    ) -> "Future":
        """Create a future from a rate instead of a price."""
        return cls(maturity, 100.0 - rate * 100.0, convexity_adjustment)

    @property
    def rate(self) -> float:
        return (100.0 - self.price) / 100.0 - self.convexity_adjustment

    def implied_rate(self, df: float, partial_curve: PartialCurveFn) -> float:
        return (1.0 / df - 1.0) / self.maturity + self.convexity_adjustment

    def residual_derivative(self, df: float, partial_curve: PartialCurveFn) -> float:
        return -1.0 / (df * df * self.maturity)

    def with_rate_bump(self, bump: float) -> "Future":
        # Rate up -> price down
        return replace(self, price=self.price - bump * 100.0)

    def validate(self, max_maturity: float) -> None:
        super().validate(max_maturity)
        if not 0.0 < self.price < 200.0:
            raise InstrumentValidationError(
                self.instrument_type,
                f"price {self.price} is unreasonable (expected 0-200)",
            )


__all__ = [
    "Frequency",
    "PartialCurveFn",
    "CurveInstrument",
    "Ois",
    "Irs",
    "Fra",
    "Future",
    "FD_STEP",
]
