"""
Yield curve representation and operations.

The Curve class provides:
- Discount factor P(0,t)
- Zero rate z(t)
- Forward rate f(t1, t2)
- Instantaneous forward rate f(t)

Internal representation is a strictly increasing list of pillar times
(year fractions) with their discount factors. P(0,0) = 1 is implicit and
not stored. Between pillars the configured interpolation method applies;
outside them the curve extrapolates at the flat zero rate of the nearest
pillar, or raises if extrapolation is disabled.
"""

import logging
from bisect import bisect_right
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..config import InterpolationMethod
from ..errors import CurveConstructionError, InvalidMaturityError, OutOfBoundsError
from .interpolation import Interpolator, create_interpolator

logger = logging.getLogger(__name__)

# Queries this close to a pillar return the stored DF
PILLAR_TOLERANCE = 1e-12

# Step for the central difference behind instantaneous_forward
_FORWARD_STEP = 1e-6


class Curve:
    """
    Yield curve built from (maturity, discount factor) pillars.

    Attributes:
        interpolation: Interpolation method between pillars
        allow_extrapolation: Whether queries beyond the pillars are answered

    Conventions:
        - Zero rates are continuously compounded
        - Forward rates are simply compounded
        - Times are year fractions
        - Discount factor at t=0 is 1.0
    """

    def __init__(
        self,
        pillars: Optional[Sequence[float]] = None,
        discount_factors: Optional[Sequence[float]] = None,
        interpolation: Union[InterpolationMethod, str] = InterpolationMethod.LOG_LINEAR,
        allow_extrapolation: bool = True
    ):
        if isinstance(interpolation, str):
            interpolation = InterpolationMethod.from_string(interpolation)
        self.interpolation = interpolation
        self.allow_extrapolation = allow_extrapolation

        self._pillars: List[float] = []
        self._dfs: List[float] = []
        self._interpolator: Optional[Interpolator] = None
        self._is_fitted = False

        pillars = list(pillars) if pillars is not None else []
        discount_factors = list(discount_factors) if discount_factors is not None else []
        if len(pillars) != len(discount_factors):
            raise CurveConstructionError(
                f"Pillar count ({len(pillars)}) must match discount factor count "
                f"({len(discount_factors)})"
            )
        for i, (t, df) in enumerate(zip(pillars, discount_factors)):
            if self._pillars and not t > self._pillars[-1]:
                raise CurveConstructionError(
                    f"Pillars must be strictly increasing (at index {i})"
                )
            if not df > 0:
                raise CurveConstructionError(f"Discount factor at index {i} must be positive")
            self.add_pillar(t, df)

    @classmethod
    def from_pillars(
        cls,
        pillars: Sequence[float],
        discount_factors: Sequence[float],
        interpolation: Union[InterpolationMethod, str] = InterpolationMethod.LOG_LINEAR,
        allow_extrapolation: bool = True
    ) -> "Curve":
        """
        Create a curve from complete pillar data.

        Raises:
            CurveConstructionError: If no pillars are given, lengths differ,
                pillars are not strictly increasing or a DF is non-positive
        """
        if len(pillars) == 0 and len(discount_factors) == 0:
            raise CurveConstructionError("Cannot create curve with no pillars")
        return cls(pillars, discount_factors, interpolation, allow_extrapolation)

    def add_pillar(self, maturity: float, discount_factor: float) -> None:
        """
        Append a pillar.

        Pillars are append-only: the maturity must be strictly greater
        than the current last pillar.

        Raises:
            CurveConstructionError: On non-positive input or out-of-order maturity
        """
        if not maturity > 0:
            raise CurveConstructionError(f"Maturity must be positive, got {maturity}")
        if not discount_factor > 0:
            raise CurveConstructionError(
                f"Discount factor must be positive, got {discount_factor}"
            )
        if self._pillars and not maturity > self._pillars[-1]:
            raise CurveConstructionError(
                f"New maturity {maturity} must be greater than last maturity {self._pillars[-1]}"
            )

        self._pillars.append(maturity)
        self._dfs.append(discount_factor)
        self._is_fitted = False

    @property
    def pillars(self) -> List[float]:
        """Pillar maturities (copy)."""
        return list(self._pillars)

    @property
    def discount_factors_at_pillars(self) -> List[float]:
        """Pillar discount factors (copy)."""
        return list(self._dfs)

    def pillar_count(self) -> int:
        return len(self._pillars)

    @property
    def min_maturity(self) -> float:
        return self._pillars[0] if self._pillars else 0.0

    @property
    def max_maturity(self) -> float:
        return self._pillars[-1] if self._pillars else 0.0

    def domain(self) -> Tuple[float, float]:
        """(first pillar, last pillar)."""
        return (self.min_maturity, self.max_maturity)

    def discount_factor(self, t: float) -> float:
        """
        Get discount factor P(0,t).

        Args:
            t: Year fraction

        Returns:
            Discount factor

        Raises:
            InvalidMaturityError: If t < 0
            OutOfBoundsError: If t is outside the pillar range and
                extrapolation is disabled
            CurveConstructionError: If the curve has no pillars
        """
        if t < 0:
            raise InvalidMaturityError(t)
        if t == 0:
            return 1.0
        if not self._pillars:
            raise CurveConstructionError("Curve has no pillars")

        idx = bisect_right(self._pillars, t) - 1

        # Exact-pillar guarantee
        for j in (idx, idx + 1):
            if 0 <= j < len(self._pillars) and abs(t - self._pillars[j]) < PILLAR_TOLERANCE:
                return self._dfs[j]

        if t < self._pillars[0] or t > self._pillars[-1]:
            if not self.allow_extrapolation:
                raise OutOfBoundsError(t, self._pillars[0], self._pillars[-1])
            return self._extrapolate(t)

        return self._interpolate(t, idx)

    def zero_rate(self, t: float) -> float:
        """
        Continuously compounded zero rate z(t) = -ln P(0,t) / t.

        At t=0 returns the zero rate of the first pillar.
        """
        if t < 0:
            raise InvalidMaturityError(t)
        if t == 0:
            if not self._pillars:
                raise CurveConstructionError("Curve has no pillars")
            return -np.log(self._dfs[0]) / self._pillars[0]
        return -np.log(self.discount_factor(t)) / t

    def forward_rate(self, t1: float, t2: float) -> float:
        """
        Simply compounded forward rate between t1 and t2.

        F = (P(0,t1) / P(0,t2) - 1) / (t2 - t1)
        """
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")

        df1 = self.discount_factor(t1)
        df2 = self.discount_factor(t2)
        return (df1 / df2 - 1.0) / (t2 - t1)

    def instantaneous_forward(self, t: float) -> float:
        """
        Instantaneous forward rate f(t) = -d/dt ln P(0,t).

        Central difference, one-sided at t=0.
        """
        h = _FORWARD_STEP
        t_lo = max(t - h, 0.0)
        t_hi = t + h
        log_lo = np.log(self.discount_factor(t_lo))
        log_hi = np.log(self.discount_factor(t_hi))
        return -(log_hi - log_lo) / (t_hi - t_lo)

    def _extrapolate(self, t: float) -> float:
        """Flat zero-rate extrapolation from the nearest edge pillar."""
        if t < self._pillars[0]:
            t_edge, df_edge = self._pillars[0], self._dfs[0]
        else:
            t_edge, df_edge = self._pillars[-1], self._dfs[-1]
        r = -np.log(df_edge) / t_edge
        return np.exp(-r * t)

    def _interpolate(self, t: float, idx: int) -> float:
        method = self.interpolation

        if method in (InterpolationMethod.CUBIC_SPLINE, InterpolationMethod.MONOTONIC_CUBIC):
            self._ensure_fitted()
            if self._interpolator is not None:
                value = self._interpolator.interpolate(t)
                if method is InterpolationMethod.CUBIC_SPLINE:
                    return np.exp(-value * t)
                return np.exp(value)
            return self._log_linear(t, idx)

        if method is InterpolationMethod.LINEAR_ZERO_RATE:
            return self._linear_zero_rate(t, idx)
        if method is InterpolationMethod.FLAT_FORWARD:
            return self._flat_forward(t, idx)
        return self._log_linear(t, idx)

    def _log_linear(self, t: float, idx: int) -> float:
        t1, t2 = self._pillars[idx], self._pillars[idx + 1]
        df1, df2 = self._dfs[idx], self._dfs[idx + 1]

        w = (t - t1) / (t2 - t1)
        log_df = np.log(df1) * (1.0 - w) + np.log(df2) * w
        return np.exp(log_df)

    def _linear_zero_rate(self, t: float, idx: int) -> float:
        t1, t2 = self._pillars[idx], self._pillars[idx + 1]
        r1 = -np.log(self._dfs[idx]) / t1
        r2 = -np.log(self._dfs[idx + 1]) / t2

        w = (t - t1) / (t2 - t1)
        r = r1 * (1.0 - w) + r2 * w
        return np.exp(-r * t)

    def _flat_forward(self, t: float, idx: int) -> float:
        t1, t2 = self._pillars[idx], self._pillars[idx + 1]
        df1, df2 = self._dfs[idx], self._dfs[idx + 1]

        forward = np.log(df1 / df2) / (t2 - t1)
        return df1 * np.exp(-forward * (t - t1))

    def _ensure_fitted(self) -> None:
        """
        Fit the spline interpolator for the current pillars.

        On failure the curve silently degrades to log-linear
        (self._interpolator stays None).
        """
        if self._is_fitted:
            return

        times = np.array(self._pillars, dtype=np.float64)
        if self.interpolation is InterpolationMethod.CUBIC_SPLINE:
            values = -np.log(np.array(self._dfs, dtype=np.float64)) / times
        else:
            values = np.log(np.array(self._dfs, dtype=np.float64))

        interpolator = create_interpolator(self.interpolation)
        try:
            interpolator.fit(times, values)
        except ValueError as exc:
            logger.debug(
                "%s fit failed (%s); falling back to log-linear",
                self.interpolation.value, exc
            )
            interpolator = None

        self._interpolator = interpolator
        self._is_fitted = True

    def copy(self) -> "Curve":
        """Create an independent copy of the curve."""
        return Curve(
            self._pillars, self._dfs, self.interpolation, self.allow_extrapolation
        )

    def to_frame(self) -> pd.DataFrame:
        """Pillar table with time, discount factor and zero rate."""
        times = np.array(self._pillars, dtype=np.float64)
        dfs = np.array(self._dfs, dtype=np.float64)
        return pd.DataFrame({
            "time": times,
            "discount_factor": dfs,
            "zero_rate": -np.log(dfs) / times if len(times) else dfs,
        })

    def __repr__(self) -> str:
        return (f"Curve(pillars={len(self._pillars)}, domain={self.domain()}, "
                f"method={self.interpolation.value}, extrapolation={self.allow_extrapolation})")


def create_flat_curve(
    rate: float,
    max_tenor_years: float = 30.0,
    interpolation: Union[InterpolationMethod, str] = InterpolationMethod.LOG_LINEAR,
    allow_extrapolation: bool = True
) -> Curve:
    """
    Create a flat yield curve.

    Args:
        rate: Flat continuously compounded rate
        max_tenor_years: Maximum tenor in years
        interpolation: Interpolation method
        allow_extrapolation: Whether the curve extrapolates

    Returns:
        Flat curve
    """
    curve = Curve(interpolation=interpolation, allow_extrapolation=allow_extrapolation)

    tenors = {0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, float(max_tenor_years)}
    for t in sorted(t for t in tenors if t <= max_tenor_years):
        curve.add_pillar(t, float(np.exp(-rate * t)))

    return curve


__all__ = [
    "Curve",
    "create_flat_curve",
    "PILLAR_TOLERANCE",
]
