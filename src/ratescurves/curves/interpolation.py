"""
Interpolation methods for yield curves.

Provides:
- CubicSplineInterpolator: Natural cubic spline (used on zero rates)
- MonotonicCubicInterpolator: Fritsch-Carlson monotone cubic Hermite (used on log DF)

All interpolators work with year fractions as x-coordinates. fit() raises
ValueError when the data cannot support the scheme; the curve treats that
as a signal to fall back to log-linear.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np

from ..config import InterpolationMethod


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    min_points: int = 2

    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (must be sorted ascending)
            values: Array of values (zero rates or log discount factors)
        """

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolate at a single point."""

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    def _check_inputs(self, times: np.ndarray, values: np.ndarray) -> None:
        if len(times) != len(values):
            raise ValueError("Times and values must have same length")
        if len(times) < self.min_points:
            raise ValueError(
                f"Need at least {self.min_points} points for {type(self).__name__}, "
                f"got {len(times)}"
            )
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")

    @staticmethod
    def _segment(times: np.ndarray, t: float) -> int:
        idx = np.searchsorted(times, t, side='right') - 1
        return int(max(0, min(idx, len(times) - 2)))


class CubicSplineInterpolator(Interpolator):
    """
    Cubic spline interpolation.

    Uses natural cubic splines (second derivative = 0 at boundaries).
    Needs at least three knots; with fewer the natural spline is just
    the chord, so fit() refuses and lets the caller pick a simpler scheme.
    """

    min_points = 3

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit natural cubic spline.

        Solves tridiagonal system for second derivatives,
        then computes polynomial coefficients for each interval.
        """
        self._check_inputs(times, values)

        self.times = np.asarray(times, dtype=np.float64)
        self.values = np.asarray(values, dtype=np.float64)
        n = len(self.times)

        h = np.diff(self.times)

        # Natural spline: M[0] = M[n-1] = 0
        A = np.zeros((n, n))
        b = np.zeros(n)

        A[0, 0] = 1.0
        A[n-1, n-1] = 1.0

        for i in range(1, n-1):
            A[i, i-1] = h[i-1]
            A[i, i] = 2 * (h[i-1] + h[i])
            A[i, i+1] = h[i]
            b[i] = 6 * ((self.values[i+1] - self.values[i]) / h[i] -
                       (self.values[i] - self.values[i-1]) / h[i-1])

        M = np.linalg.solve(A, b)
        if not np.all(np.isfinite(M)):
            raise ValueError("Spline system produced non-finite second derivatives")

        # S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
        self.coefficients = np.zeros((n-1, 4))

        for i in range(n-1):
            self.coefficients[i, 0] = self.values[i]
            self.coefficients[i, 1] = (self.values[i+1] - self.values[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
            self.coefficients[i, 2] = M[i] / 2
            self.coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])

    def interpolate(self, t: float) -> float:
        """Evaluate cubic spline at point t."""
        if self.times is None or self.coefficients is None:
            raise RuntimeError("Interpolator not fitted")

        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._segment(self.times, t)
        dx = t - self.times[idx]
        a, b, c, d = self.coefficients[idx]

        return float(a + b*dx + c*dx**2 + d*dx**3)


class MonotonicCubicInterpolator(Interpolator):
    """
    Fritsch-Carlson monotone cubic Hermite interpolation.

    Tangents start from averaged secants and are then limited so that
    the interpolant is monotone on every interval where the data is.
    Applied to log discount factors this guarantees a non-increasing
    discount curve whenever the pillar DFs are non-increasing.
    """

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None
        self.tangents: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._check_inputs(times, values)

        x = np.asarray(times, dtype=np.float64)
        y = np.asarray(values, dtype=np.float64)
        n = len(x)

        h = np.diff(x)
        delta = np.diff(y) / h
        if not (np.all(delta <= 0) or np.all(delta >= 0)):
            raise ValueError("Values must be monotonic")

        m = np.zeros(n)
        m[0] = delta[0]
        m[-1] = delta[-1]
        for k in range(1, n - 1):
            if delta[k - 1] * delta[k] <= 0:
                m[k] = 0.0
            else:
                m[k] = 0.5 * (delta[k - 1] + delta[k])

        for k in range(n - 1):
            if delta[k] == 0.0:
                m[k] = 0.0
                m[k + 1] = 0.0
                continue
            alpha = m[k] / delta[k]
            beta = m[k + 1] / delta[k]
            if alpha < 0:
                m[k] = 0.0
                alpha = 0.0
            if beta < 0:
                m[k + 1] = 0.0
                beta = 0.0
            s = alpha * alpha + beta * beta
            if s > 9.0:
                tau = 3.0 / np.sqrt(s)
                m[k] = tau * alpha * delta[k]
                m[k + 1] = tau * beta * delta[k]

        if not np.all(np.isfinite(m)):
            raise ValueError("Monotone cubic produced non-finite tangents")

        self.times = x
        self.values = y
        self.tangents = m

    def interpolate(self, t: float) -> float:
        if self.times is None or self.tangents is None:
            raise RuntimeError("Interpolator not fitted")

        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        k = self._segment(self.times, t)
        h = self.times[k + 1] - self.times[k]
        s = (t - self.times[k]) / h

        h00 = 2 * s**3 - 3 * s**2 + 1
        h10 = s**3 - 2 * s**2 + s
        h01 = -2 * s**3 + 3 * s**2
        h11 = s**3 - s**2

        return float(
            h00 * self.values[k]
            + h10 * h * self.tangents[k]
            + h01 * self.values[k + 1]
            + h11 * h * self.tangents[k + 1]
        )


def create_interpolator(method: Union[InterpolationMethod, str]) -> Interpolator:
    """
    Factory function to create a fitted-curve interpolator.

    Only the spline methods need a global fit; log-linear, linear-zero and
    flat-forward are evaluated segment by segment on the curve itself.

    Args:
        method: InterpolationMethod.CUBIC_SPLINE or MONOTONIC_CUBIC (or their names)

    Returns:
        Interpolator instance
    """
    if isinstance(method, str):
        method = InterpolationMethod.from_string(method)

    if method is InterpolationMethod.CUBIC_SPLINE:
        return CubicSplineInterpolator()
    elif method is InterpolationMethod.MONOTONIC_CUBIC:
        return MonotonicCubicInterpolator()
    else:
        raise ValueError(f"{method.value} is evaluated segment-wise and has no interpolator")


__all__ = [
    "Interpolator",
    "CubicSplineInterpolator",
    "MonotonicCubicInterpolator",
    "create_interpolator",
]
