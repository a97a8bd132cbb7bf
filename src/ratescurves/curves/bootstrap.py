"""
Curve bootstrapping engine.

Implements the sequential bootstrap for discount and forward curves:
1. Validate and sort instruments by maturity
2. For each instrument, solve for the one new pillar discount factor that
   reprices it, holding all earlier pillars fixed
3. Append the pillar and move on

Each solve is Newton-Raphson on the instrument residual, with scipy's
brentq as a bracketing fallback. The bootstrap is all-or-nothing: any
validation, convergence or consistency failure raises and no partial
curve is returned.
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import brentq

from ..config import BootstrapConfig
from ..errors import (
    ArbitrageError,
    BootstrapError,
    ConvergenceError,
    DuplicateMaturityError,
    InstrumentValidationError,
    NegativeRateError,
)
from .curve import Curve
from .instruments import CurveInstrument, Fra, Frequency, Future, Irs, Ois

logger = logging.getLogger(__name__)

# Derivatives smaller than this are treated as zero
DERIVATIVE_FLOOR = 1e-30

# Pillars closer than this are duplicates
DUPLICATE_TOLERANCE = 1e-10

# Candidate DFs scanned for a sign change before calling brentq
_BRACKET_GRID = (1e-4, 1e-3, 1e-2, 0.1, 0.5, 0.9, 0.99, 0.999, 1.0, 1.01, 1.1, 1.5, 2.0)


class PartialCurve:
    """
    Discount factor lookup over the already-solved pillars.

    Used only while solving: log-linear between pillars, flat zero rate
    of the nearest edge pillar outside them, 1.0 when nothing is solved
    yet. Never raises. Log DFs are cached.
    """

    def __init__(self, pillars: Sequence[float] = (), discount_factors: Sequence[float] = ()):
        self._pillars: List[float] = list(pillars)
        self._dfs: List[float] = list(discount_factors)
        self._log_dfs: List[float] = [np.log(df) for df in self._dfs]

    def __len__(self) -> int:
        return len(self._pillars)

    def __call__(self, t: float) -> float:
        if t <= 0 or not self._pillars:
            return 1.0

        p = self._pillars
        if t < p[0]:
            r = -self._log_dfs[0] / p[0]
            return np.exp(-r * t)
        if t > p[-1]:
            r = -self._log_dfs[-1] / p[-1]
            return np.exp(-r * t)

        lo = bisect_right(p, t) - 1
        if lo + 1 < len(p) and t > p[lo]:
            w = (t - p[lo]) / (p[lo + 1] - p[lo])
            return np.exp(self._log_dfs[lo] * (1.0 - w) + self._log_dfs[lo + 1] * w)
        return self._dfs[lo]

    def append(self, maturity: float, df: float) -> None:
        """Extend with the next solved pillar (owner only)."""
        self._pillars.append(maturity)
        self._dfs.append(df)
        self._log_dfs.append(np.log(df))

    def bumped(self, index: int, bump: float) -> "PartialCurve":
        """Copy with the DF of pillar ``index`` shifted by ``bump``."""
        dfs = list(self._dfs)
        dfs[index] = dfs[index] + bump
        return PartialCurve(self._pillars, dfs)


@dataclass
class BootstrapResult:
    """
    Result of a sequential bootstrap.

    pillars / discount_factors duplicate the curve's own state for O(1)
    indexed access. order[k] is the caller's index of the instrument that
    produced pillar k.
    """
    curve: Curve
    pillars: List[float]
    discount_factors: List[float]
    residuals: List[float] = field(default_factory=list)
    iterations: List[int] = field(default_factory=list)
    order: List[int] = field(default_factory=list)

    def pillar_count(self) -> int:
        return len(self.pillars)

    def to_frame(self) -> pd.DataFrame:
        """One row per pillar with solver diagnostics."""
        return pd.DataFrame({
            "time": self.pillars,
            "discount_factor": self.discount_factors,
            "residual": self.residuals,
            "iterations": self.iterations,
            "input_index": self.order,
        })


class SequentialBootstrapper:
    """
    Bootstrap a curve from market instruments, one pillar per instrument.

    Attributes:
        config: Immutable bootstrap settings
    """

    def __init__(self, config: Optional[BootstrapConfig] = None):
        self.config = config or BootstrapConfig()

    def bootstrap(self, instruments: Sequence[CurveInstrument]) -> BootstrapResult:
        """
        Bootstrap curve from instruments.

        Args:
            instruments: Curve instruments in any order

        Returns:
            BootstrapResult with the curve and per-pillar diagnostics

        Raises:
            BootstrapError: If no instruments are given or any solve fails
            InstrumentValidationError: If an instrument fails validation
        """
        self._validate_instruments(instruments)

        order = sorted(range(len(instruments)), key=lambda i: instruments[i].maturity)

        partial = PartialCurve()
        pillars: List[float] = []
        dfs: List[float] = []
        residuals: List[float] = []
        iterations: List[int] = []

        for k, idx in enumerate(order):
            inst = instruments[idx]
            maturity = inst.maturity

            if pillars and abs(pillars[-1] - maturity) < DUPLICATE_TOLERANCE:
                raise DuplicateMaturityError(maturity)

            df, n_iter, residual = self._solve_for_df(k, inst, partial)
            self._check_pillar(maturity, df, dfs)

            logger.debug(
                "Pillar %d (%s, T=%.6g): df=%.12f iterations=%d residual=%.3e",
                k, inst.instrument_type, maturity, df, n_iter, residual
            )

            pillars.append(maturity)
            dfs.append(df)
            residuals.append(residual)
            iterations.append(n_iter)
            partial.append(maturity, df)

        curve = Curve(
            pillars, dfs,
            interpolation=self.config.interpolation,
            allow_extrapolation=self.config.allow_extrapolation,
        )

        logger.info(
            "Bootstrapped %d pillars over [%.6g, %.6g]",
            len(pillars), pillars[0], pillars[-1]
        )

        return BootstrapResult(
            curve=curve,
            pillars=pillars,
            discount_factors=dfs,
            residuals=residuals,
            iterations=iterations,
            order=order,
        )

    def _validate_instruments(self, instruments: Sequence[CurveInstrument]) -> None:
        if not instruments:
            raise BootstrapError.insufficient_data(1, 0)

        for i, inst in enumerate(instruments):
            try:
                inst.validate(self.config.max_maturity)
            except InstrumentValidationError as exc:
                raise exc.with_index(i) from exc

    def _check_pillar(self, maturity: float, df: float, previous_dfs: List[float]) -> None:
        if self.config.allow_negative_rates:
            return
        implied_rate = -np.log(df) / maturity
        if implied_rate < 0:
            raise NegativeRateError(maturity, float(implied_rate))
        if previous_dfs and df >= previous_dfs[-1]:
            raise ArbitrageError(maturity)

    def _solve_for_df(
        self,
        index: int,
        instrument: CurveInstrument,
        partial: PartialCurve
    ) -> Tuple[float, int, float]:
        """
        Solve residual(df) = 0 for the instrument's pillar DF.

        Returns:
            (df, iterations, final residual)
        """
        # Simple-discounting initial guess
        growth = 1.0 + instrument.rate * instrument.maturity
        initial_df = 1.0 / growth if growth > 0 else 1.0

        try:
            df, n_iter = self._newton_raphson(index, instrument, partial, initial_df)
        except ConvergenceError as exc:
            logger.warning("Newton-Raphson failed (%s); falling back to Brent", exc)
            return self._brent(index, instrument, partial, exc)

        return df, n_iter, instrument.residual(df, partial)

    def _newton_raphson(
        self,
        index: int,
        instrument: CurveInstrument,
        partial: PartialCurve,
        initial_df: float
    ) -> Tuple[float, int]:
        df = initial_df

        for iteration in range(self.config.max_iterations):
            residual = instrument.residual(df, partial)
            if not np.isfinite(residual):
                raise ConvergenceError(index, instrument.maturity, float(residual), iteration)

            if abs(residual) < self.config.tolerance:
                return df, iteration

            derivative = instrument.residual_derivative(df, partial)
            if not np.isfinite(derivative) or abs(derivative) < DERIVATIVE_FLOOR:
                raise ConvergenceError(index, instrument.maturity, float(residual), iteration)

            new_df = df - residual / derivative
            # Keep DF positive
            df = new_df if new_df > 0 else df / 2.0

            if not np.isfinite(df):
                raise ConvergenceError(index, instrument.maturity, float(residual), iteration)

        raise ConvergenceError(
            index, instrument.maturity,
            float(instrument.residual(df, partial)), self.config.max_iterations
        )

    def _brent(
        self,
        index: int,
        instrument: CurveInstrument,
        partial: PartialCurve,
        newton_error: ConvergenceError
    ) -> Tuple[float, int, float]:
        def f(x: float) -> float:
            return instrument.residual(x, partial)

        bracket = self._find_bracket(f)
        if bracket is None:
            raise newton_error

        a, b = bracket
        try:
            root, info = brentq(
                f, a, b,
                xtol=self.config.tolerance,
                maxiter=self.config.max_iterations,
                full_output=True,
            )
        except (RuntimeError, ValueError) as exc:
            raise ConvergenceError(
                index, instrument.maturity, newton_error.residual, self.config.max_iterations
            ) from exc

        residual = f(root)
        if not np.isfinite(residual):
            raise ConvergenceError(index, instrument.maturity, float(residual), info.iterations)

        logger.debug("Brent converged for pillar %d in %d iterations", index, info.iterations)
        return root, info.iterations, residual

    @staticmethod
    def _find_bracket(f) -> Optional[Tuple[float, float]]:
        lo, hi = f(1e-3), f(1.0)
        if np.isfinite(lo) and np.isfinite(hi) and lo * hi < 0:
            return (1e-3, 1.0)

        prev_x, prev_f = None, None
        for x in _BRACKET_GRID:
            fx = f(x)
            if not np.isfinite(fx):
                prev_x, prev_f = None, None
                continue
            if fx == 0:
                return (x, x * (1 + 1e-12))
            if prev_f is not None and prev_f * fx < 0:
                return (prev_x, x)
            prev_x, prev_f = x, fx
        return None


def instruments_from_quotes(quotes: Iterable[Mapping[str, Any]]) -> List[CurveInstrument]:
    """
    Build instruments from quote dictionaries.

    Example quote format:
        {"instrument_type": "OIS", "maturity": 2.0, "rate": 0.032}
        {"instrument_type": "IRS", "maturity": 5.0, "rate": 0.035,
         "fixed_frequency": "ANNUAL", "float_frequency": "QUARTERLY"}
        {"instrument_type": "FRA", "start": 0.25, "end": 0.5, "rate": 0.025}
        {"instrument_type": "FUTURE", "maturity": 0.5, "price": 97.0,
         "convexity_adjustment": 0.0001}
    """
    instruments: List[CurveInstrument] = []

    for q in quotes:
        inst_type = str(q.get("instrument_type", "")).upper()

        if inst_type == "OIS":
            instruments.append(Ois(
                maturity=float(q["maturity"]),
                rate=float(q["rate"]),
                payment_frequency=_frequency(q.get("payment_frequency", "ANNUAL")),
            ))
        elif inst_type == "IRS":
            instruments.append(Irs(
                maturity=float(q["maturity"]),
                rate=float(q["rate"]),
                fixed_frequency=_frequency(q.get("fixed_frequency", "ANNUAL")),
                float_frequency=_frequency(q.get("float_frequency", "QUARTERLY")),
            ))
        elif inst_type == "FRA":
            instruments.append(Fra(
                start=float(q["start"]),
                end=float(q["end"]),
                rate=float(q["rate"]),
            ))
        elif inst_type in ("FUT", "FUTURE"):
            convexity = float(q.get("convexity_adjustment", 0.0))
            if "price" in q:
                instruments.append(Future(float(q["maturity"]), float(q["price"]), convexity))
            else:
                instruments.append(Future.from_rate(float(q["maturity"]), float(q["rate"]), convexity))
        else:
            raise ValueError(f"Unknown instrument type: {inst_type!r}")

    return instruments


def bootstrap_from_quotes(
    quotes: Iterable[Mapping[str, Any]],
    config: Optional[BootstrapConfig] = None
) -> Curve:
    """
    Convenience function to bootstrap a curve from quote dictionaries.

    Args:
        quotes: Quote dicts (see instruments_from_quotes)
        config: Bootstrap settings (defaults if omitted)

    Returns:
        Bootstrapped curve
    """
    result = SequentialBootstrapper(config).bootstrap(instruments_from_quotes(quotes))
    return result.curve


def _frequency(value: Any) -> Frequency:
    if isinstance(value, Frequency):
        return value
    if isinstance(value, (int, np.integer)):
        return Frequency(int(value))
    return Frequency.from_string(str(value))


__all__ = [
    "PartialCurve",
    "BootstrapResult",
    "SequentialBootstrapper",
    "instruments_from_quotes",
    "bootstrap_from_quotes",
    "DERIVATIVE_FLOOR",
]
