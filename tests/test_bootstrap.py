"""
Unit tests for the sequential bootstrapper.
"""

import dataclasses
import logging

import numpy as np
import pandas as pd
import pytest

from ratescurves.config import BootstrapConfig, InterpolationMethod
from ratescurves.curves import (
    Fra,
    Future,
    Irs,
    Ois,
    PartialCurve,
    SequentialBootstrapper,
    bootstrap_from_quotes,
    instruments_from_quotes,
)
from ratescurves.curves.instruments import Frequency
from ratescurves.errors import (
    ArbitrageError,
    BootstrapError,
    ConvergenceError,
    DuplicateMaturityError,
    InstrumentValidationError,
    NegativeRateError,
)


@dataclasses.dataclass(frozen=True)
class ZeroSlopeOis(Ois):
    """OIS whose analytic slope is unusable, forcing the bracketing solver."""

    def residual_derivative(self, df, partial_curve):
        return 0.0


@dataclasses.dataclass(frozen=True)
class UnsolvableOis(Ois):
    """OIS whose implied rate never matches its quote."""

    def implied_rate(self, df, partial_curve):
        return self.rate + 1.0


@pytest.fixture
def ois_instruments():
    return [Ois(1.0, 0.030), Ois(2.0, 0.032), Ois(3.0, 0.034)]


@pytest.fixture
def bootstrapper():
    return SequentialBootstrapper(BootstrapConfig())


def expected_ois_dfs():
    df1 = 1.0 / 1.03
    df2 = (1.0 - 0.032 * df1) / 1.032
    df3 = (1.0 - 0.034 * (df1 + df2)) / 1.034
    return [df1, df2, df3]


class TestPartialCurve:
    """Tests for the solver's partial curve."""

    def test_empty(self):
        partial = PartialCurve()
        assert len(partial) == 0
        assert partial(0.5) == 1.0
        assert partial(10.0) == 1.0

    def test_non_positive_time(self):
        partial = PartialCurve([1.0], [0.97])
        assert partial(0.0) == 1.0
        assert partial(-1.0) == 1.0

    def test_log_linear_between_pillars(self):
        partial = PartialCurve([1.0, 2.0], [0.97, 0.93])
        assert abs(partial(1.5) - np.sqrt(0.97 * 0.93)) < 1e-14
        assert partial(2.0) == 0.93

    def test_flat_zero_extrapolation(self):
        partial = PartialCurve([1.0, 2.0], [0.97, 0.93])
        r_first = -np.log(0.97)
        r_last = -np.log(0.93) / 2.0
        assert abs(partial(0.5) - np.exp(-r_first * 0.5)) < 1e-15
        assert abs(partial(4.0) - np.exp(-r_last * 4.0)) < 1e-15

    def test_append_and_bumped(self):
        partial = PartialCurve()
        partial.append(1.0, 0.97)
        partial.append(2.0, 0.93)
        bumped = partial.bumped(0, 0.001)

        assert len(partial) == 2
        assert partial(1.0) == 0.97
        assert bumped(1.0) == pytest.approx(0.971)
        assert bumped(2.0) == 0.93


class TestSequentialBootstrapper:
    """Tests for bootstrapping."""

    def test_ois_scenario(self, bootstrapper, ois_instruments):
        """Three-OIS curve: pillar count, domain, monotone DFs."""
        result = bootstrapper.bootstrap(ois_instruments)
        curve = result.curve

        assert curve.pillar_count() == 3
        assert curve.domain() == (1.0, 3.0)
        assert curve.discount_factor(1.0) > curve.discount_factor(1.5) > curve.discount_factor(2.0)

    def test_ois_discount_factors(self, bootstrapper, ois_instruments):
        result = bootstrapper.bootstrap(ois_instruments)
        for df, expected in zip(result.discount_factors, expected_ois_dfs()):
            assert abs(df - expected) < 1e-11

    def test_instruments_reprice(self, bootstrapper, ois_instruments):
        """Every instrument has ~zero residual on the final curve."""
        result = bootstrapper.bootstrap(ois_instruments)
        for i, inst in enumerate(ois_instruments):
            partial = PartialCurve(result.pillars[:i], result.discount_factors[:i])
            assert abs(inst.residual(result.discount_factors[i], partial)) < 1e-12
        assert all(abs(r) < 1e-12 for r in result.residuals)

    def test_result_fields(self, bootstrapper, ois_instruments):
        result = bootstrapper.bootstrap(ois_instruments)
        assert result.pillars == [1.0, 2.0, 3.0]
        assert result.pillar_count() == 3
        assert result.order == [0, 1, 2]
        assert len(result.iterations) == 3
        assert result.curve.pillars == result.pillars
        assert result.curve.discount_factors_at_pillars == result.discount_factors

    def test_unsorted_input(self, bootstrapper):
        instruments = [Ois(3.0, 0.034), Ois(1.0, 0.030), Ois(2.0, 0.032)]
        result = bootstrapper.bootstrap(instruments)

        assert result.pillars == [1.0, 2.0, 3.0]
        assert result.order == [1, 2, 0]
        for df, expected in zip(result.discount_factors, expected_ois_dfs()):
            assert abs(df - expected) < 1e-11

    def test_deterministic(self, bootstrapper, ois_instruments):
        first = bootstrapper.bootstrap(ois_instruments)
        second = bootstrapper.bootstrap(ois_instruments)
        assert first.pillars == second.pillars
        assert first.discount_factors == second.discount_factors

    def test_single_fra(self, bootstrapper):
        result = bootstrapper.bootstrap([Fra(0.25, 0.5, 0.025)])
        assert result.pillars == [0.5]
        assert abs(result.discount_factors[0] - 1.0 / (1.0 + 0.025 * 0.25)) < 1e-12

    def test_mixed_instruments(self, bootstrapper):
        instruments = [
            Ois(0.25, 0.020),
            Fra(0.25, 0.5, 0.025),
            Future(0.75, 97.0),
            Irs(2.0, 0.030),
        ]
        result = bootstrapper.bootstrap(instruments)

        assert result.pillars == [0.25, 0.5, 0.75, 2.0]
        dfs = result.discount_factors
        assert all(later < earlier for earlier, later in zip(dfs, dfs[1:]))

        df_start = 1.0 / (1.0 + 0.020 * 0.25)
        assert abs(dfs[1] - df_start / (1.0 + 0.025 * 0.25)) < 1e-12
        assert all(abs(r) < 1e-12 for r in result.residuals)

    def test_semi_annual_irs(self, bootstrapper):
        instruments = [
            Irs(1.0, 0.040, fixed_frequency=Frequency.SEMI_ANNUAL),
            Irs(2.0, 0.042, fixed_frequency=Frequency.SEMI_ANNUAL),
        ]
        result = bootstrapper.bootstrap(instruments)
        assert result.pillar_count() == 2
        assert all(abs(r) < 1e-12 for r in result.residuals)

    def test_config_propagates_to_curve(self, ois_instruments):
        config = (BootstrapConfig()
                  .with_interpolation("cubic_spline")
                  .with_extrapolation(False))
        result = SequentialBootstrapper(config).bootstrap(ois_instruments)
        assert result.curve.interpolation is InterpolationMethod.CUBIC_SPLINE
        assert result.curve.allow_extrapolation is False

    def test_to_frame(self, bootstrapper, ois_instruments):
        frame = bootstrapper.bootstrap(ois_instruments).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame["time"]) == [1.0, 2.0, 3.0]
        assert "iterations" in frame.columns

    def test_logs_summary(self, bootstrapper, ois_instruments, caplog):
        with caplog.at_level(logging.INFO, logger="ratescurves.curves.bootstrap"):
            bootstrapper.bootstrap(ois_instruments)
        assert "Bootstrapped 3 pillars" in caplog.text


class TestBootstrapSolver:
    """Tests for the root-finding path."""

    def test_brent_fallback(self, bootstrapper, caplog):
        with caplog.at_level(logging.WARNING, logger="ratescurves.curves.bootstrap"):
            result = bootstrapper.bootstrap([ZeroSlopeOis(2.0, 0.032)])

        # Nothing solved before: annuity = 1 + df
        expected = (1.0 - 0.032) / (1.0 + 0.032)
        assert abs(result.discount_factors[0] - expected) < 1e-10
        assert "Brent" in caplog.text

    def test_convergence_failure(self, bootstrapper):
        instruments = [Ois(1.0, 0.03), UnsolvableOis(2.0, 0.03)]
        with pytest.raises(ConvergenceError) as exc_info:
            bootstrapper.bootstrap(instruments)

        err = exc_info.value
        assert err.index == 1
        assert err.maturity == 2.0
        assert isinstance(err, BootstrapError)


class TestBootstrapErrors:
    """Tests for validation and consistency failures."""

    def test_empty_instruments(self, bootstrapper):
        with pytest.raises(BootstrapError) as exc_info:
            bootstrapper.bootstrap([])
        assert exc_info.value.required == 1
        assert exc_info.value.provided == 0

    def test_duplicate_maturity(self, bootstrapper):
        with pytest.raises(DuplicateMaturityError) as exc_info:
            bootstrapper.bootstrap([Ois(1.0, 0.03), Irs(1.0, 0.031)])
        assert exc_info.value.maturity == 1.0

    def test_invalid_instrument_reports_index(self, bootstrapper):
        with pytest.raises(InstrumentValidationError) as exc_info:
            bootstrapper.bootstrap([Ois(1.0, 0.03), Ois(-1.0, 0.03)])
        assert exc_info.value.index == 1

    def test_max_maturity(self):
        config = BootstrapConfig().with_max_maturity(10.0)
        with pytest.raises(InstrumentValidationError):
            SequentialBootstrapper(config).bootstrap([Ois(20.0, 0.03)])

    def test_negative_rate_rejected(self, bootstrapper):
        with pytest.raises(NegativeRateError) as exc_info:
            bootstrapper.bootstrap([Ois(1.0, -0.01)])
        assert exc_info.value.maturity == 1.0
        assert exc_info.value.rate < 0

    def test_negative_rate_allowed(self):
        config = BootstrapConfig().with_negative_rates(True)
        result = SequentialBootstrapper(config).bootstrap([Ois(1.0, -0.01)])
        assert result.discount_factors[0] > 1.0

    def test_arbitrage_rejected(self, bootstrapper):
        with pytest.raises(ArbitrageError) as exc_info:
            bootstrapper.bootstrap([Ois(1.0, 0.05), Ois(2.0, 0.001)])
        assert exc_info.value.maturity == 2.0


class TestQuotes:
    """Tests for quote-dict ingestion."""

    def test_instruments_from_quotes(self):
        quotes = [
            {"instrument_type": "OIS", "maturity": 1.0, "rate": 0.03},
            {"instrument_type": "irs", "maturity": 2.0, "rate": 0.031,
             "fixed_frequency": "SEMI_ANNUAL"},
            {"instrument_type": "FRA", "start": 0.25, "end": 0.5, "rate": 0.025},
            {"instrument_type": "FUTURE", "maturity": 0.75, "price": 97.0},
            {"instrument_type": "FUT", "maturity": 0.9, "rate": 0.03},
        ]
        instruments = instruments_from_quotes(quotes)

        assert isinstance(instruments[0], Ois)
        assert isinstance(instruments[1], Irs)
        assert instruments[1].fixed_frequency is Frequency.SEMI_ANNUAL
        assert isinstance(instruments[2], Fra)
        assert isinstance(instruments[3], Future)
        assert instruments[4].price == pytest.approx(97.0)

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            instruments_from_quotes([{"instrument_type": "BOND", "maturity": 1.0}])

    def test_bootstrap_from_quotes(self):
        quotes = [
            {"instrument_type": "OIS", "maturity": 1.0, "rate": 0.030},
            {"instrument_type": "OIS", "maturity": 2.0, "rate": 0.032},
        ]
        curve = bootstrap_from_quotes(quotes)
        assert curve.pillar_count() == 2
        assert abs(curve.discount_factor(1.0) - 1.0 / 1.03) < 1e-12
