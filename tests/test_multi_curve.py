"""
Unit tests for multi-curve construction.
"""

import pytest

from ratescurves.config import BootstrapConfig
from ratescurves.curves import (
    Curve,
    CurveSet,
    Fra,
    Irs,
    MultiCurveBuilder,
    Ois,
    ParallelCurveSetBuilder,
    Tenor,
)
from ratescurves.curves.instruments import Frequency
from ratescurves.errors import (
    BatchBuildError,
    BootstrapError,
    DuplicateMaturityError,
    InstrumentValidationError,
)


@pytest.fixture
def ois_instruments():
    return [Ois(0.5, 0.052), Ois(1.0, 0.050), Ois(2.0, 0.047), Ois(5.0, 0.042)]


@pytest.fixture
def forward_3m():
    return [Fra(0.25, 0.5, 0.054), Irs(1.0, 0.052), Irs(2.0, 0.049), Irs(5.0, 0.044)]


@pytest.fixture
def forward_6m():
    semi = Frequency.SEMI_ANNUAL
    return [
        Irs(1.0, 0.053, fixed_frequency=semi, float_frequency=semi),
        Irs(2.0, 0.050, fixed_frequency=semi, float_frequency=semi),
        Irs(5.0, 0.045, fixed_frequency=semi, float_frequency=semi),
    ]


@pytest.fixture
def builder():
    return MultiCurveBuilder(BootstrapConfig())


def assert_same_curve(a: Curve, b: Curve, tol: float = 1e-12):
    assert a.pillars == b.pillars
    for t in a.pillars + [0.3, 0.75, 1.5, 3.0]:
        assert abs(a.discount_factor(t) - b.discount_factor(t)) < tol


class TestTenor:
    """Tests for index tenors."""

    def test_properties(self):
        assert Tenor.THREE_MONTH.label == "3M"
        assert Tenor.THREE_MONTH.period_years == 0.25
        assert Tenor.SIX_MONTH.periods_per_year == 2
        assert Tenor.TWELVE_MONTH.period_years == 1.0
        assert abs(Tenor.OVERNIGHT.period_years - 1.0 / 365.0) < 1e-15
        assert abs(Tenor.ONE_MONTH.period_years - 1.0 / 12.0) < 1e-15

    def test_default(self):
        assert Tenor.default() is Tenor.THREE_MONTH

    def test_from_string(self):
        assert Tenor.from_string("3m") is Tenor.THREE_MONTH
        assert Tenor.from_string("ON") is Tenor.OVERNIGHT
        assert Tenor.from_string("1Y") is Tenor.TWELVE_MONTH
        with pytest.raises(ValueError):
            Tenor.from_string("2W")


class TestCurveSet:
    """Tests for CurveSet lookups."""

    def test_single_curve(self):
        curve = Curve([1.0, 2.0], [0.97, 0.93])
        curve_set = CurveSet.single_curve(curve)

        assert curve_set.is_single_curve()
        assert curve_set.forward_curve_count() == 0
        assert curve_set.tenors == []
        assert curve_set.forward_curve(Tenor.THREE_MONTH) is curve

    def test_forward_curve_fallback(self):
        discount = Curve([1.0, 2.0], [0.97, 0.93])
        forward = Curve([1.0, 2.0], [0.96, 0.92])
        curve_set = CurveSet(discount, {Tenor.THREE_MONTH: forward})

        assert not curve_set.is_single_curve()
        assert curve_set.has_forward_curve(Tenor.THREE_MONTH)
        assert not curve_set.has_forward_curve(Tenor.SIX_MONTH)
        assert curve_set.forward_curve(Tenor.THREE_MONTH) is forward
        assert curve_set.forward_curve(Tenor.SIX_MONTH) is discount
        assert curve_set.discount_factor(1.0) == 0.97
        assert curve_set.forward_rate(Tenor.THREE_MONTH, 1.0, 2.0) == forward.forward_rate(1.0, 2.0)


class TestMultiCurveBuilder:
    """Tests for building curve sets."""

    def test_build(self, builder, ois_instruments, forward_3m, forward_6m):
        curve_set = builder.build(
            ois_instruments,
            [(Tenor.THREE_MONTH, forward_3m), (Tenor.SIX_MONTH, forward_6m)],
        )

        assert curve_set.discount_curve.pillar_count() == 4
        assert curve_set.forward_curve_count() == 2
        assert curve_set.tenors == [Tenor.THREE_MONTH, Tenor.SIX_MONTH]
        assert curve_set.forward_curve(Tenor.THREE_MONTH).pillars == [0.5, 1.0, 2.0, 5.0]
        assert curve_set.forward_curve(Tenor.SIX_MONTH).pillar_count() == 3

    def test_build_accepts_dict(self, builder, ois_instruments, forward_3m):
        from_dict = builder.build(ois_instruments, {Tenor.THREE_MONTH: forward_3m})
        from_list = builder.build(ois_instruments, [(Tenor.THREE_MONTH, forward_3m)])
        assert_same_curve(
            from_dict.forward_curve(Tenor.THREE_MONTH),
            from_list.forward_curve(Tenor.THREE_MONTH),
        )

    def test_empty_forward_lists_skipped(self, builder, ois_instruments, forward_3m):
        curve_set = builder.build(
            ois_instruments, {Tenor.THREE_MONTH: forward_3m, Tenor.SIX_MONTH: []}
        )
        assert curve_set.tenors == [Tenor.THREE_MONTH]
        assert not curve_set.has_forward_curve(Tenor.SIX_MONTH)

    def test_build_without_forwards(self, builder, ois_instruments):
        assert builder.build(ois_instruments).is_single_curve()
        assert builder.build(ois_instruments, {}).is_single_curve()

    def test_build_single_curve(self, builder, ois_instruments):
        curve_set = builder.build_single_curve(ois_instruments)
        assert curve_set.is_single_curve()
        assert curve_set.forward_curve(Tenor.SIX_MONTH) is curve_set.discount_curve

    def test_build_discount_curve(self, builder, ois_instruments):
        curve = builder.build_discount_curve(ois_instruments)
        assert isinstance(curve, Curve)
        assert curve.domain() == (0.5, 5.0)

    def test_parallel_matches_sequential(self, builder, ois_instruments, forward_3m, forward_6m):
        forwards = {Tenor.THREE_MONTH: forward_3m, Tenor.SIX_MONTH: forward_6m}
        sequential = builder.build(ois_instruments, forwards)
        parallel = builder.build_parallel(ois_instruments, forwards, max_workers=2)

        assert_same_curve(sequential.discount_curve, parallel.discount_curve)
        assert sequential.tenors == parallel.tenors
        for tenor in sequential.tenors:
            assert_same_curve(sequential.forward_curve(tenor), parallel.forward_curve(tenor))

    def test_discount_failure_propagates(self, builder, forward_3m):
        with pytest.raises(BootstrapError):
            builder.build([], {Tenor.THREE_MONTH: forward_3m})

    def test_forward_failure_propagates(self, builder, ois_instruments):
        with pytest.raises(InstrumentValidationError):
            builder.build(ois_instruments, {Tenor.THREE_MONTH: [Ois(-1.0, 0.03)]})

    def test_parallel_raises_first_failure_in_tenor_order(self, builder, ois_instruments):
        forwards = [
            (Tenor.THREE_MONTH, [Ois(-1.0, 0.03)]),
            (Tenor.SIX_MONTH, [Ois(1.0, 0.03), Ois(1.0, 0.031)]),
        ]
        with pytest.raises(InstrumentValidationError):
            builder.build_parallel(ois_instruments, forwards)

        with pytest.raises(DuplicateMaturityError):
            builder.build_parallel(ois_instruments, list(reversed(forwards)))


class TestParallelCurveSetBuilder:
    """Tests for batch construction."""

    def test_build_batch(self, ois_instruments, forward_3m):
        batch = ParallelCurveSetBuilder(BootstrapConfig(), max_workers=2)
        shifted = [inst.with_rate_bump(0.001) for inst in ois_instruments]
        inputs = [
            (ois_instruments, {Tenor.THREE_MONTH: forward_3m}),
            (shifted, None),
        ]
        results = batch.build_batch(inputs)

        assert len(results) == 2
        assert results[0].forward_curve_count() == 1
        assert results[1].is_single_curve()

        expected = MultiCurveBuilder().build(ois_instruments, {Tenor.THREE_MONTH: forward_3m})
        assert_same_curve(results[0].discount_curve, expected.discount_curve)
        assert results[1].discount_curve.discount_factor(1.0) < results[0].discount_curve.discount_factor(1.0)

    def test_empty_batch(self):
        assert ParallelCurveSetBuilder().build_batch([]) == []

    def test_batch_collects_every_error(self, ois_instruments):
        batch = ParallelCurveSetBuilder()
        inputs = [
            (ois_instruments, None),
            ([], None),
            (ois_instruments, None),
            ([Ois(1.0, 0.03), Ois(1.0, 0.031)], None),
        ]
        with pytest.raises(BatchBuildError) as exc_info:
            batch.build_batch(inputs)

        errors = exc_info.value.errors
        assert sorted(errors) == [1, 3]
        assert isinstance(errors[1], BootstrapError)
        assert isinstance(errors[3], DuplicateMaturityError)

    def test_build_batch_results(self, ois_instruments):
        batch = ParallelCurveSetBuilder()
        outcomes = batch.build_batch_results([(ois_instruments, None), ([], None)])

        assert isinstance(outcomes[0], CurveSet)
        assert isinstance(outcomes[1], BootstrapError)

    def test_single_and_discount_batches(self, ois_instruments):
        batch = ParallelCurveSetBuilder(max_workers=2)
        subsets = [ois_instruments[:2], ois_instruments]

        curve_sets = batch.build_single_curves_batch(subsets)
        assert [cs.discount_curve.pillar_count() for cs in curve_sets] == [2, 4]
        assert all(cs.is_single_curve() for cs in curve_sets)

        curves = batch.build_discount_curves_batch(subsets)
        assert [c.pillar_count() for c in curves] == [2, 4]

        with pytest.raises(BatchBuildError):
            batch.build_discount_curves_batch([[]])

    def test_process_pool(self, ois_instruments):
        batch = ParallelCurveSetBuilder(max_workers=2, use_processes=True)
        curves = batch.build_discount_curves_batch([ois_instruments, ois_instruments[:3]])
        expected = MultiCurveBuilder().build_discount_curve(ois_instruments)

        assert_same_curve(curves[0], expected)
        assert curves[1].pillar_count() == 3
