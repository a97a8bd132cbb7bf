"""
Multi-curve construction.

Post-2008 rates markets discount on an OIS curve and project floating
legs off one curve per index tenor. This module provides:
- Tenor: index tenors with their accrual period
- CurveSet: a discount curve plus tenor-keyed forward curves
- MultiCurveBuilder: builds a CurveSet sequentially or with tenor curves
  bootstrapped concurrently
- ParallelCurveSetBuilder: builds many independent CurveSets (scenarios,
  dates) on a worker pool

The discount curve is always complete before any tenor curve is started.
Each tenor curve is bootstrapped from its own instruments with the same
configuration, so results do not depend on scheduling.
"""

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import BootstrapConfig
from ..errors import BatchBuildError
from .bootstrap import SequentialBootstrapper
from .curve import Curve
from .instruments import CurveInstrument

logger = logging.getLogger(__name__)


class Tenor(Enum):
    """Floating index tenor."""
    OVERNIGHT = "ON"
    ONE_MONTH = "1M"
    THREE_MONTH = "3M"
    SIX_MONTH = "6M"
    TWELVE_MONTH = "12M"

    @property
    def label(self) -> str:
        return self.value

    @property
    def period_years(self) -> float:
        """Accrual period of one fixing in years."""
        return _TENOR_YEARS[self]

    @property
    def periods_per_year(self) -> int:
        return _TENOR_PERIODS[self]

    @classmethod
    def default(cls) -> "Tenor":
        return cls.THREE_MONTH

    @classmethod
    def from_string(cls, s: str) -> "Tenor":
        """Parse tenor from label ("3M", "6m", "ON", "1Y", ...)."""
        key = s.strip().upper()
        aliases = {
            "ON": cls.OVERNIGHT,
            "O/N": cls.OVERNIGHT,
            "OVERNIGHT": cls.OVERNIGHT,
            "1D": cls.OVERNIGHT,
            "1M": cls.ONE_MONTH,
            "3M": cls.THREE_MONTH,
            "6M": cls.SIX_MONTH,
            "12M": cls.TWELVE_MONTH,
            "1Y": cls.TWELVE_MONTH,
        }
        if key in aliases:
            return aliases[key]
        raise ValueError(f"Unknown tenor: {s}")


_TENOR_YEARS = {
    Tenor.OVERNIGHT: 1.0 / 365.0,
    Tenor.ONE_MONTH: 1.0 / 12.0,
    Tenor.THREE_MONTH: 0.25,
    Tenor.SIX_MONTH: 0.5,
    Tenor.TWELVE_MONTH: 1.0,
}

_TENOR_PERIODS = {
    Tenor.OVERNIGHT: 365,
    Tenor.ONE_MONTH: 12,
    Tenor.THREE_MONTH: 4,
    Tenor.SIX_MONTH: 2,
    Tenor.TWELVE_MONTH: 1,
}


# Forward instruments as [(tenor, instruments), ...] or {tenor: instruments}
ForwardInstruments = Union[
    Sequence[Tuple[Tenor, Sequence[CurveInstrument]]],
    Mapping[Tenor, Sequence[CurveInstrument]],
]


@dataclass
class CurveSet:
    """
    Discount curve plus forward curves keyed by tenor.

    With no forward curves this is a single-curve set and every
    projection uses the discount curve.

    Attributes:
        discount_curve: OIS curve for discounting
        forward_curves: Projection curve per index tenor
    """
    discount_curve: Curve
    forward_curves: Dict[Tenor, Curve] = field(default_factory=dict)

    @classmethod
    def single_curve(cls, curve: Curve) -> "CurveSet":
        return cls(discount_curve=curve)

    def forward_curve(self, tenor: Tenor) -> Curve:
        """Projection curve for ``tenor``, falling back to the discount curve."""
        return self.forward_curves.get(tenor, self.discount_curve)

    def has_forward_curve(self, tenor: Tenor) -> bool:
        return tenor in self.forward_curves

    def set_forward_curve(self, tenor: Tenor, curve: Curve) -> None:
        self.forward_curves[tenor] = curve

    @property
    def tenors(self) -> List[Tenor]:
        return list(self.forward_curves)

    def forward_curve_count(self) -> int:
        return len(self.forward_curves)

    def is_single_curve(self) -> bool:
        return not self.forward_curves

    def discount_factor(self, t: float) -> float:
        """Discount factor off the discount curve."""
        return self.discount_curve.discount_factor(t)

    def forward_rate(self, tenor: Tenor, t1: float, t2: float) -> float:
        """Simple forward rate between t1 and t2 off the ``tenor`` curve."""
        return self.forward_curve(tenor).forward_rate(t1, t2)


def _normalize_forward_instruments(
    forward_instruments: Optional[ForwardInstruments]
) -> List[Tuple[Tenor, Sequence[CurveInstrument]]]:
    if not forward_instruments:
        return []
    if isinstance(forward_instruments, Mapping):
        items = list(forward_instruments.items())
    else:
        items = list(forward_instruments)
    # Empty instrument lists mean "no curve for this tenor"
    return [(tenor, insts) for tenor, insts in items if insts]


class MultiCurveBuilder:
    """
    Build a discount curve and its tenor forward curves.

    Usage:
        builder = MultiCurveBuilder(BootstrapConfig())
        curve_set = builder.build(ois_instruments, {Tenor.THREE_MONTH: irs_3m})
    """

    def __init__(self, config: Optional[BootstrapConfig] = None):
        self.config = config or BootstrapConfig()
        self._bootstrapper = SequentialBootstrapper(self.config)

    def build_discount_curve(self, instruments: Sequence[CurveInstrument]) -> Curve:
        return self._bootstrapper.bootstrap(instruments).curve

    def build_single_curve(self, instruments: Sequence[CurveInstrument]) -> CurveSet:
        """Single-curve set: the same curve discounts and projects."""
        return CurveSet.single_curve(self.build_discount_curve(instruments))

    def build(
        self,
        discount_instruments: Sequence[CurveInstrument],
        forward_instruments: Optional[ForwardInstruments] = None
    ) -> CurveSet:
        """
        Build the curve set sequentially.

        Args:
            discount_instruments: Instruments for the discount curve
            forward_instruments: (tenor, instruments) pairs or a tenor dict;
                tenors with no instruments are skipped

        Returns:
            CurveSet

        Raises:
            BootstrapError: From the first curve that fails
        """
        curve_set = CurveSet(self.build_discount_curve(discount_instruments))

        for tenor, instruments in _normalize_forward_instruments(forward_instruments):
            curve_set.set_forward_curve(tenor, self.build_discount_curve(instruments))
            logger.debug("Built %s forward curve", tenor.label)

        return curve_set

    def build_parallel(
        self,
        discount_instruments: Sequence[CurveInstrument],
        forward_instruments: Optional[ForwardInstruments] = None,
        max_workers: Optional[int] = None
    ) -> CurveSet:
        """
        Build the curve set with tenor curves bootstrapped concurrently.

        Produces the same curves as build(). If several tenor curves fail,
        the error of the first one in input order is raised.
        """
        curve_set = CurveSet(self.build_discount_curve(discount_instruments))

        tasks = _normalize_forward_instruments(forward_instruments)
        if not tasks:
            return curve_set

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [
                (tenor, pool.submit(self.build_discount_curve, instruments))
                for tenor, instruments in tasks
            ]
            for tenor, future in futures:
                curve_set.set_forward_curve(tenor, future.result())
                logger.debug("Built %s forward curve", tenor.label)

        return curve_set


# One batch element: (discount instruments, forward instruments)
CurveSetInputs = Tuple[Sequence[CurveInstrument], Optional[ForwardInstruments]]


def _build_curve_set(
    config: BootstrapConfig,
    discount_instruments: Sequence[CurveInstrument],
    forward_instruments: Optional[ForwardInstruments]
) -> CurveSet:
    # Module level so process pools can pickle it
    return MultiCurveBuilder(config).build(discount_instruments, forward_instruments)


def _build_discount_curve(
    config: BootstrapConfig,
    instruments: Sequence[CurveInstrument]
) -> Curve:
    return SequentialBootstrapper(config).bootstrap(instruments).curve


class ParallelCurveSetBuilder:
    """
    Build many independent curve sets on a worker pool.

    Every element runs to completion; failures are collected per batch
    index rather than cancelling the rest.

    Attributes:
        config: Bootstrap settings shared by every element
        max_workers: Pool size (executor default when None)
        use_processes: Use a process pool instead of threads
    """

    def __init__(
        self,
        config: Optional[BootstrapConfig] = None,
        max_workers: Optional[int] = None,
        use_processes: bool = False
    ):
        self.config = config or BootstrapConfig()
        self.max_workers = max_workers
        self.use_processes = use_processes

    def _executor(self) -> Executor:
        if self.use_processes:
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def _run(self, fn, args_list: List[tuple]) -> List[Union[object, Exception]]:
        if not args_list:
            return []
        with self._executor() as pool:
            futures = [pool.submit(fn, self.config, *args) for args in args_list]
            outcomes: List[Union[object, Exception]] = []
            for future in futures:
                try:
                    outcomes.append(future.result())
                except Exception as exc:
                    outcomes.append(exc)
        return outcomes

    @staticmethod
    def _raise_if_failed(outcomes: List[Union[object, Exception]]) -> None:
        errors = {i: o for i, o in enumerate(outcomes) if isinstance(o, Exception)}
        if errors:
            logger.debug("Batch build: %d of %d elements failed", len(errors), len(outcomes))
            raise BatchBuildError(errors)

    def build_batch_results(
        self,
        inputs: Sequence[CurveSetInputs]
    ) -> List[Union[CurveSet, Exception]]:
        """
        Build every element, returning a CurveSet or the raised exception
        for each, in input order.
        """
        return self._run(_build_curve_set, [tuple(item) for item in inputs])

    def build_batch(self, inputs: Sequence[CurveSetInputs]) -> List[CurveSet]:
        """
        Build every element.

        Raises:
            BatchBuildError: If any element failed, with every failure
                keyed by batch index
        """
        outcomes = self.build_batch_results(inputs)
        self._raise_if_failed(outcomes)
        return outcomes

    def build_single_curves_batch(
        self,
        inputs: Sequence[Sequence[CurveInstrument]]
    ) -> List[CurveSet]:
        outcomes = self._run(_build_curve_set, [(insts, None) for insts in inputs])
        self._raise_if_failed(outcomes)
        return outcomes

    def build_discount_curves_batch(
        self,
        inputs: Sequence[Sequence[CurveInstrument]]
    ) -> List[Curve]:
        outcomes = self._run(_build_discount_curve, [(insts,) for insts in inputs])
        self._raise_if_failed(outcomes)
        return outcomes


__all__ = [
    "Tenor",
    "CurveSet",
    "MultiCurveBuilder",
    "ParallelCurveSetBuilder",
]
