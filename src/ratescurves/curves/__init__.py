"""
Curves package - yield curve construction and manipulation.

Provides:
- Curve: Main curve object with discount factors and interpolation
- SequentialBootstrapper: Bootstrap a curve from market instruments
- MultiCurveBuilder / ParallelCurveSetBuilder: Discount + tenor curve sets
- Ois, Irs, Fra, Future: Curve instruments
"""

from .curve import Curve, create_flat_curve
from .bootstrap import (
    PartialCurve,
    SequentialBootstrapper,
    BootstrapResult,
    bootstrap_from_quotes,
    instruments_from_quotes,
)
from .interpolation import (
    Interpolator,
    CubicSplineInterpolator,
    MonotonicCubicInterpolator,
    create_interpolator,
)
from .instruments import (
    CurveInstrument,
    Frequency,
    Ois,
    Irs,
    Fra,
    Future,
)
from .multi_curve import (
    Tenor,
    CurveSet,
    MultiCurveBuilder,
    ParallelCurveSetBuilder,
)

__all__ = [
    "Curve",
    "create_flat_curve",
    "PartialCurve",
    "SequentialBootstrapper",
    "BootstrapResult",
    "bootstrap_from_quotes",
    "instruments_from_quotes",
    "Interpolator",
    "CubicSplineInterpolator",
    "MonotonicCubicInterpolator",
    "create_interpolator",
    "CurveInstrument",
    "Frequency",
    "Ois",
    "Irs",
    "Fra",
    "Future",
    "Tenor",
    "CurveSet",
    "MultiCurveBuilder",
    "ParallelCurveSetBuilder",
]
