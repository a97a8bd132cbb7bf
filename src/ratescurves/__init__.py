"""
RatesCurves: Multi-Curve Bootstrapping & Curve Sensitivity Library

A modular library for:
- Bootstrapping discount and tenor forward curves from OIS, IRS, FRA and
  futures quotes
- Interpolating discount factors (log-linear, linear zero, flat forward,
  cubic spline, monotone cubic)
- Building multi-curve sets sequentially, concurrently or in batches
- Computing dDF/drate Jacobians by implicit differentiation, checked
  against bump-and-revalue

Scope: curve construction and its first-order input sensitivities.
"""

__version__ = "0.1.0"

# Configuration and errors
from .config import BootstrapConfig, InterpolationMethod
from .errors import (
    CurveError,
    InstrumentValidationError,
    CurveConstructionError,
    InvalidMaturityError,
    OutOfBoundsError,
    BootstrapError,
    ConvergenceError,
    DuplicateMaturityError,
    NegativeRateError,
    ArbitrageError,
    BatchBuildError,
)

# Curves
from .curves import (
    Curve,
    create_flat_curve,
    SequentialBootstrapper,
    BootstrapResult,
    bootstrap_from_quotes,
    Frequency,
    Ois,
    Irs,
    Fra,
    Future,
    Tenor,
    CurveSet,
    MultiCurveBuilder,
    ParallelCurveSetBuilder,
)

# Pricers
from .pricers import SwapPricer, compute_swap_par_rate

# Risk
from .risk import (
    SensitivityBootstrapper,
    SensitivityResult,
    SensitivityVerification,
)

__all__ = [
    "__version__",
    "BootstrapConfig",
    "InterpolationMethod",
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
    "Curve",
    "create_flat_curve",
    "SequentialBootstrapper",
    "BootstrapResult",
    "bootstrap_from_quotes",
    "Frequency",
    "Ois",
    "Irs",
    "Fra",
    "Future",
    "Tenor",
    "CurveSet",
    "MultiCurveBuilder",
    "ParallelCurveSetBuilder",
    "SwapPricer",
    "compute_swap_par_rate",
    "SensitivityBootstrapper",
    "SensitivityResult",
    "SensitivityVerification",
]
