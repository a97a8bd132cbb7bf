"""
Risk package - curve sensitivities to market quotes.

Provides:
- Instrument bumping (single, indexed, parallel)
- Implicit-function ("AAD") Jacobian of pillar DFs w.r.t. input rates
- Bump-and-revalue Jacobian and verification against it
"""

from .bumping import (
    BumpType,
    bump_instrument,
    bump_instruments,
    parallel_bump,
)
from .sensitivities import (
    SensitivityBootstrapper,
    SensitivityResult,
    SensitivityVerification,
    DEFAULT_BUMP_SIZE,
)

__all__ = [
    "BumpType",
    "bump_instrument",
    "bump_instruments",
    "parallel_bump",
    "SensitivityBootstrapper",
    "SensitivityResult",
    "SensitivityVerification",
    "DEFAULT_BUMP_SIZE",
]
