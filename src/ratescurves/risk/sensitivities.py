"""
Curve sensitivities to input market rates.

Computes the Jacobian dDF_i / drate_j of every bootstrapped pillar
discount factor with respect to every input quote:
- Implicit-function ("AAD") path: differentiates the residual equation
  each pillar solves, once per pillar, with no extra bootstraps
- Bump-and-revalue path: one full rebuild per input with its rate bumped
- Verification comparing the two

Matrix layout: rows are pillars in maturity order, columns are inputs in
the caller's order. For inputs already sorted by maturity the matrix is
lower triangular.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import BootstrapConfig
from ..curves.bootstrap import DERIVATIVE_FLOOR, PartialCurve, SequentialBootstrapper
from ..curves.curve import Curve
from ..curves.instruments import CurveInstrument
from .bumping import bump_instruments

logger = logging.getLogger(__name__)

# Default rate bump: 1bp
DEFAULT_BUMP_SIZE = 1e-4

# DF step for the finite-difference coupling between pillars
COUPLING_STEP = 1e-8

# Bump sensitivities below this are compared in absolute terms only
_RELATIVE_FLOOR = 1e-10


@dataclass
class SensitivityResult:
    """
    Bootstrapped curve plus its input-rate Jacobian.

    Attributes:
        curve: Bootstrapped curve
        pillars: Pillar maturities (sorted)
        discount_factors: Pillar discount factors
        sensitivities: Array of shape (n_pillars, n_inputs)
        method: "aad" or "bump"
    """
    curve: Curve
    pillars: List[float]
    discount_factors: List[float]
    sensitivities: np.ndarray
    method: str = "aad"

    @property
    def shape(self):
        return self.sensitivities.shape

    def sensitivity(self, pillar_index: int, input_index: int) -> float:
        return float(self.sensitivities[pillar_index, input_index])

    def to_frame(self, labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """
        Jacobian as a DataFrame indexed by pillar maturity.

        Args:
            labels: Column labels per input (defaults to input indices)
        """
        n_inputs = self.sensitivities.shape[1]
        columns = list(labels) if labels is not None else list(range(n_inputs))
        if len(columns) != n_inputs:
            raise ValueError(f"Expected {n_inputs} labels, got {len(columns)}")
        frame = pd.DataFrame(self.sensitivities, index=self.pillars, columns=columns)
        frame.index.name = "pillar"
        return frame


@dataclass
class SensitivityVerification:
    """Comparison of implicit-function and bump-and-revalue Jacobians."""
    aad_sensitivities: np.ndarray
    bump_sensitivities: np.ndarray
    max_absolute_difference: float
    max_relative_difference: float
    within_tolerance: bool

    def to_frame(self) -> pd.DataFrame:
        """One row per (pillar, input) entry with both values and their differences."""
        rows = []
        n_pillars, n_inputs = self.aad_sensitivities.shape
        for i in range(n_pillars):
            for j in range(n_inputs):
                aad = float(self.aad_sensitivities[i, j])
                bump = float(self.bump_sensitivities[i, j])
                abs_diff, rel_diff = _entry_differences(aad, bump)
                rows.append({
                    "pillar_index": i,
                    "input_index": j,
                    "aad": aad,
                    "bump": bump,
                    "abs_diff": abs_diff,
                    "rel_diff": rel_diff,
                })
        return pd.DataFrame(rows)


def _entry_differences(aad: float, bump: float):
    abs_diff = abs(aad - bump)
    if abs(bump) > _RELATIVE_FLOOR:
        return abs_diff, abs_diff / abs(bump)
    return abs_diff, abs_diff


class SensitivityBootstrapper:
    """
    Bootstrapper that also returns dDF/drate.

    Attributes:
        config: Bootstrap settings
        bump_size: Rate bump for the bump-and-revalue path (decimal)
    """

    def __init__(
        self,
        config: Optional[BootstrapConfig] = None,
        bump_size: float = DEFAULT_BUMP_SIZE
    ):
        if bump_size == 0:
            raise ValueError("bump_size must be non-zero")
        self.config = config or BootstrapConfig()
        self.bump_size = bump_size
        self._bootstrapper = SequentialBootstrapper(self.config)

    def with_bump_size(self, bump_size: float) -> "SensitivityBootstrapper":
        return SensitivityBootstrapper(self.config, bump_size)

    def bootstrap_with_sensitivities(
        self,
        instruments: Sequence[CurveInstrument]
    ) -> SensitivityResult:
        """
        Bootstrap and compute the Jacobian by the implicit function theorem.

        Pillar i solves r_i(DF_i; DF_0..DF_{i-1}, rate_{s(i)}) = 0 where s(i)
        is the input behind pillar i. Differentiating that equation:

            dDF_i/drate = (e_{s(i)} - sum_m c_im * dDF_m/drate) / g_i

        with g_i = dr_i/dDF_i and c_im = dr_i/dDF_m. g_i is the instrument's
        residual derivative; c_im is a forward difference on the partial
        curve. Rows with |g_i| below the floor are left at zero.
        """
        result = self._bootstrapper.bootstrap(instruments)
        pillars = result.pillars
        dfs = result.discount_factors
        n_pillars = len(pillars)

        sens = np.zeros((n_pillars, len(instruments)))

        for i in range(n_pillars):
            inst = instruments[result.order[i]]
            partial = PartialCurve(pillars[:i], dfs[:i])
            df_i = dfs[i]

            g = inst.residual_derivative(df_i, partial)
            if not np.isfinite(g) or abs(g) < DERIVATIVE_FLOOR:
                logger.debug("Zero residual derivative at pillar %d; row left at zero", i)
                continue

            # dr/drate = -1, so the direct term is +1/g
            sens[i, result.order[i]] += 1.0 / g

            base_residual = inst.residual(df_i, partial)
            for m in range(i):
                bumped_residual = inst.residual(df_i, partial.bumped(m, COUPLING_STEP))
                coupling = (bumped_residual - base_residual) / COUPLING_STEP
                if coupling != 0.0:
                    sens[i, :] += (-coupling / g) * sens[m, :]

        return SensitivityResult(
            curve=result.curve,
            pillars=pillars,
            discount_factors=dfs,
            sensitivities=sens,
            method="aad",
        )

    def bootstrap_with_bump_and_revalue(
        self,
        instruments: Sequence[CurveInstrument]
    ) -> SensitivityResult:
        """
        Jacobian by forward differences over full rebuilds.

        Each input is bumped by bump_size on its own copy of the list.
        A failed bumped bootstrap raises.
        """
        base = self._bootstrapper.bootstrap(instruments)
        base_dfs = np.array(base.discount_factors, dtype=np.float64)

        sens = np.zeros((len(base_dfs), len(instruments)))
        for j in range(len(instruments)):
            bumped = self._bootstrapper.bootstrap(
                bump_instruments(instruments, j, self.bump_size)
            )
            bumped_dfs = np.array(bumped.discount_factors, dtype=np.float64)
            sens[:, j] = (bumped_dfs - base_dfs) / self.bump_size

        return SensitivityResult(
            curve=base.curve,
            pillars=base.pillars,
            discount_factors=base.discount_factors,
            sensitivities=sens,
            method="bump",
        )

    def verify_sensitivities(
        self,
        instruments: Sequence[CurveInstrument],
        tolerance: float
    ) -> SensitivityVerification:
        """
        Run both paths and compare entry by entry.

        Relative difference divides by the bump entry when it exceeds
        1e-10 in magnitude. An entry fails only when both its absolute
        and relative differences exceed ``tolerance``.
        """
        aad = self.bootstrap_with_sensitivities(instruments).sensitivities
        bump = self.bootstrap_with_bump_and_revalue(instruments).sensitivities

        max_abs = 0.0
        max_rel = 0.0
        within = True
        for a, b in zip(aad.ravel(), bump.ravel()):
            abs_diff, rel_diff = _entry_differences(float(a), float(b))
            max_abs = max(max_abs, abs_diff)
            max_rel = max(max_rel, rel_diff)
            if abs_diff > tolerance and rel_diff > tolerance:
                within = False

        logger.info(
            "Sensitivity verification: max abs diff %.3e, max rel diff %.3e, within tolerance: %s",
            max_abs, max_rel, within
        )

        return SensitivityVerification(
            aad_sensitivities=aad,
            bump_sensitivities=bump,
            max_absolute_difference=max_abs,
            max_relative_difference=max_rel,
            within_tolerance=within,
        )


__all__ = [
    "SensitivityResult",
    "SensitivityVerification",
    "SensitivityBootstrapper",
    "DEFAULT_BUMP_SIZE",
]
