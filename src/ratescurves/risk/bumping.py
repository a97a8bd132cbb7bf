"""
Instrument bumping for bump-and-revalue sensitivities.

Curves here are outputs of a bootstrap, so risk is taken by shifting the
market quotes and rebuilding rather than by editing curve nodes:
- Single instrument bumps
- Bumping one instrument within a list
- Parallel bumps (every instrument)

Bump types:
- Additive (shift the rate by a decimal amount)
- Multiplicative (shift the rate by a fraction of itself)

Instruments are immutable; every bump returns new instruments.
"""

from enum import Enum
from typing import List, Sequence

from ..curves.instruments import CurveInstrument


class BumpType(Enum):
    """Type of quote bump."""
    ADDITIVE = "additive"          # Add to rate
    MULTIPLICATIVE = "multiplicative"  # Scale rate by (1 + bump)


def bump_instrument(
    instrument: CurveInstrument,
    bump: float,
    bump_type: BumpType = BumpType.ADDITIVE
) -> CurveInstrument:
    """
    Bump a single instrument's market rate.

    Futures move their price by -100 * shift so that the quoted rate
    rises by the shift.

    Args:
        instrument: Instrument to bump
        bump: Decimal shift (additive) or relative shift (multiplicative)
        bump_type: Type of bump

    Returns:
        Bumped copy
    """
    if bump_type is BumpType.MULTIPLICATIVE:
        shift = instrument.rate * bump
    else:
        shift = bump
    return instrument.with_rate_bump(shift)


def bump_instruments(
    instruments: Sequence[CurveInstrument],
    index: int,
    bump: float,
    bump_type: BumpType = BumpType.ADDITIVE
) -> List[CurveInstrument]:
    """
    Copy of ``instruments`` with only ``instruments[index]`` bumped.

    Raises:
        IndexError: If index is out of range
    """
    if not 0 <= index < len(instruments):
        raise IndexError(f"Instrument index {index} out of range for {len(instruments)} instruments")

    bumped = list(instruments)
    bumped[index] = bump_instrument(instruments[index], bump, bump_type)
    return bumped


def parallel_bump(
    instruments: Sequence[CurveInstrument],
    bump: float,
    bump_type: BumpType = BumpType.ADDITIVE
) -> List[CurveInstrument]:
    """Bump every instrument by the same amount."""
    return [bump_instrument(inst, bump, bump_type) for inst in instruments]


__all__ = [
    "BumpType",
    "bump_instrument",
    "bump_instruments",
    "parallel_bump",
]
