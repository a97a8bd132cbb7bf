"""
Pricers package - instrument pricing against bootstrapped curves.

Provides pricing engines for:
- Vanilla fixed-float interest rate swaps (multi-curve)
"""

from .swaps import (
    SwapPricer,
    SwapCashflows,
    SwapLegCashflow,
    price_vanilla_swap,
    compute_swap_par_rate,
)

__all__ = [
    "SwapPricer",
    "SwapCashflows",
    "SwapLegCashflow",
    "price_vanilla_swap",
    "compute_swap_par_rate",
]
