"""
Interest rate swap pricing engine.

Prices vanilla fixed-float interest rate swaps off a CurveSet:
- Discounting on the set's discount curve
- Floating-leg forwards projected off the index tenor's forward curve
  (the discount curve when the set has none for that tenor)

Times are year fractions from the valuation date; accruals are the plain
differences between period boundaries.

Pricing formula:
    PV_swap = PV_float - PV_fixed  (fixed payer)

    PV_fixed = K * sum(delta_i * DF(T_i))
    PV_float = sum(F(t_{j-1}, t_j) * delta_j * DF(t_j))
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..curves.instruments import Frequency, Irs
from ..curves.multi_curve import CurveSet, Tenor

# Slack when counting periods so exact multiples are not rounded up
_PERIOD_SLACK = 1e-9


@dataclass
class SwapLegCashflow:
    """A single swap leg cashflow."""
    payment_time: float
    amount: float  # Fixed amount or projected floating amount
    accrual_start: float
    accrual_end: float
    year_fraction: float
    discount_factor: float = 1.0
    forward_rate: Optional[float] = None  # For floating leg


@dataclass
class SwapCashflows:
    """Complete swap cashflows for both legs."""
    fixed_leg: List[SwapLegCashflow]
    floating_leg: List[SwapLegCashflow]
    notional: float
    fixed_rate: float
    maturity: float
    pay_fixed: bool

    @property
    def pv_fixed(self) -> float:
        """PV of fixed leg."""
        return sum(cf.amount * cf.discount_factor for cf in self.fixed_leg)

    @property
    def pv_floating(self) -> float:
        """PV of floating leg."""
        return sum(cf.amount * cf.discount_factor for cf in self.floating_leg)

    @property
    def net_pv(self) -> float:
        """Net PV to the holder (fixed payer if pay_fixed)."""
        if self.pay_fixed:
            return self.pv_floating - self.pv_fixed
        return self.pv_fixed - self.pv_floating


def _fixed_schedule(maturity: float, frequency: Frequency) -> List[Tuple[float, float, float]]:
    """(accrual_start, accrual_end, accrual) triples, same schedule as Irs."""
    schedule = Irs(maturity, 0.0, fixed_frequency=frequency).accrual_schedule()
    periods = []
    for t_end, tau in schedule:
        periods.append((t_end - tau, t_end, tau))
    return periods


def _float_schedule(maturity: float, tenor: Tenor) -> List[Tuple[float, float, float]]:
    """Regular tenor periods from t=0 with a short final stub ending at maturity."""
    dt = tenor.period_years
    n = max(1, int(np.ceil(maturity / dt - _PERIOD_SLACK)))
    periods = []
    t_prev = 0.0
    for i in range(1, n):
        t_i = dt * i
        if t_i >= maturity:
            break
        periods.append((t_prev, t_i, t_i - t_prev))
        t_prev = t_i
    periods.append((t_prev, maturity, maturity - t_prev))
    return periods


class SwapPricer:
    """
    Interest rate swap pricing engine.

    Attributes:
        curve_set: Discount and forward curves
        tenor: Floating index tenor (selects the projection curve and
            the floating-leg period)
    """

    def __init__(self, curve_set: CurveSet, tenor: Tenor = Tenor.THREE_MONTH):
        self.curve_set = curve_set
        self.tenor = tenor

    @property
    def discount_curve(self):
        return self.curve_set.discount_curve

    @property
    def projection_curve(self):
        return self.curve_set.forward_curve(self.tenor)

    def annuity(self, maturity: float, fixed_frequency: Frequency = Frequency.ANNUAL) -> float:
        """Fixed-leg annuity sum(delta_i * DF(T_i)) on the discount curve."""
        annuity = 0.0
        for _, t_end, tau in _fixed_schedule(maturity, fixed_frequency):
            annuity += tau * self.discount_curve.discount_factor(t_end)
        return annuity

    def float_leg_pv(self, maturity: float) -> float:
        """PV of a unit-notional floating leg."""
        pv = 0.0
        for t_start, t_end, tau in _float_schedule(maturity, self.tenor):
            fwd = self.projection_curve.forward_rate(t_start, t_end)
            pv += fwd * tau * self.discount_curve.discount_factor(t_end)
        return pv

    def par_rate(self, maturity: float, fixed_frequency: Frequency = Frequency.ANNUAL) -> float:
        """
        Calculate par swap rate (rate at which PV = 0).

        R = PV_float / Annuity. Single-curve this reduces to
        (1 - DF(Tn)) / Annuity.
        """
        annuity = self.annuity(maturity, fixed_frequency)
        if annuity <= 0:
            return 0.0
        return self.float_leg_pv(maturity) / annuity

    def generate_cashflows(
        self,
        maturity: float,
        fixed_rate: float,
        fixed_frequency: Frequency = Frequency.ANNUAL,
        notional: float = 1.0,
        pay_fixed: bool = True
    ) -> SwapCashflows:
        """
        Generate swap cashflows for both legs.

        Args:
            maturity: Swap maturity in years
            fixed_rate: Fixed rate (decimal)
            fixed_frequency: Fixed-leg payment frequency
            notional: Notional amount
            pay_fixed: True for a fixed payer

        Returns:
            SwapCashflows object with both legs
        """
        fixed_cfs = []
        for t_start, t_end, tau in _fixed_schedule(maturity, fixed_frequency):
            fixed_cfs.append(SwapLegCashflow(
                payment_time=t_end,
                amount=notional * fixed_rate * tau,
                accrual_start=t_start,
                accrual_end=t_end,
                year_fraction=tau,
                discount_factor=self.discount_curve.discount_factor(t_end),
            ))

        float_cfs = []
        for t_start, t_end, tau in _float_schedule(maturity, self.tenor):
            fwd = self.projection_curve.forward_rate(t_start, t_end)
            float_cfs.append(SwapLegCashflow(
                payment_time=t_end,
                amount=notional * fwd * tau,
                accrual_start=t_start,
                accrual_end=t_end,
                year_fraction=tau,
                discount_factor=self.discount_curve.discount_factor(t_end),
                forward_rate=fwd,
            ))

        return SwapCashflows(
            fixed_leg=fixed_cfs,
            floating_leg=float_cfs,
            notional=notional,
            fixed_rate=fixed_rate,
            maturity=maturity,
            pay_fixed=pay_fixed,
        )

    def present_value(
        self,
        maturity: float,
        fixed_rate: float,
        fixed_frequency: Frequency = Frequency.ANNUAL,
        notional: float = 1.0,
        pay_fixed: bool = True
    ) -> float:
        """
        Calculate swap present value.

        Returns:
            Swap PV (positive = in-the-money for the specified direction)
        """
        cashflows = self.generate_cashflows(
            maturity, fixed_rate, fixed_frequency, notional, pay_fixed
        )
        return cashflows.net_pv

    def dv01(
        self,
        maturity: float,
        fixed_frequency: Frequency = Frequency.ANNUAL,
        notional: float = 1.0,
        pay_fixed: bool = True
    ) -> float:
        """
        Swap DV01 (value of a 1bp move in the fixed rate).

        Approximation: DV01 = Notional * Annuity / 10000
        """
        dv01 = notional * self.annuity(maturity, fixed_frequency) / 10000

        # Sign convention: pay fixed means losing value when rates rise
        if pay_fixed:
            return -dv01
        return dv01


def price_vanilla_swap(
    curve_set: CurveSet,
    maturity: float,
    fixed_rate: float,
    fixed_frequency: Frequency = Frequency.ANNUAL,
    notional: float = 1.0,
    pay_fixed: bool = True,
    tenor: Tenor = Tenor.THREE_MONTH
) -> float:
    """Price a vanilla interest rate swap off a curve set."""
    pricer = SwapPricer(curve_set, tenor)
    return pricer.present_value(maturity, fixed_rate, fixed_frequency, notional, pay_fixed)


def compute_swap_par_rate(
    curve_set: CurveSet,
    maturity: float,
    fixed_frequency: Frequency = Frequency.ANNUAL,
    tenor: Tenor = Tenor.THREE_MONTH
) -> float:
    """
    Compute par swap rate.

    Args:
        curve_set: Discount/projection curves
        maturity: Swap maturity in years
        fixed_frequency: Fixed-leg payment frequency
        tenor: Floating index tenor

    Returns:
        Par rate (decimal)
    """
    pricer = SwapPricer(curve_set, tenor)
    return pricer.par_rate(maturity, fixed_frequency)


__all__ = [
    "SwapPricer",
    "SwapLegCashflow",
    "SwapCashflows",
    "price_vanilla_swap",
    "compute_swap_par_rate",
]
