#!/usr/bin/env python
"""
Rates Curves Library Demo Script

This script demonstrates the full workflow of the curves library:
1. Load market quotes and build an OIS discount curve
2. Build 3M and 6M forward curves (sequentially and in parallel)
3. Check swap par-rate round trips on the curve set
4. Compute curve sensitivities and verify them against bump-and-revalue
5. Export curve and sensitivity tables

Usage:
    python run_demo.py [--quotes QUOTES_CSV] [--output-dir OUTPUT_DIR] [--verbose]
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ratescurves import BootstrapConfig, InterpolationMethod
from ratescurves.curves import (
    CurveSet,
    Irs,
    MultiCurveBuilder,
    Tenor,
    instruments_from_quotes,
)
from ratescurves.curves.instruments import CurveInstrument
from ratescurves.pricers import SwapPricer
from ratescurves.risk import SensitivityBootstrapper


# Sample quotes: (curve, instrument_type, maturity/start, end, rate)
SAMPLE_QUOTES = [
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 0.5, "rate": 0.0520},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 1.0, "rate": 0.0500},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 2.0, "rate": 0.0465},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 3.0, "rate": 0.0440},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 5.0, "rate": 0.0415},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 7.0, "rate": 0.0405},
    {"curve": "OIS", "instrument_type": "OIS", "maturity": 10.0, "rate": 0.0400},
    {"curve": "3M", "instrument_type": "FRA", "start": 0.25, "end": 0.5, "rate": 0.0535},
    {"curve": "3M", "instrument_type": "FUTURE", "maturity": 0.75, "price": 94.75,
     "convexity_adjustment": 0.0001},
    {"curve": "3M", "instrument_type": "IRS", "maturity": 2.0, "rate": 0.0480},
    {"curve": "3M", "instrument_type": "IRS", "maturity": 5.0, "rate": 0.0430},
    {"curve": "3M", "instrument_type": "IRS", "maturity": 10.0, "rate": 0.0415},
    {"curve": "6M", "instrument_type": "IRS", "maturity": 1.0, "rate": 0.0515,
     "fixed_frequency": "SEMI_ANNUAL", "float_frequency": "SEMI_ANNUAL"},
    {"curve": "6M", "instrument_type": "IRS", "maturity": 2.0, "rate": 0.0490,
     "fixed_frequency": "SEMI_ANNUAL", "float_frequency": "SEMI_ANNUAL"},
    {"curve": "6M", "instrument_type": "IRS", "maturity": 5.0, "rate": 0.0440,
     "fixed_frequency": "SEMI_ANNUAL", "float_frequency": "SEMI_ANNUAL"},
    {"curve": "6M", "instrument_type": "IRS", "maturity": 10.0, "rate": 0.0425,
     "fixed_frequency": "SEMI_ANNUAL", "float_frequency": "SEMI_ANNUAL"},
]


def load_quotes(path: Optional[Path]) -> pd.DataFrame:
    """Load curve quotes from CSV, or the built-in sample set."""
    if path is None:
        return pd.DataFrame(SAMPLE_QUOTES)
    return pd.read_csv(path, comment="#")


def split_quotes(quotes_df: pd.DataFrame) -> Dict[str, List[CurveInstrument]]:
    """Group quotes by target curve and convert them to instruments."""
    grouped = {}
    for curve_name, group in quotes_df.groupby("curve", sort=False):
        records = [
            {k: v for k, v in row.items() if k != "curve" and pd.notna(v)}
            for row in group.to_dict("records")
        ]
        grouped[curve_name] = instruments_from_quotes(records)
    return grouped


def print_curve_table(name: str, curve_set: CurveSet, tenor: Optional[Tenor] = None) -> None:
    curve = curve_set.discount_curve if tenor is None else curve_set.forward_curve(tenor)
    frame = curve.to_frame()
    frame["zero_rate"] = frame["zero_rate"] * 100

    print(f"\n{name}:")
    print(f"  {'Time':>6s}  {'DF':>12s}  {'Zero (%)':>9s}")
    for _, row in frame.iterrows():
        print(f"  {row['time']:6.2f}  {row['discount_factor']:12.8f}  {row['zero_rate']:9.4f}")


def build_curves(
    grouped: Dict[str, List[CurveInstrument]],
    config: BootstrapConfig
) -> CurveSet:
    """Build the curve set sequentially and in parallel and compare."""
    print("\n" + "="*60)
    print("Building Curve Set")
    print("="*60)

    forward = {
        Tenor.from_string(name): insts
        for name, insts in grouped.items() if name != "OIS"
    }
    builder = MultiCurveBuilder(config)

    start = time.perf_counter()
    sequential = builder.build(grouped["OIS"], forward)
    seq_ms = (time.perf_counter() - start) * 1000

    start = time.perf_counter()
    parallel = builder.build_parallel(grouped["OIS"], forward)
    par_ms = (time.perf_counter() - start) * 1000

    max_diff = 0.0
    for tenor in sequential.tenors:
        for t in sequential.forward_curve(tenor).pillars:
            diff = abs(
                sequential.forward_curve(tenor).discount_factor(t)
                - parallel.forward_curve(tenor).discount_factor(t)
            )
            max_diff = max(max_diff, diff)

    print(f"  Discount pillars: {sequential.discount_curve.pillar_count()}")
    print(f"  Forward curves:   {', '.join(t.label for t in sequential.tenors)}")
    print(f"  Sequential build: {seq_ms:.2f} ms")
    print(f"  Parallel build:   {par_ms:.2f} ms")
    print(f"  Max DF difference: {max_diff:.2e}")

    print_curve_table("OIS discount curve", sequential)
    for tenor in sequential.tenors:
        print_curve_table(f"{tenor.label} forward curve", sequential, tenor)

    return sequential


def check_par_rates(curve_set: CurveSet, grouped: Dict[str, List[CurveInstrument]]) -> pd.DataFrame:
    """Price every IRS quote at its own par rate."""
    print("\n" + "="*60)
    print("Swap Par-Rate Check")
    print("="*60)

    rows = []
    for name, instruments in grouped.items():
        if name == "OIS":
            continue
        tenor = Tenor.from_string(name)
        pricer = SwapPricer(curve_set, tenor)
        for inst in instruments:
            if not isinstance(inst, Irs):
                continue
            par = pricer.par_rate(inst.maturity, inst.fixed_frequency)
            pv = pricer.present_value(inst.maturity, par, inst.fixed_frequency, notional=1_000_000)
            rows.append({
                "tenor": name,
                "maturity": inst.maturity,
                "quote": inst.rate,
                "model_par": par,
                "pv_at_par": pv,
            })
            print(f"  {name:>3s} {inst.maturity:5.1f}Y  quote {inst.rate*100:.4f}%  "
                  f"par {par*100:.4f}%  PV@par {pv:+.2e}")

    return pd.DataFrame(rows)


def run_sensitivities(
    instruments: List[CurveInstrument],
    config: BootstrapConfig,
    tolerance: float
) -> pd.DataFrame:
    """Compute and verify OIS curve sensitivities."""
    print("\n" + "="*60)
    print("Curve Sensitivities (OIS)")
    print("="*60)

    engine = SensitivityBootstrapper(config)
    result = engine.bootstrap_with_sensitivities(instruments)
    labels = [f"{inst.instrument_type} {inst.maturity:g}Y" for inst in instruments]
    frame = result.to_frame(labels)

    with pd.option_context("display.float_format", "{:.6f}".format, "display.width", 160):
        print(frame)

    verification = engine.verify_sensitivities(instruments, tolerance)
    print(f"\n  Max absolute difference: {verification.max_absolute_difference:.3e}")
    print(f"  Max relative difference: {verification.max_relative_difference:.3e}")
    status = "PASS" if verification.within_tolerance else "FAIL"
    print(f"  AAD vs bump-and-revalue (tol {tolerance:g}): {status}")

    return frame


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Rates Curves Library Demo")
    parser.add_argument(
        "--quotes",
        type=str,
        default=None,
        help="CSV of quotes (columns: curve, instrument_type, maturity, start, end, rate, ...)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory to write curve and sensitivity tables"
    )
    parser.add_argument(
        "--interpolation",
        type=str,
        default=InterpolationMethod.LOG_LINEAR.value,
        help="Interpolation method (LogLinear, LinearZeroRate, FlatForward, CubicSpline, MonotonicCubic)"
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=0.01,
        help="Tolerance for sensitivity verification"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = BootstrapConfig().with_interpolation(args.interpolation)

    print("="*60)
    print("RATES CURVES LIBRARY DEMO")
    print(f"Interpolation: {config.interpolation.value}")
    print("="*60)

    quotes_df = load_quotes(Path(args.quotes) if args.quotes else None)
    grouped = split_quotes(quotes_df)
    for name, insts in grouped.items():
        print(f"  {name}: {len(insts)} instruments")

    curve_set = build_curves(grouped, config)
    par_table = check_par_rates(curve_set, grouped)
    sens_table = run_sensitivities(grouped["OIS"], config, args.tolerance)

    if args.output_dir:
        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        curve_set.discount_curve.to_frame().to_csv(output_dir / "ois_curve.csv", index=False)
        for tenor in curve_set.tenors:
            curve_set.forward_curve(tenor).to_frame().to_csv(
                output_dir / f"forward_{tenor.label}.csv", index=False
            )
        par_table.to_csv(output_dir / "par_rates.csv", index=False)
        sens_table.to_csv(output_dir / "ois_sensitivities.csv")
        print(f"\nTables written to {output_dir}")

    print("\n" + "="*60)
    print("DEMO COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
