"""
Bootstrap configuration.

BootstrapConfig is an immutable value passed explicitly to every
bootstrapper and builder:
- tolerance: Residual tolerance for the per-pillar root solve
- max_iterations: Iteration cap for Newton-Raphson / Brent
- interpolation: Interpolation method of the produced curves
- allow_extrapolation: Whether produced curves answer queries beyond their pillars
- allow_negative_rates: Skip the negative-rate and monotone-DF checks
- max_maturity: Longest instrument maturity accepted (years)
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Union


class InterpolationMethod(Enum):
    """Curve interpolation method."""
    LOG_LINEAR = "LogLinear"
    LINEAR_ZERO_RATE = "LinearZeroRate"
    FLAT_FORWARD = "FlatForward"
    CUBIC_SPLINE = "CubicSpline"
    MONOTONIC_CUBIC = "MonotonicCubic"

    @classmethod
    def from_string(cls, s: str) -> "InterpolationMethod":
        """Parse interpolation method from a name."""
        mapping = {
            "LOGLINEAR": cls.LOG_LINEAR,
            "LOGDF": cls.LOG_LINEAR,
            "LINEARZERORATE": cls.LINEAR_ZERO_RATE,
            "LINEARZERO": cls.LINEAR_ZERO_RATE,
            "ZEROLINEAR": cls.LINEAR_ZERO_RATE,
            "FLATFORWARD": cls.FLAT_FORWARD,
            "STEPFORWARD": cls.FLAT_FORWARD,
            "CUBICSPLINE": cls.CUBIC_SPLINE,
            "CUBIC": cls.CUBIC_SPLINE,
            "SPLINE": cls.CUBIC_SPLINE,
            "MONOTONICCUBIC": cls.MONOTONIC_CUBIC,
            "MONOTONECUBIC": cls.MONOTONIC_CUBIC,
            "MONOTONIC": cls.MONOTONIC_CUBIC,
            "MONOTONE": cls.MONOTONIC_CUBIC,
        }
        key = s.upper().replace("_", "").replace("-", "").replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown interpolation method: {s}")


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Immutable bootstrap settings.

    Attributes:
        tolerance: Convergence tolerance on the residual (default 1e-12)
        max_iterations: Maximum solver iterations per pillar (default 100)
        interpolation: Interpolation method for the output curve
        allow_extrapolation: Flat-rate extrapolation beyond the pillar range
        allow_negative_rates: Accept negative zero rates / increasing DFs
        max_maturity: Maximum instrument maturity in years (default 50)
    """
    tolerance: float = 1e-12
    max_iterations: int = 100
    interpolation: InterpolationMethod = InterpolationMethod.LOG_LINEAR
    allow_extrapolation: bool = True
    allow_negative_rates: bool = False
    max_maturity: float = 50.0

    def __post_init__(self):
        if not self.tolerance > 0:
            raise ValueError(f"Tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if not self.max_maturity > 0:
            raise ValueError(f"max_maturity must be positive, got {self.max_maturity}")
        if isinstance(self.interpolation, str):
            object.__setattr__(
                self, "interpolation", InterpolationMethod.from_string(self.interpolation)
            )

    @classmethod
    def high_precision(cls) -> "BootstrapConfig":
        """Tighter tolerance, more iterations."""
        return cls(tolerance=1e-14, max_iterations=500)

    @classmethod
    def fast(cls) -> "BootstrapConfig":
        """Looser tolerance for scenario sweeps."""
        return cls(tolerance=1e-8, max_iterations=50)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "BootstrapConfig":
        """
        Build a config from plain values (e.g. parsed JSON/YAML).

        Interpolation may be given by name. Unknown keys are rejected.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        kwargs = dict(values)
        if "interpolation" in kwargs:
            kwargs["interpolation"] = _parse_interpolation(kwargs["interpolation"])
        if "max_iterations" in kwargs:
            kwargs["max_iterations"] = int(kwargs["max_iterations"])
        for key in ("tolerance", "max_maturity"):
            if key in kwargs:
                kwargs[key] = float(kwargs[key])
        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Serialize to plain values."""
        return {
            "tolerance": self.tolerance,
            "max_iterations": self.max_iterations,
            "interpolation": self.interpolation.value,
            "allow_extrapolation": self.allow_extrapolation,
            "allow_negative_rates": self.allow_negative_rates,
            "max_maturity": self.max_maturity,
        }

    def with_tolerance(self, tolerance: float) -> "BootstrapConfig":
        return replace(self, tolerance=tolerance)

    def with_max_iterations(self, max_iterations: int) -> "BootstrapConfig":
        return replace(self, max_iterations=max_iterations)

    def with_interpolation(
        self, interpolation: Union[InterpolationMethod, str]
    ) -> "BootstrapConfig":
        return replace(self, interpolation=_parse_interpolation(interpolation))

    def with_extrapolation(self, allow: bool) -> "BootstrapConfig":
        return replace(self, allow_extrapolation=allow)

    def with_negative_rates(self, allow: bool) -> "BootstrapConfig":
        return replace(self, allow_negative_rates=allow)

    def with_max_maturity(self, max_maturity: float) -> "BootstrapConfig":
        return replace(self, max_maturity=max_maturity)


def _parse_interpolation(value: Union[InterpolationMethod, str]) -> InterpolationMethod:
    if isinstance(value, InterpolationMethod):
        return value
    return InterpolationMethod.from_string(str(value))


__all__ = [
    "InterpolationMethod",
    "BootstrapConfig",
]
