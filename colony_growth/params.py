"""
Simulation parameters.

Defaults mirror the original control panel. A JSON file can seed them and a
dict of overrides can be applied on top, e.g.

    params = build_params(load_params("params.json"), {"width": 60})
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping

from .errors import InvalidParameter


# Changing any of these invalidates the current grid.
STRUCTURAL_FIELDS = frozenset(
    {
        "width",
        "height",
        "initial_cell_count",
        "initial_oxygen_level",
        "oxygen_diffusion_rate",
        "initial_glucose_level",
        "glucose_diffusion_rate",
    }
)


@dataclass
class Params:
    # Grid
    width: int = 30
    height: int = 30
    step_interval_ms: int = 200
    max_density_threshold: float = 0.75
    expansion_factor: int = 2

    # Founders and per-cell defaults
    initial_cell_count: int = 5
    initial_growth_rate: float = 0.05
    initial_mutation_chance: float = 0.0005
    consumption_rate: float = 0.5
    survival_threshold: float = 5.0

    # Resources
    initial_oxygen_level: float = 100.0
    oxygen_diffusion_rate: float = 0.15
    initial_glucose_level: float = 100.0
    glucose_diffusion_rate: float = 0.15

    # Run control
    seed: int | None = None
    offspring_act_same_step: bool = False

    def validate(self) -> "Params":
        """Raise InvalidParameter for the first out-of-range field."""
        if self.width <= 0 or self.height <= 0:
            raise InvalidParameter(f"grid dimensions must be positive, got {self.width}x{self.height}")
        if self.step_interval_ms <= 0:
            raise InvalidParameter(f"step_interval_ms must be positive, got {self.step_interval_ms}")
        if not 0.0 < self.max_density_threshold <= 1.0:
            raise InvalidParameter(
                f"max_density_threshold must be in (0, 1], got {self.max_density_threshold}"
            )
        if self.expansion_factor < 2:
            raise InvalidParameter(f"expansion_factor must be at least 2, got {self.expansion_factor}")
        if self.initial_cell_count < 0:
            raise InvalidParameter(f"initial_cell_count must be >= 0, got {self.initial_cell_count}")
        if self.initial_cell_count > self.width * self.height:
            raise InvalidParameter(
                f"initial_cell_count {self.initial_cell_count} exceeds grid capacity "
                f"{self.width * self.height}"
            )
        if self.initial_growth_rate <= 0.0:
            raise InvalidParameter(f"initial_growth_rate must be positive, got {self.initial_growth_rate}")
        if not 0.0 <= self.initial_mutation_chance <= 1.0:
            raise InvalidParameter(
                f"initial_mutation_chance must be in [0, 1], got {self.initial_mutation_chance}"
            )
        for name in ("consumption_rate", "survival_threshold", "initial_oxygen_level", "initial_glucose_level"):
            if getattr(self, name) < 0.0:
                raise InvalidParameter(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("oxygen_diffusion_rate", "glucose_diffusion_rate"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise InvalidParameter(f"{name} must be in [0, 1], got {getattr(self, name)}")
        return self

    def structural_changes(self, other: "Params") -> set[str]:
        """Names of structural fields that differ between self and other."""
        return {name for name in STRUCTURAL_FIELDS if getattr(self, name) != getattr(other, name)}

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def build_params(base: Params | None = None, overrides: Mapping[str, object] | None = None) -> Params:
    """Apply overrides to base (or the defaults) and validate the result."""
    params = base or Params()
    if overrides:
        known = {f.name for f in fields(Params)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidParameter(f"Unknown Params field(s): {', '.join(unknown)}")
        params = replace(params, **overrides)
    return params.validate()


def load_params(path: str | Path) -> Params:
    with open(Path(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise InvalidParameter(f"{path}: expected a JSON object of Params fields")
    return build_params(Params(), data)
