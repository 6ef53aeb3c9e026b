from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Iterable, Optional

from services.figures import DailyFigure, EnergyProfile, normalize_capacity

log = logging.getLogger(__name__)


def avg_generation(export_kwh: float, capacity: Any) -> float:
    cap = normalize_capacity(capacity)
    if not cap:
        return 0.0
    avg = export_kwh / cap
    return avg if math.isfinite(avg) else 0.0


def with_generation(figures: Iterable[DailyFigure], profile: EnergyProfile, label: str = "") -> list[DailyFigure]:
    if not profile.capacity_basis:
        log.warning("no usable DC/AC capacity for %s, average generation reported as 0", label or "client")
    return [
        replace(
            f,
            avg_generation_dc=avg_generation(f.export_kwh, profile.dc_capacity_kwp),
            avg_generation_ac=avg_generation(f.export_kwh, profile.ac_capacity_kw),
        )
        for f in figures
    ]


def mean(values: Iterable[float]) -> float:
    vals = list(values)
    return sum(vals) / len(vals) if vals else 0.0


def generation_summary(figures: list[DailyFigure], profile: Optional[EnergyProfile] = None) -> dict:
    """Period averages are the mean of the daily averages over the days present."""
    return {
        "avg_generation_dc": mean(f.avg_generation_dc for f in figures),
        "avg_generation_ac": mean(f.avg_generation_ac for f in figures),
        "capacity_basis": profile.capacity_basis if profile else [],
    }
