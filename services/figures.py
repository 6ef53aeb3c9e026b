from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from typing import Any, Optional


# ---------- numeric helpers ----------

def parse_number(value: Any) -> Optional[float]:
    """
    Operator-entered numbers arrive as floats, ints or strings such as "1,000".
    Returns None for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    return num if math.isfinite(num) else None


def normalize_capacity(value: Any) -> Optional[float]:
    num = parse_number(value)
    if num is None or num <= 0:
        return None
    return num


def percent_of(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    pct = part / whole * 100
    return pct if math.isfinite(pct) else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round3(value: float) -> float:
    return round(value, 3)


# ---------- typed records ----------

@dataclass(frozen=True)
class Reading:
    """One interval of a meter record, addressed by attribute not by parameter name."""
    date: str
    active_export: float = 0.0
    active_import: float = 0.0
    reactive_export: float = 0.0
    reactive_import: float = 0.0
    net_active: Optional[float] = None
    interval_start: Optional[str] = None
    interval_end: Optional[str] = None

    @property
    def bidirectional(self) -> float:
        if self.net_active is not None:
            return self.net_active
        return self.active_import - self.active_export

    @property
    def time_key(self) -> str:
        return f"{self.interval_start or ''}-{self.interval_end or ''}"


@dataclass(frozen=True)
class EnergyProfile:
    mf: float
    pn: int
    dc_capacity_kwp: Optional[float] = None
    ac_capacity_kw: Optional[float] = None

    @classmethod
    def build(cls, mf: Any, pn: Any, dc_capacity: Any = None, ac_capacity: Any = None) -> "EnergyProfile":
        mf_num = parse_number(mf)
        pn_num = parse_number(pn)
        return cls(
            mf=1.0 if mf_num is None else mf_num,
            pn=int(pn_num) if pn_num is not None and pn_num.is_integer() else 0,
            dc_capacity_kwp=normalize_capacity(dc_capacity),
            ac_capacity_kw=normalize_capacity(ac_capacity),
        )

    @property
    def capacity_basis(self) -> list[str]:
        basis = []
        if self.dc_capacity_kwp is not None:
            basis.append("dc")
        if self.ac_capacity_kw is not None:
            basis.append("ac")
        return basis


@dataclass(frozen=True)
class DailyFigure:
    date: str
    export_kwh: float
    import_kwh: float
    logger_value: Optional[float] = None
    internal_loss: Optional[float] = None
    loss_percent: Optional[float] = None
    logger_missing: bool = False
    avg_generation_dc: float = 0.0
    avg_generation_ac: float = 0.0

    def to_doc(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AcLineLossFigure:
    date: str
    main_export: float
    main_import: float
    sub_export: float
    sub_import: float
    export_diff: float
    import_diff: float
    export_loss_percent: float
    import_loss_percent: float

    def to_doc(self) -> dict:
        return asdict(self)
