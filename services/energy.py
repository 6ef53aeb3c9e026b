"""
Interval readings -> polarity-corrected (export, import) -> one DailyFigure per date.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Iterator, Optional

from services import config
from services.errors import InvalidPolarityError
from services.figures import DailyFigure, EnergyProfile, Reading

log = logging.getLogger(__name__)

VALID_PN = (1, -1)


def check_polarity(pn) -> int:
    if pn not in VALID_PN:
        raise InvalidPolarityError(pn)
    return int(pn)


def extract(reading: Reading, mf: float, pn: int) -> tuple[float, float]:
    """
    (export, import) in physical units.
      pn == -1: export = Active(E) * mf, import = Active(I) * mf
      pn ==  1: roles swapped
    """
    pn = check_polarity(pn)
    if pn == -1:
        return reading.active_export * mf, reading.active_import * mf
    return reading.active_import * mf, reading.active_export * mf


def parse_interval_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in config.INTERVAL_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


class DailySeries:
    """
    Lazy per-date totals for one meter.

    Every iteration regroups the underlying readings, so the series can be walked
    any number of times. Consecutive readings with the same date string form one
    group; the input is not sorted. Readings whose date cannot be parsed are
    skipped with a warning.
    """

    def __init__(self, readings: Iterable[Reading], profile: EnergyProfile, label: str = ""):
        self._readings = list(readings)
        self.profile = profile
        self.label = label
        check_polarity(profile.pn)

    def __iter__(self) -> Iterator[DailyFigure]:
        mf, pn = self.profile.mf, self.profile.pn
        current: Optional[str] = None
        exp_sum = imp_sum = 0.0
        for r in self._readings:
            if parse_interval_date(r.date) is None:
                log.warning("skipping interval with malformed date %r (%s)", r.date, self.label)
                continue
            exp, imp = extract(r, mf, pn)
            if r.date != current:
                if current is not None:
                    yield DailyFigure(date=current, export_kwh=exp_sum, import_kwh=imp_sum)
                current, exp_sum, imp_sum = r.date, 0.0, 0.0
            exp_sum += exp
            imp_sum += imp
        if current is not None:
            yield DailyFigure(date=current, export_kwh=exp_sum, import_kwh=imp_sum)

    def is_empty(self) -> bool:
        return next(iter(self), None) is None

    def totals(self) -> tuple[float, float]:
        exp = imp = 0.0
        for f in self:
            exp += f.export_kwh
            imp += f.import_kwh
        return exp, imp


def group_daily(readings: Iterable[Reading], profile: EnergyProfile, label: str = "") -> DailySeries:
    return DailySeries(readings, profile, label)
