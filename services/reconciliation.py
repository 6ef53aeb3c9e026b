"""
Loss reconciliation at two levels:
  - internal loss: a SubClient's metered export vs its independent logger value
  - AC line loss: the MainClient's daily totals vs the sum over its SubClients
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Optional

from services.figures import AcLineLossFigure, DailyFigure, parse_number, percent_of

log = logging.getLogger(__name__)


# ---------- internal loss ----------

def reconcile_logger(
    figures: Iterable[DailyFigure],
    logger_values: Optional[Mapping[str, object]],
    label: str = "",
) -> list[DailyFigure]:
    """
    Exact date-string match only. A date without a logger value is a gap:
    loss fields are 0 and `logger_missing` is set.
    """
    values = logger_values or {}
    out: list[DailyFigure] = []
    gaps = 0
    for f in figures:
        logged = parse_number(values.get(f.date))
        if logged is None:
            gaps += 1
            out.append(replace(f, logger_value=None, internal_loss=0.0, loss_percent=0.0, logger_missing=True))
            continue
        loss = f.export_kwh - logged
        out.append(
            replace(
                f,
                logger_value=logged,
                internal_loss=loss,
                loss_percent=percent_of(loss, f.export_kwh),
                logger_missing=False,
            )
        )
    if gaps:
        log.warning("%s: no logger value for %d day(s)", label or "sub client", gaps)
    return out


def internal_loss_totals(figures: list[DailyFigure]) -> dict:
    total_export = sum(f.export_kwh for f in figures)
    total_import = sum(f.import_kwh for f in figures)
    total_logger = sum(f.logger_value for f in figures if f.logger_value is not None)
    total_loss = sum(f.internal_loss or 0.0 for f in figures)
    return {
        "total_export": total_export,
        "total_import": total_import,
        "total_logger": total_logger,
        "total_internal_loss": total_loss,
        "total_loss_percent": percent_of(total_loss, total_export),
        "logger_missing_days": sum(1 for f in figures if f.logger_missing),
    }


# ---------- AC line loss ----------

def ac_line_loss(main: Iterable[DailyFigure], subs: Iterable[Iterable[DailyFigure]]) -> list[AcLineLossFigure]:
    """One row per MainClient date; sub clients without that date contribute 0."""
    sub_sums: dict[str, list[float]] = {}
    for series in subs:
        for f in series:
            acc = sub_sums.setdefault(f.date, [0.0, 0.0])
            acc[0] += f.export_kwh
            acc[1] += f.import_kwh

    rows = []
    for m in main:
        sub_exp, sub_imp = sub_sums.get(m.date, (0.0, 0.0))
        exp_diff = m.export_kwh - sub_exp
        imp_diff = m.import_kwh - sub_imp
        rows.append(
            AcLineLossFigure(
                date=m.date,
                main_export=m.export_kwh,
                main_import=m.import_kwh,
                sub_export=sub_exp,
                sub_import=sub_imp,
                export_diff=exp_diff,
                import_diff=imp_diff,
                export_loss_percent=percent_of(exp_diff, m.export_kwh),
                import_loss_percent=percent_of(imp_diff, m.import_kwh),
            )
        )
    return rows


def ac_line_loss_totals(rows: list[AcLineLossFigure]) -> dict:
    main_exp = sum(r.main_export for r in rows)
    main_imp = sum(r.main_import for r in rows)
    exp_diff = sum(r.export_diff for r in rows)
    imp_diff = sum(r.import_diff for r in rows)
    return {
        "total_main_export": main_exp,
        "total_main_import": main_imp,
        "total_export_diff": exp_diff,
        "total_import_diff": imp_diff,
        "total_export_loss_percent": percent_of(exp_diff, main_exp),
        "total_import_loss_percent": percent_of(imp_diff, main_imp),
    }
