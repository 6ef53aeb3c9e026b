from __future__ import annotations

import logging
from typing import Optional

from tortoise.exceptions import IntegrityError

from models import DailyReport, LoggerReading, MainClient, SubClient
from services import config
from services.energy import DailySeries, check_polarity
from services.errors import InvalidPolarityError, MeterDataMissingError, NotFoundError
from services.generation import generation_summary, with_generation
from services.meter_source import GenerationNotes, client_ref, resolve_meter
from services.reconciliation import (
    ac_line_loss,
    ac_line_loss_totals,
    internal_loss_totals,
    reconcile_logger,
)
from services.report_cache import KeyedLocks, default_locks, touch

log = logging.getLogger(__name__)


async def build_daily_report(main_client_id: int, month: int, year: int) -> dict:
    """Compute the daily report payload for one MainClient and month (nothing is persisted)."""
    main = await MainClient.get_or_none(id=main_client_id)
    if main is None:
        raise NotFoundError(f"Main Client {main_client_id} not found")

    notes = GenerationNotes()
    profile = main.profile()
    check_polarity(profile.pn)

    resolved = await resolve_meter(main, month, year)
    main_series = DailySeries(resolved.readings, profile, main.name) if resolved else None
    if main_series is None or main_series.is_empty():
        notes.clients_without_meters.append(client_ref(main))
        log.error("Main Client %s: no main or check meter data for %02d-%d", main.name, month, year)
        raise MeterDataMissingError(
            "Meter data missing for Main Client. Both main and check meter data are missing.",
            notes.to_doc(),
        )
    if resolved.used_check:
        notes.clients_using_check_meter.append(client_ref(main))

    main_figures = with_generation(main_series, profile, main.name)

    sub_docs = []
    sub_series = []
    for sub in await SubClient.filter(main_client_id=main.id).order_by("id"):
        sp = sub.profile()
        try:
            check_polarity(sp.pn)
        except InvalidPolarityError as e:
            log.warning("Sub Client %s skipped: %s", sub.name, e)
            notes.clients_with_invalid_profile.append({**client_ref(sub), "reason": str(e)})
            continue

        res = await resolve_meter(sub, month, year)
        series = DailySeries(res.readings, sp, sub.name) if res else None
        if series is None or series.is_empty():
            log.warning("Sub Client %s skipped: no meter data for %02d-%d", sub.name, month, year)
            notes.clients_without_meters.append(client_ref(sub))
            continue
        if res.used_check:
            notes.clients_using_check_meter.append(client_ref(sub))

        logger_doc = await LoggerReading.get_or_none(sub_client_id=sub.id, month=month, year=year)
        figures = reconcile_logger(series, logger_doc.entries if logger_doc else None, sub.name)
        figures = with_generation(figures, sp, sub.name)
        sub_series.append(figures)
        sub_docs.append({
            "client": sub.snapshot(),
            "meter": {"meter_no": res.meter_no, "meter_type": res.meter_type, "used_check_meter": res.used_check},
            "logger_available": logger_doc is not None,
            "figures": [f.to_doc() for f in figures],
            "totals": {**internal_loss_totals(figures), **generation_summary(figures, sp)},
        })

    ac_rows = ac_line_loss(main_figures, sub_series)
    main_export, main_import = main_series.totals()
    return {
        "main_client_detail": main.snapshot(),
        "main_meter": {
            "meter_no": resolved.meter_no,
            "meter_type": resolved.meter_type,
            "used_check_meter": resolved.used_check,
            "totals": {
                "total_export": main_export,
                "total_import": main_import,
                **generation_summary(main_figures, profile),
            },
        },
        "main_figures": [f.to_doc() for f in main_figures],
        "sub_clients": sub_docs,
        "ac_line_loss": {
            "figures": [r.to_doc() for r in ac_rows],
            "totals": ac_line_loss_totals(ac_rows),
        },
        "notes": notes.to_doc(),
    }


async def generate_daily_report(
    main_client_id: int,
    month: int,
    year: int,
    *,
    refresh: bool = False,
    locks: Optional[KeyedLocks] = None,
) -> tuple[DailyReport, bool]:
    """
    Returns (report, cached). An existing report for the key is returned with only
    updated_at refreshed unless `refresh` asks for recomputation.
    """
    locks = locks or default_locks
    async with locks.hold(("daily", main_client_id, month, year)):
        existing = await DailyReport.get_or_none(main_client_id=main_client_id, month=month, year=year)
        if existing is not None and not refresh:
            log.info("daily report %s %02d-%d served from cache", main_client_id, month, year)
            return await touch(existing), True

        payload = await build_daily_report(main_client_id, month, year)
        if existing is not None:
            await existing.update_from_dict(payload).save()
            log.info("daily report %s %02d-%d regenerated", main_client_id, month, year)
            return existing, False
        try:
            doc = await DailyReport.create(main_client_id=main_client_id, month=month, year=year, **payload)
        except IntegrityError:
            # another worker persisted the same key first
            doc = await DailyReport.get(main_client_id=main_client_id, month=month, year=year)
            return await touch(doc), True
        log.info("daily report %s %02d-%d generated", main_client_id, month, year)
        return doc, False


async def latest_daily_reports(limit: Optional[int] = None) -> list[DailyReport]:
    return await DailyReport.all().order_by("-updated_at").limit(limit or config.LATEST_REPORTS_LIMIT)


async def get_daily_report(report_id: int) -> DailyReport:
    doc = await DailyReport.get_or_none(id=report_id)
    if doc is None:
        raise NotFoundError(f"Daily report {report_id} not found")
    return doc
