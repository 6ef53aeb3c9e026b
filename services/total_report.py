"""
Main-vs-check meter comparison for a set of MainClients in one month.

Units per meter (pn == -1):
  gross injected = sum(Active(E) - Reactive(E)) * mf
  gross drawl    = sum(Active(I) - Reactive(I)) * mf
pn == 1 swaps the two; total import = injected - drawl.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from tortoise.exceptions import IntegrityError

from models import MainClient, TotalReport
from services import config
from services.energy import check_polarity
from services.errors import InvalidInputError, NotFoundError
from services.figures import EnergyProfile, Reading
from services.meter_source import load_readings
from services.report_cache import KeyedLocks, default_locks, touch

log = logging.getLogger(__name__)


def meter_units(readings: Iterable[Reading], profile: EnergyProfile) -> dict:
    pn = check_polarity(profile.pn)
    out_e = out_i = 0.0
    for r in readings:
        out_e += (r.active_export - r.reactive_export) * profile.mf
        out_i += (r.active_import - r.reactive_import) * profile.mf
    injected, drawl = (out_e, out_i) if pn == -1 else (out_i, out_e)
    return {
        "gross_injected_units": round(injected, 2),
        "gross_drawl_units": round(drawl, 2),
        "total_import": round(injected - drawl, 2),
    }


def _empty_units() -> dict:
    return {"gross_injected_units": 0.0, "gross_drawl_units": 0.0, "total_import": 0.0}


def client_key(main_client_ids: Iterable[int]) -> str:
    ids = sorted({int(i) for i in main_client_ids})
    if not ids:
        raise InvalidInputError("Please provide at least one main client id")
    return ",".join(str(i) for i in ids)


async def _client_block(main: MainClient, month: int, year: int) -> dict:
    profile = main.profile()
    main_readings = await load_readings(main.main_meter_no, month, year) if main.main_meter_no else None
    check_readings = await load_readings(main.check_meter_no, month, year) if main.check_meter_no else None
    if not main_readings and not check_readings:
        log.warning("no meter data on either ABT meter for %s in %02d-%d, zero rows", main.name, month, year)

    main_units = meter_units(main_readings, profile) if main_readings else _empty_units()
    check_units = meter_units(check_readings, profile) if check_readings else _empty_units()
    if main_readings and check_readings:
        difference = {
            "gross_injected_units": round(main_units["gross_injected_units"] - check_units["gross_injected_units"], 2),
            "gross_drawl_units": round(main_units["gross_drawl_units"] - check_units["gross_drawl_units"], 2),
        }
    else:
        difference = {"gross_injected_units": 0.0, "gross_drawl_units": 0.0}

    return {
        "main_client_id": main.id,
        "main_client_detail": main.snapshot(),
        "main_meter": {"meter_no": main.main_meter_no, "has_data": bool(main_readings), **main_units},
        "check_meter": {"meter_no": main.check_meter_no, "has_data": bool(check_readings), **check_units},
        "difference": difference,
    }


async def build_total_report(main_client_ids: list[int], month: int, year: int) -> list[dict]:
    blocks = []
    for cid in sorted({int(i) for i in main_client_ids}):
        main = await MainClient.get_or_none(id=cid)
        if main is None:
            raise NotFoundError(f"Main Client not found: {cid}")
        blocks.append(await _client_block(main, month, year))
    return blocks


async def generate_total_report(
    main_client_ids: list[int],
    month: int,
    year: int,
    *,
    locks: Optional[KeyedLocks] = None,
) -> tuple[TotalReport, bool]:
    """Cached only when the stored report covers exactly the requested client set."""
    key = client_key(main_client_ids)
    locks = locks or default_locks
    async with locks.hold(("total", key, month, year)):
        existing = await TotalReport.get_or_none(client_key=key, month=month, year=year)
        if existing is not None:
            log.info("total report [%s] %02d-%d served from cache", key, month, year)
            return await touch(existing), True

        clients = await build_total_report(main_client_ids, month, year)
        try:
            doc = await TotalReport.create(client_key=key, month=month, year=year, clients=clients)
        except IntegrityError:
            doc = await TotalReport.get(client_key=key, month=month, year=year)
            return await touch(doc), True
        log.info("total report [%s] %02d-%d generated", key, month, year)
        return doc, False


async def latest_total_reports(limit: Optional[int] = None) -> list[TotalReport]:
    return await TotalReport.all().order_by("-updated_at").limit(limit or config.LATEST_REPORTS_LIMIT)


async def get_total_report(report_id: int) -> TotalReport:
    doc = await TotalReport.get_or_none(id=report_id)
    if doc is None:
        raise NotFoundError(f"Total report {report_id} not found")
    return doc
