from __future__ import annotations

import logging
from typing import Mapping, Optional

from tortoise.exceptions import IntegrityError

from models import LossesCalculation, MainClient, PartClient, SubClient
from services import config
from services.energy import check_polarity
from services.errors import InvalidInputError, InvalidPolarityError, MeterDataMissingError, NotFoundError
from services.losses import SubClientInput, calculate_losses
from services.meter_source import GenerationNotes, client_ref, resolve_meter
from services.report_cache import KeyedLocks, default_locks, touch

log = logging.getLogger(__name__)


def _sldc_matches(doc: LossesCalculation, approved_injection, approved_drawl) -> bool:
    """An SLDC figure missing from the request matches whatever is stored."""
    if approved_injection is not None and doc.sldc_gross_injection != approved_injection:
        return False
    if approved_drawl is not None and doc.sldc_gross_drawl != approved_drawl:
        return False
    return True


async def build_losses(
    main_client_id: int,
    month: int,
    year: int,
    approved_injection: Optional[float] = None,
    approved_drawl: Optional[float] = None,
    discom_targets: Optional[Mapping] = None,
) -> dict:
    main = await MainClient.get_or_none(id=main_client_id)
    if main is None:
        raise NotFoundError(f"Main Client {main_client_id} not found")
    subs = await SubClient.filter(main_client_id=main.id).order_by("id")
    if not subs:
        raise NotFoundError(f"No Sub Clients found for Main Client {main.name}")

    notes = GenerationNotes()
    profile = main.profile()
    check_polarity(profile.pn)
    resolved = await resolve_meter(main, month, year)
    if resolved is None:
        notes.clients_without_meters.append(client_ref(main))
        log.error("Main Client %s: no main or check meter data for %02d-%d", main.name, month, year)
        raise MeterDataMissingError(
            "Meter data missing for Main Client. Both main and check meter data are missing.",
            notes.to_doc(),
        )
    if resolved.used_check:
        notes.clients_using_check_meter.append(client_ref(main))

    inputs = []
    for sub in subs:
        sp = sub.profile()
        try:
            check_polarity(sp.pn)
        except InvalidPolarityError as e:
            log.warning("Sub Client %s skipped: %s", sub.name, e)
            notes.clients_with_invalid_profile.append({**client_ref(sub), "reason": str(e)})
            continue
        res = await resolve_meter(sub, month, year)
        if res is None:
            log.warning("Sub Client %s skipped: no meter data for %02d-%d", sub.name, month, year)
            notes.clients_without_meters.append(client_ref(sub))
            continue
        if res.used_check:
            notes.clients_using_check_meter.append(client_ref(sub))
        parts = await PartClient.filter(sub_client_id=sub.id).order_by("id")
        inputs.append(
            SubClientInput(
                snapshot=sub.snapshot(),
                profile=sp,
                readings=res.readings,
                parts=[p.snapshot() for p in parts],
                meter_no=res.meter_no,
                meter_type=res.meter_type,
            )
        )

    result = calculate_losses(
        profile,
        resolved.readings,
        inputs,
        approved_injection=approved_injection,
        approved_drawl=approved_drawl,
        discom_targets=discom_targets,
    )
    notes.part_clients_with_invalid_share = result.pop("part_clients_with_invalid_share")
    result["main_block"].update(meter_no=resolved.meter_no, meter_type=resolved.meter_type)
    return {
        "sldc_gross_injection": approved_injection,
        "sldc_gross_drawl": approved_drawl,
        "main_client_detail": main.snapshot(),
        **result,
        "notes": notes.to_doc(),
    }


async def generate_losses(
    main_client_id: int,
    month: int,
    year: int,
    approved_injection: Optional[float] = None,
    approved_drawl: Optional[float] = None,
    discom_targets: Optional[Mapping] = None,
    *,
    locks: Optional[KeyedLocks] = None,
) -> tuple[LossesCalculation, bool]:
    """
    One document per (main client, month, year). Same SLDC inputs -> cached document
    with updated_at refreshed; different SLDC inputs -> the document is recomputed in place.
    """
    locks = locks or default_locks
    async with locks.hold(("losses", main_client_id, month, year)):
        existing = await LossesCalculation.get_or_none(main_client_id=main_client_id, month=month, year=year)
        if existing is not None and _sldc_matches(existing, approved_injection, approved_drawl):
            log.info("losses %s %02d-%d served from cache", main_client_id, month, year)
            return await touch(existing), True

        payload = await build_losses(main_client_id, month, year, approved_injection, approved_drawl, discom_targets)
        if existing is not None:
            await existing.update_from_dict(payload).save()
            log.info("losses %s %02d-%d recomputed for new SLDC figures", main_client_id, month, year)
            return existing, False
        try:
            doc = await LossesCalculation.create(main_client_id=main_client_id, month=month, year=year, **payload)
        except IntegrityError:
            doc = await LossesCalculation.get(main_client_id=main_client_id, month=month, year=year)
            return await touch(doc), True
        log.info("losses %s %02d-%d generated", main_client_id, month, year)
        return doc, False


# ---------- reads ----------

async def latest_losses(limit: Optional[int] = None) -> list[LossesCalculation]:
    return await LossesCalculation.all().order_by("-updated_at").limit(limit or config.LATEST_REPORTS_LIMIT)


async def get_losses(report_id: int) -> LossesCalculation:
    doc = await LossesCalculation.get_or_none(id=report_id)
    if doc is None:
        raise NotFoundError(f"Losses calculation {report_id} not found")
    return doc


def previous_months(month: int, year: int, count: int) -> list[tuple[int, int]]:
    """(month, year) for the given month and the count-1 months before it, newest first."""
    if not 1 <= month <= 12 or year < 1900:
        raise InvalidInputError("Invalid month or year")
    out = []
    for _ in range(count):
        out.append((month, year))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return out


async def recent_losses(main_client_id: int, month: int, year: int, count: Optional[int] = None) -> list[dict]:
    """After-losses injection and weightage per sub/part client for the recent months that have data."""
    results = []
    for m, y in previous_months(month, year, count or config.RECENT_LOSSES_MONTHS):
        doc = await LossesCalculation.get_or_none(main_client_id=main_client_id, month=m, year=y)
        if doc is None:
            log.warning("no losses calculation for Main Client %s for %02d-%d", main_client_id, m, y)
            continue
        results.append({
            "month": doc.month,
            "year": doc.year,
            "sub_clients": [
                {
                    "name": sc.get("name"),
                    "gross_injection_mwh_after_losses": sc.get("gross_injection_mwh_after_losses"),
                    "weightage_gross_injecting": sc.get("weightage_gross_injecting"),
                    "part_clients": [
                        {
                            "name": pc.get("name"),
                            "division_name": pc.get("division_name"),
                            "gross_injection_mwh_after_losses": pc.get("gross_injection_mwh_after_losses"),
                            "weightage_gross_injecting": pc.get("weightage_gross_injecting"),
                        }
                        for pc in sc.get("part_clients") or []
                    ],
                }
                for sc in doc.sub_clients or []
            ],
        })
    if not results:
        raise NotFoundError("No losses data found for the requested months")
    return results


async def sldc_inputs(main_client_id: int, month: int, year: int) -> dict:
    doc = (
        await LossesCalculation.filter(main_client_id=main_client_id, month=month, year=year)
        .order_by("-updated_at")
        .first()
    )
    if doc is None:
        raise NotFoundError("No SLDC data found for this client and period")
    return {
        "sldc_gross_injection": doc.sldc_gross_injection,
        "sldc_gross_drawl": doc.sldc_gross_drawl,
        "discom": {k: v for k, v in (doc.discom_targets or {}).items() if v},
    }
