from __future__ import annotations

import calendar
from typing import Iterator, Mapping, Optional

from services import config
from services.errors import InvalidInputError
from services.figures import normalize_capacity, round_half_up


def month_range(start_month: int, start_year: int, end_month: int, end_year: int) -> Iterator[tuple[int, int]]:
    """Yield (year, month) for every calendar month in the inclusive range."""
    for m in (start_month, end_month):
        if not 1 <= m <= 12:
            raise InvalidInputError(f"month must be 1..12, got {m}")
    for y in (start_year, end_year):
        if y < 1900:
            raise InvalidInputError(f"year must be >= 1900, got {y}")
    if (end_year, end_month) < (start_year, start_month):
        raise InvalidInputError("end period is before start period")

    y, m = start_year, start_month
    while (y, m) <= (end_year, end_month):
        yield y, m
        m += 1
        if m > 12:
            y, m = y + 1, 1


def monthly_avg_generation(injected_kwh: float, year: int, month: int, dc_capacity) -> float:
    cap = normalize_capacity(dc_capacity)
    if not cap:
        return 0.0
    days = calendar.monthrange(year, month)[1]
    return injected_kwh / days / cap


def _kwh(mwh) -> int:
    return round_half_up((mwh or 0.0) * 1000)


def pick_sub_clients(docs: list[Mapping], limit: int) -> list[str]:
    names: list[str] = []
    for doc in docs:
        for sc in doc.get("sub_clients") or []:
            name = sc.get("name")
            if name and name not in names:
                names.append(name)
    return names[:limit]


def aggregate_period(
    docs_by_month: Mapping[tuple[int, int], Mapping],
    start_month: int,
    start_year: int,
    end_month: int,
    end_year: int,
    main_detail: Optional[Mapping] = None,
    max_sub_clients: Optional[int] = None,
) -> dict:
    """
    One row per month of the range; months without a losses document are zero rows.
    Main values come from gross injection/drawl, sub values from the after-losses figures.
    """
    months = list(month_range(start_month, start_year, end_month, end_year))
    limit = config.PERIOD_MAX_SUB_CLIENTS if max_sub_clients is None else max_sub_clients
    present = [docs_by_month[key] for key in months if key in docs_by_month]
    sub_names = pick_sub_clients(present, limit)

    rows = []
    for year, month in months:
        doc = docs_by_month.get((year, month)) or {}
        detail = doc.get("main_client_detail") or main_detail or {}
        main_block = doc.get("main_block") or {}
        injected = _kwh(main_block.get("gross_injection_mwh"))
        by_name = {sc.get("name"): sc for sc in doc.get("sub_clients") or []}

        subs = []
        for name in sub_names:
            sc = by_name.get(name) or {}
            sc_injected = _kwh(sc.get("gross_injection_mwh_after_losses"))
            subs.append({
                "name": name,
                "injected_kwh": sc_injected,
                "drawl_kwh": _kwh(sc.get("drawl_mwh_after_losses")),
                "avg_generation": monthly_avg_generation(sc_injected, year, month, sc.get("dc_capacity_kwp")),
            })

        rows.append({
            "year": year,
            "month": month,
            "label": f"{calendar.month_abbr[month]}-{year}",
            "days": calendar.monthrange(year, month)[1],
            "has_data": bool(doc),
            "main": {
                "injected_kwh": injected,
                "drawl_kwh": _kwh(main_block.get("drawl_mwh")),
                "avg_generation": monthly_avg_generation(injected, year, month, detail.get("dc_capacity_kwp")),
            },
            "sub_clients": subs,
        })

    return {
        "main_client": dict(main_detail or {}),
        "sub_client_names": sub_names,
        "rows": rows,
        "totals": _totals(rows, sub_names),
    }


def _totals(rows: list[dict], sub_names: list[str]) -> dict:
    main = {"injected_kwh": 0, "drawl_kwh": 0, "avg_generation": 0.0}
    subs = {name: {"name": name, "injected_kwh": 0, "drawl_kwh": 0, "avg_generation": 0.0} for name in sub_names}
    for row in rows:
        for k in main:
            main[k] += row["main"][k]
        for sc in row["sub_clients"]:
            acc = subs[sc["name"]]
            for k in ("injected_kwh", "drawl_kwh", "avg_generation"):
                acc[k] += sc[k]
    return {"label": "Total", "main": main, "sub_clients": [subs[n] for n in sub_names]}
