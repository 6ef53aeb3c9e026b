from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Callable, Optional

from models import IntervalEntry, MeterRecord
from services.energy import parse_interval_date
from services.figures import Reading

log = logging.getLogger(__name__)

READING_FIELDS = (
    "date",
    "interval_start",
    "interval_end",
    "active_export",
    "active_import",
    "reactive_export",
    "reactive_import",
    "net_active",
)


@dataclass
class ResolvedMeter:
    meter_no: str
    meter_type: str
    readings: list[Reading]

    @property
    def used_check(self) -> bool:
        return self.meter_type == "check"


@dataclass
class GenerationNotes:
    """Per-entity degradations collected while a report is built."""
    clients_using_check_meter: list[dict] = field(default_factory=list)
    clients_without_meters: list[dict] = field(default_factory=list)
    clients_with_invalid_profile: list[dict] = field(default_factory=list)
    part_clients_with_invalid_share: list[str] = field(default_factory=list)

    def to_doc(self) -> dict:
        return asdict(self)


def client_ref(client) -> dict:
    return {"id": client.id, "name": client.name, "kind": client.kind}


async def load_readings(meter_no: str, month: int, year: int) -> Optional[list[Reading]]:
    record = await MeterRecord.get_or_none(meter_no=meter_no, month=month, year=year)
    if record is None:
        return None
    rows = await IntervalEntry.filter(record_id=record.id).order_by("seq").values(*READING_FIELDS)
    return [Reading(**row) for row in rows]


def has_dated_readings(readings: list[Reading]) -> bool:
    return any(parse_interval_date(r.date) is not None for r in readings)


async def resolve_meter(
    client,
    month: int,
    year: int,
    usable: Callable[[list[Reading]], bool] = has_dated_readings,
) -> Optional[ResolvedMeter]:
    """
    Readings of the client's main ABT meter, else of its check meter.
    A record whose readings are not `usable` (no entries, or no parseable
    date) counts as missing.
    """
    slots = (("main", client.main_meter_no), ("check", client.check_meter_no))
    for meter_type, meter_no in slots:
        if not meter_no:
            continue
        readings = await load_readings(meter_no, month, year)
        if not readings:
            continue
        if not usable(readings):
            log.warning("%s %s: %s meter %s has no usable readings for %02d-%d",
                        client.kind, client.name, meter_type, meter_no, month, year)
            continue
        if meter_type == "check":
            log.warning("%s %s: main meter data missing for %02d-%d, using check meter %s",
                        client.kind, client.name, month, year, meter_no)
        return ResolvedMeter(meter_no=meter_no, meter_type=meter_type, readings=readings)
    return None
