"""Small builders for clients, meter records and readings used across the tests."""
from models import IntervalEntry, LoggerReading, MainClient, MeterRecord, PartClient, SubClient
from services.figures import Reading

MONTH, YEAR = 3, 2025


def reading(date, ae=0.0, ai=0.0, re=0.0, ri=0.0, net=None, start=None):
    return Reading(
        date=date,
        active_export=ae,
        active_import=ai,
        reactive_export=re,
        reactive_import=ri,
        net_active=net,
        interval_start=start,
    )


async def make_main(name="Solar Park", meter="MM-1", check="MC-1", **kw):
    kw.setdefault("mf", 1.0)
    kw.setdefault("pn", -1)
    return await MainClient.create(name=name, main_meter_no=meter, check_meter_no=check, **kw)


async def make_sub(main, name, meter, check=None, **kw):
    kw.setdefault("mf", 1.0)
    kw.setdefault("pn", -1)
    return await SubClient.create(main_client=main, name=name, main_meter_no=meter, check_meter_no=check, **kw)


async def make_part(sub, name, share):
    return await PartClient.create(sub_client=sub, name=name, sharing_percentage=share)


async def add_meter(client, readings, meter_type="main", month=MONTH, year=YEAR):
    meter_no = client.main_meter_no if meter_type == "main" else client.check_meter_no
    rec = await MeterRecord.create(
        meter_no=meter_no,
        meter_type=meter_type,
        client_type=client.kind,
        client_id=client.id,
        month=month,
        year=year,
    )
    if not readings:
        return rec
    await IntervalEntry.bulk_create([
        IntervalEntry(
            record_id=rec.id,
            seq=i,
            date=r.date,
            interval_start=r.interval_start,
            active_export=r.active_export,
            active_import=r.active_import,
            reactive_export=r.reactive_export,
            reactive_import=r.reactive_import,
            net_active=r.net_active,
        )
        for i, r in enumerate(readings)
    ])
    return rec


async def add_logger(sub, values, month=MONTH, year=YEAR):
    return await LoggerReading.create(sub_client=sub, month=month, year=year, entries=values)
