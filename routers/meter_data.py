from fastapi import APIRouter, Depends, HTTPException
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from models import IntervalEntry, MeterRecord
from schemas import MeterRecordCreate, MeterRecordRead
from api_utils import RAListParams, respond_model, respond_page
from services.meter_source import READING_FIELDS

router = APIRouter(prefix="/meter-data", tags=["meter-data"])


@router.get("", response_model=list[MeterRecordRead])
async def list_meter_records(params: RAListParams = Depends()):
    qs = MeterRecord.all()
    fmap = {
        "meter_no": lambda q, v: q.filter(meter_no=str(v)),
        "meter_type": lambda q, v: q.filter(meter_type=v),
        "client_type": lambda q, v: q.filter(client_type=v),
        "client_id": lambda q, v: q.filter(client_id=int(v)),
        "month": lambda q, v: q.filter(month=int(v)),
        "year": lambda q, v: q.filter(year=int(v)),
    }
    qs = params.apply(qs, fmap)
    order = params.order(["id", "meter_no", "month", "year", "created_at"])
    return await respond_page(qs, params, order, MeterRecordRead)


@router.get("/{record_id}")
async def get_meter_record(record_id: int):
    rec = await MeterRecord.get_or_none(id=record_id)
    if not rec:
        raise HTTPException(404, "Meter record not found")
    entries = await IntervalEntry.filter(record_id=rec.id).order_by("seq").values("seq", *READING_FIELDS)
    payload = MeterRecordRead.model_validate(rec).model_dump(mode="json")
    payload["entries"] = entries
    return payload


@router.post("", response_model=MeterRecordRead, status_code=201)
async def create_meter_record(payload: MeterRecordCreate):
    data = payload.model_dump(exclude={"entries"})
    try:
        async with in_transaction():
            rec = await MeterRecord.create(**data)
            if payload.entries:
                await IntervalEntry.bulk_create(
                    [IntervalEntry(record_id=rec.id, seq=i, **e.model_dump()) for i, e in enumerate(payload.entries)]
                )
    except IntegrityError:
        raise HTTPException(409, f"Meter data for {payload.meter_no} {payload.month:02d}-{payload.year} already exists")
    return respond_model(rec, MeterRecordRead, status_code=201)


@router.delete("/{record_id}", status_code=204)
async def delete_meter_record(record_id: int):
    deleted = await MeterRecord.filter(id=record_id).delete()
    if not deleted:
        raise HTTPException(404, "Meter record not found")
