from fastapi import APIRouter, Depends, HTTPException

from models import LoggerReading, SubClient
from schemas import LoggerReadingCreate, LoggerReadingRead
from api_utils import RAListParams, respond_model, respond_page

router = APIRouter(prefix="/logger-data", tags=["logger-data"])


@router.get("", response_model=list[LoggerReadingRead])
async def list_logger_readings(params: RAListParams = Depends()):
    qs = LoggerReading.all()
    fmap = {
        "sub_client_id": lambda q, v: q.filter(sub_client_id=int(v)),
        "month": lambda q, v: q.filter(month=int(v)),
        "year": lambda q, v: q.filter(year=int(v)),
    }
    qs = params.apply(qs, fmap)
    order = params.order(["id", "month", "year", "updated_at"])
    return await respond_page(qs, params, order, LoggerReadingRead)


@router.get("/{reading_id}", response_model=LoggerReadingRead)
async def get_logger_reading(reading_id: int):
    obj = await LoggerReading.get_or_none(id=reading_id)
    if not obj:
        raise HTTPException(404, "Logger data not found")
    return respond_model(obj, LoggerReadingRead)


@router.put("", response_model=LoggerReadingRead)
async def upsert_logger_reading(payload: LoggerReadingCreate):
    """Create or replace the logger values of a sub client for one month."""
    if not await SubClient.exists(id=payload.sub_client_id):
        raise HTTPException(404, "Sub Client not found")
    obj, created = await LoggerReading.update_or_create(
        sub_client_id=payload.sub_client_id,
        month=payload.month,
        year=payload.year,
        defaults={"meter_no": payload.meter_no, "meter_type": payload.meter_type, "entries": payload.entries},
    )
    return respond_model(obj, LoggerReadingRead, status_code=201 if created else 200)


@router.delete("/{reading_id}", status_code=204)
async def delete_logger_reading(reading_id: int):
    deleted = await LoggerReading.filter(id=reading_id).delete()
    if not deleted:
        raise HTTPException(404, "Logger data not found")
