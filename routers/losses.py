from fastapi import APIRouter, Depends, HTTPException

from api_utils import report_summary, respond_model, respond_report, respond_rows
from deps import get_report_locks, http_error
from schemas import LossesRead, LossesRequest, PeriodKey, RecentLossesRequest, ReportSummary
from services.errors import EnergyAccountingError
from services.losses_report import generate_losses, get_losses, latest_losses, recent_losses, sldc_inputs
from services.report_cache import KeyedLocks

router = APIRouter(prefix="/losses", tags=["losses"])


@router.post("", response_model=LossesRead)
async def generate(payload: LossesRequest, locks: KeyedLocks = Depends(get_report_locks)):
    try:
        doc, cached = await generate_losses(
            payload.main_client_id,
            payload.month,
            payload.year,
            approved_injection=payload.approved_injection(),
            approved_drawl=payload.approved_drawl(),
            discom_targets=payload.discom_targets(),
            locks=locks,
        )
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_report(doc, LossesRead, cached)


@router.get("/latest", response_model=list[ReportSummary])
async def latest():
    docs = await latest_losses()
    if not docs:
        raise HTTPException(404, "No losses calculation reports found")
    return respond_rows([ReportSummary(**report_summary(d)) for d in docs])


@router.post("/recent")
async def recent(payload: RecentLossesRequest):
    try:
        rows = await recent_losses(payload.main_client_id, payload.month, payload.year, payload.count)
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_rows(rows)


@router.post("/sldc")
async def sldc(payload: PeriodKey):
    try:
        return await sldc_inputs(payload.main_client_id, payload.month, payload.year)
    except EnergyAccountingError as e:
        raise http_error(e)


@router.get("/{report_id}", response_model=LossesRead)
async def get_one(report_id: int):
    try:
        doc = await get_losses(report_id)
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_model(doc, LossesRead)
