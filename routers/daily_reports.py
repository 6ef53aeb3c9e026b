from fastapi import APIRouter, Depends, HTTPException

from api_utils import report_summary, respond_model, respond_report, respond_rows
from deps import get_report_locks, http_error
from schemas import DailyReportRead, DailyReportRequest, ReportSummary
from services.daily_report import generate_daily_report, get_daily_report, latest_daily_reports
from services.errors import EnergyAccountingError
from services.report_cache import KeyedLocks

router = APIRouter(prefix="/daily-reports", tags=["daily-reports"])


@router.post("", response_model=DailyReportRead)
async def generate(payload: DailyReportRequest, locks: KeyedLocks = Depends(get_report_locks)):
    try:
        doc, cached = await generate_daily_report(
            payload.main_client_id, payload.month, payload.year, refresh=payload.refresh, locks=locks
        )
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_report(doc, DailyReportRead, cached)


@router.get("/latest", response_model=list[ReportSummary])
async def latest():
    docs = await latest_daily_reports()
    if not docs:
        raise HTTPException(404, "No daily reports found")
    return respond_rows([ReportSummary(**report_summary(d)) for d in docs])


@router.get("/{report_id}", response_model=DailyReportRead)
async def get_one(report_id: int):
    try:
        doc = await get_daily_report(report_id)
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_model(doc, DailyReportRead)
