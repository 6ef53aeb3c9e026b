from fastapi import APIRouter, Depends, HTTPException

from api_utils import report_summary, respond_model, respond_report, respond_rows
from deps import get_report_locks, http_error
from schemas import ReportSummary, TotalReportRead, TotalReportRequest
from services.errors import EnergyAccountingError
from services.report_cache import KeyedLocks
from services.total_report import generate_total_report, get_total_report, latest_total_reports

router = APIRouter(prefix="/total-reports", tags=["total-reports"])


@router.post("", response_model=TotalReportRead)
async def generate(payload: TotalReportRequest, locks: KeyedLocks = Depends(get_report_locks)):
    try:
        doc, cached = await generate_total_report(payload.main_client_ids, payload.month, payload.year, locks=locks)
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_report(doc, TotalReportRead, cached)


@router.get("/latest", response_model=list[ReportSummary])
async def latest():
    docs = await latest_total_reports()
    if not docs:
        raise HTTPException(404, "No total reports found")
    return respond_rows([ReportSummary(**report_summary(d)) for d in docs])


@router.get("/{report_id}", response_model=TotalReportRead)
async def get_one(report_id: int):
    try:
        doc = await get_total_report(report_id)
    except EnergyAccountingError as e:
        raise http_error(e)
    return respond_model(doc, TotalReportRead)
