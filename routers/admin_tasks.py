from __future__ import annotations
from fastapi import APIRouter, Body, Depends
from typing import Optional, List

from deps import get_report_locks
from services.background import run_month_reports
from services.report_cache import KeyedLocks

router = APIRouter(prefix="/admin/tasks", tags=["admin-tasks"])


@router.post("/month-reports")
async def month_reports(
    month: int = Body(..., ge=1, le=12),
    year: int = Body(..., ge=1900),
    main_client_ids: Optional[List[int]] = Body(None),
    refresh: bool = Body(False),
    locks: KeyedLocks = Depends(get_report_locks),
):
    return await run_month_reports(month, year, main_client_ids, refresh=refresh, locks=locks)
