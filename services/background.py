from __future__ import annotations
import logging
from typing import Optional, List, Dict, Any

from models import MainClient
from services.daily_report import generate_daily_report
from services.errors import EnergyAccountingError
from services.losses_report import generate_losses
from services.report_cache import KeyedLocks

log = logging.getLogger(__name__)


# ---------- Month batch (daily + losses for many main clients) ----------

async def run_month_reports(
    month: int,
    year: int,
    main_client_ids: Optional[List[int]] = None,
    refresh: bool = False,
    locks: KeyedLocks | None = None,
) -> Dict[str, Any]:
    """
    Materialize the daily report and the losses calculation for every main client
    (or the given ones). A failing client is reported and the batch continues.
    """
    qs = MainClient.all().order_by("id")
    if main_client_ids:
        qs = qs.filter(id__in=main_client_ids)
    ids = await qs.values_list("id", flat=True)

    done, failed = [], []
    for cid in ids:
        entry: Dict[str, Any] = {"main_client_id": cid}
        try:
            daily, daily_cached = await generate_daily_report(cid, month, year, refresh=refresh, locks=locks)
            losses, losses_cached = await generate_losses(cid, month, year, locks=locks)
        except EnergyAccountingError as e:
            log.warning("[month-reports] main client %s %02d-%d failed: %s", cid, month, year, e)
            entry["error"] = str(e)
            failed.append(entry)
            continue
        entry.update(
            daily_report_id=daily.id,
            daily_cached=daily_cached,
            losses_id=losses.id,
            losses_cached=losses_cached,
        )
        done.append(entry)
    return {"month": month, "year": year, "done": done, "failed": failed}
