from __future__ import annotations

import logging
from typing import Optional

from tortoise.expressions import Q

from models import LossesCalculation, MainClient
from services.errors import NotFoundError
from services.period import aggregate_period, month_range

log = logging.getLogger(__name__)


async def period_rows(
    main_client_id: int,
    start_month: int,
    start_year: int,
    end_month: int,
    end_year: int,
    max_sub_clients: Optional[int] = None,
) -> dict:
    """Per-month rows plus a totals row, derived on every call from the stored losses documents."""
    months = list(month_range(start_month, start_year, end_month, end_year))
    main = await MainClient.get_or_none(id=main_client_id)
    if main is None:
        raise NotFoundError(f"Main Client {main_client_id} not found")

    per_year = [
        Q(year=year, month__in=[m for y, m in months if y == year])
        for year in sorted({y for y, _ in months})
    ]
    cond = Q(*per_year, join_type="OR")
    docs = await LossesCalculation.filter(cond, main_client_id=main.id)
    by_month = {
        (d.year, d.month): {
            "main_client_detail": d.main_client_detail,
            "main_block": d.main_block,
            "sub_clients": d.sub_clients,
        }
        for d in docs
    }
    log.info("period %s: %d of %d months have losses data", main.name, len(by_month), len(months))

    return aggregate_period(
        by_month,
        start_month,
        start_year,
        end_month,
        end_year,
        main_detail=main.snapshot(),
        max_sub_clients=max_sub_clients,
    )
