from fastapi import APIRouter

from deps import http_error
from schemas import PeriodAggregate, PeriodRequest
from services.errors import EnergyAccountingError
from services.yearly_report import period_rows

router = APIRouter(prefix="/yearly", tags=["yearly"])


@router.post("", response_model=PeriodAggregate)
async def period(payload: PeriodRequest):
    try:
        data = await period_rows(
            payload.main_client_id,
            payload.start_month,
            payload.start_year,
            payload.end_month,
            payload.end_year,
            max_sub_clients=payload.max_sub_clients,
        )
    except EnergyAccountingError as e:
        raise http_error(e)
    return PeriodAggregate.model_validate(data)
