from datetime import datetime
from typing import Annotated, Optional, Literal, Dict, List, Any
from pydantic import BaseModel, ConfigDict, Field


Month = Annotated[int, Field(ge=1, le=12)]
Year = Annotated[int, Field(ge=1900)]


# =========================
# Meter data (already normalised upstream)
# =========================
class IntervalEntryIn(BaseModel):
    date: str = Field(min_length=8, max_length=10)  # dd-mm-yyyy
    interval_start: Optional[str] = None
    interval_end: Optional[str] = None
    active_export: float = 0.0
    active_import: float = 0.0
    reactive_export: float = 0.0
    reactive_import: float = 0.0
    net_active: Optional[float] = None


class MeterRecordCreate(BaseModel):
    meter_no: str
    meter_type: Literal["main", "check"]
    client_type: Literal["MainClient", "SubClient"]
    client_id: int
    month: Month
    year: Year
    entries: List[IntervalEntryIn] = Field(default_factory=list)


class MeterRecordRead(BaseModel):
    id: int
    meter_no: str
    meter_type: str
    client_type: str
    client_id: int
    month: int
    year: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LoggerReadingCreate(BaseModel):
    sub_client_id: int
    month: Month
    year: Year
    meter_no: Optional[str] = None
    meter_type: Optional[str] = None
    entries: Dict[str, float] = Field(default_factory=dict)  # "01-03-2025" -> value


class LoggerReadingRead(BaseModel):
    id: int
    sub_client_id: int
    month: int
    year: int
    meter_no: Optional[str] = None
    meter_type: Optional[str] = None
    entries: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# =========================
# Reports
# =========================
class DailyReportRequest(BaseModel):
    main_client_id: int
    month: Month
    year: Year
    refresh: bool = False


class DailyReportRead(BaseModel):
    id: int
    main_client_id: int
    month: int
    year: int
    main_client_detail: Dict[str, Any]
    main_meter: Dict[str, Any]
    main_figures: List[Dict[str, Any]]
    sub_clients: List[Dict[str, Any]]
    ac_line_loss: Dict[str, Any]
    notes: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    cached: bool = False
    model_config = ConfigDict(from_attributes=True)


class MainEntry(BaseModel):
    approved_injection: Optional[float] = None
    approved_drawl: Optional[float] = None
    discom: Dict[str, Any] = Field(default_factory=dict)


class LossesRequest(BaseModel):
    main_client_id: int
    month: Month
    year: Year
    # legacy SLDC fields, used when main_entry does not carry them
    sldc_gross_injection: Optional[float] = None
    sldc_gross_drawl: Optional[float] = None
    main_entry: Optional[MainEntry] = None

    def approved_injection(self) -> Optional[float]:
        if self.main_entry and self.main_entry.approved_injection is not None:
            return self.main_entry.approved_injection
        return self.sldc_gross_injection

    def approved_drawl(self) -> Optional[float]:
        if self.main_entry and self.main_entry.approved_drawl is not None:
            return self.main_entry.approved_drawl
        return self.sldc_gross_drawl

    def discom_targets(self) -> Dict[str, Any]:
        return dict(self.main_entry.discom) if self.main_entry else {}


class LossesRead(BaseModel):
    id: int
    main_client_id: int
    month: int
    year: int
    sldc_gross_injection: Optional[float] = None
    sldc_gross_drawl: Optional[float] = None
    discom_targets: Dict[str, Any]
    main_client_detail: Dict[str, Any]
    main_block: Dict[str, Any]
    sub_clients: List[Dict[str, Any]]
    sub_overall: Dict[str, Any]
    difference: Dict[str, Any]
    sldc: Dict[str, Any]
    per_discom_totals: Dict[str, Any]
    excess_injection_ppa: Optional[float] = None
    energy_drawn_from_discom: Optional[float] = None
    audit: Dict[str, Any]
    notes: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    cached: bool = False
    model_config = ConfigDict(from_attributes=True)


class PeriodKey(BaseModel):
    main_client_id: int
    month: Month
    year: Year


class RecentLossesRequest(PeriodKey):
    count: Optional[int] = Field(default=None, ge=1, le=24)


class TotalReportRequest(BaseModel):
    main_client_ids: List[int] = Field(min_length=1)
    month: Month
    year: Year


class TotalReportRead(BaseModel):
    id: int
    client_key: str
    month: int
    year: int
    clients: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime
    cached: bool = False
    model_config = ConfigDict(from_attributes=True)


class ReportSummary(BaseModel):
    id: int
    month: int
    year: int
    client_name: str
    updated_at: datetime


# =========================
# Period (yearly) rows
# =========================
class PeriodRequest(BaseModel):
    main_client_id: int
    start_month: int
    start_year: int
    end_month: int
    end_year: int
    max_sub_clients: Optional[int] = Field(default=None, ge=0)


class PeriodFigures(BaseModel):
    injected_kwh: int
    drawl_kwh: int
    avg_generation: float


class PeriodSubFigures(PeriodFigures):
    name: str


class PeriodRow(BaseModel):
    year: int
    month: int
    label: str
    days: int
    has_data: bool
    main: PeriodFigures
    sub_clients: List[PeriodSubFigures]


class PeriodTotals(BaseModel):
    label: str
    main: PeriodFigures
    sub_clients: List[PeriodSubFigures]


class PeriodAggregate(BaseModel):
    main_client: Dict[str, Any]
    sub_client_names: List[str]
    rows: List[PeriodRow]
    totals: PeriodTotals
