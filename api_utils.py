# api_utils.py
import json
from typing import Any, Callable, Iterable, Type

from fastapi import Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from tortoise.queryset import QuerySet

MAX_PAGE = 500


def _content_range(skip: int, shown: int, total: int) -> str:
    return f"items {skip}-{skip + max(shown - 1, 0)}/{total}"


def _loads(raw: str | None, fallback):
    try:
        return json.loads(raw) if raw else fallback
    except ValueError:
        return fallback


# ---------- React-Admin list query ----------
class RAListParams:
    """range / sort / filter query params as sent by a React-Admin data provider."""

    def __init__(
        self,
        range: str = Query("[0,9]"),
        sort: str = Query('["id","ASC"]'),
        filter: str = Query("{}"),
    ):
        start, end = _loads(range, [0, 9])
        self.skip = max(int(start), 0)
        self.limit = min(max(int(end) - self.skip + 1, 1), MAX_PAGE)
        self.sort = _loads(sort, ["id", "ASC"])
        filters = _loads(filter, {})
        self.filters = filters if isinstance(filters, dict) else {}

    def order(self, allowed_fields: Iterable[str]) -> str:
        try:
            field, direction = self.sort
        except (TypeError, ValueError):
            field, direction = "id", "ASC"
        field = field if field in set(allowed_fields) | {"id"} else "id"
        return f"-{field}" if str(direction).upper() == "DESC" else field

    def apply(self, qs: QuerySet, fmap: dict[str, Callable[[QuerySet, Any], QuerySet]]) -> QuerySet:
        for key, fn in fmap.items():
            if self.filters.get(key) is not None:
                qs = fn(qs, self.filters[key])
        return qs


# ---------- Responders ----------
def _dump(obj: Any, schema: Type[BaseModel], **update) -> dict:
    model = schema.model_validate(obj)
    if update:
        model = model.model_copy(update=update)
    return json.loads(model.model_dump_json())


async def respond_page(qs: QuerySet, params: RAListParams, order: str, schema: Type[BaseModel]) -> JSONResponse:
    total = await qs.count()
    items = await qs.order_by(order).offset(params.skip).limit(params.limit)
    return JSONResponse(
        status_code=206,
        content=[_dump(it, schema) for it in items],
        headers={"Content-Range": _content_range(params.skip, len(items), total)},
    )


def respond_rows(rows: list) -> JSONResponse:
    """Already-built rows, returned whole with a Content-Range so list views can page them."""
    return JSONResponse(
        status_code=206,
        content=jsonable_encoder(rows),
        headers={"Content-Range": _content_range(0, len(rows), len(rows))},
    )


def respond_model(obj: Any, schema: Type[BaseModel], status_code: int = 200, **update) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=_dump(obj, schema, **update))


def respond_report(doc: Any, schema: Type[BaseModel], cached: bool) -> JSONResponse:
    """201 for a freshly materialized report, 200 when it came from the store."""
    return respond_model(doc, schema, status_code=200 if cached else 201, cached=cached)


# ---------- Report listings ----------
def report_summary(doc: Any) -> dict:
    detail = getattr(doc, "main_client_detail", None) or {}
    name = detail.get("name")
    if name is None and getattr(doc, "clients", None):
        name = ", ".join(c.get("main_client_detail", {}).get("name", "") for c in doc.clients)
    return {
        "id": doc.id,
        "month": doc.month,
        "year": doc.year,
        "client_name": name or "N/A",
        "updated_at": doc.updated_at,
    }
