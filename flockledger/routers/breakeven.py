from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlmodel import Session

from flockledger.core.config import settings
from flockledger.db import get_session
from flockledger.routers.records import farm_expenses, farm_sales
from flockledger.schemas.breakeven import (
    AutoCalculatedParams,
    AutoCalculateRequest,
    BreakEvenMetrics,
    BreakEvenRequest,
    BreakEvenResults,
    ROLLING_WINDOWS,
)
from flockledger.services.analysis import build_metrics
from flockledger.services.estimator import auto_calculate_break_even_params, utc_today
from flockledger.services.export import export_filename, render_metrics_csv
from flockledger.services.projector import (
    BreakEvenUnreachable,
    InvalidParameters,
    calculate_break_even,
)

router = APIRouter(prefix="/api/breakeven", tags=["break-even"])


def _farm_metrics(session: Session, farm_id: int, months: int, projection_months: Optional[int]) -> BreakEvenMetrics:
    if months not in ROLLING_WINDOWS:
        raise HTTPException(status_code=422, detail=f"months must be one of {list(ROLLING_WINDOWS)}")
    return build_metrics(
        farm_sales(session, farm_id),
        farm_expenses(session, farm_id),
        timeframe_months=months,
        projection_months=projection_months or settings.DEFAULT_PROJECTION_MONTHS,
    )


@router.get("/metrics", response_model=BreakEvenMetrics)
def get_metrics(
    farm_id: int = Query(...),
    months: int = Query(settings.DEFAULT_TIMEFRAME_MONTHS, description="Rolling window in months"),
    projection_months: Optional[int] = Query(None, ge=1, le=120),
    session: Session = Depends(get_session),
):
    return _farm_metrics(session, farm_id, months, projection_months)


@router.get("/export.csv")
def export_metrics(
    farm_id: int = Query(...),
    months: int = Query(settings.DEFAULT_TIMEFRAME_MONTHS),
    session: Session = Depends(get_session),
):
    metrics = _farm_metrics(session, farm_id, months, None)
    filename = export_filename(months, utc_today())
    return Response(
        content=render_metrics_csv(metrics),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/calculate", response_model=BreakEvenResults)
def calculate(request: BreakEvenRequest):
    try:
        return calculate_break_even(request, projection_months=request.projection_months)
    except BreakEvenUnreachable as exc:
        raise HTTPException(status_code=422, detail=f"Break-even unreachable: {exc}")
    except InvalidParameters as exc:
        raise HTTPException(status_code=422, detail=f"Invalid parameters: {exc}")


@router.post("/auto", response_model=AutoCalculatedParams)
def auto_calculate(request: AutoCalculateRequest):
    return auto_calculate_break_even_params(request.sales, request.expenses, request.timeframe_months)
