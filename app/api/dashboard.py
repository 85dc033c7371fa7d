"""
Admin Dashboard API

Income / cancellation metrics, top sellers and top customers, and CSV
export of the underlying orders, products and customers.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.models.base import get_db
from app.services.dashboard_service import DashboardService
from app.services.export_service import EXPORT_COLUMNS, export_dataset

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard_service(db: Session = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/metrics")
async def get_metrics(service: DashboardService = Depends(get_dashboard_service)):
    """Dashboard payload. Store failures degrade to zeroed metrics, never an error."""
    metrics = service.get_dashboard()
    return {"success": True, "data": metrics.to_dict()}


@router.get("/export/{dataset}")
async def export_csv(
    dataset: str,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Download orders, products or customers as CSV."""
    if dataset not in EXPORT_COLUMNS:
        raise HTTPException(status_code=404, detail=f"Unknown dataset: {dataset}")

    csv_text = export_dataset(service.get_dashboard(), dataset)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{dataset}.csv"'},
    )
