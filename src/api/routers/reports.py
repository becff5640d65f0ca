"""Saved report endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.models import OperationResponse, SaveReportRequest, SavedReport
from src.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.config.settings import Settings, get_settings
from src.services.errors import PersistenceError
from src.services.reports import ReportService

router = APIRouter()


@router.get("/", response_model=list[SavedReport])
async def list_reports(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    settings: Settings = Depends(get_settings),
) -> list[SavedReport]:
    """List saved reports, newest first."""
    svc = ReportService(settings)
    try:
        return await svc.list_reports(offset, limit)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/{report_id}", response_model=SavedReport)
async def get_report(
    report_id: str,
    settings: Settings = Depends(get_settings),
) -> SavedReport:
    svc = ReportService(settings)
    try:
        report = await svc.get_report(report_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("/", response_model=OperationResponse, status_code=201)
async def save_report(
    request: SaveReportRequest,
    settings: Settings = Depends(get_settings),
) -> OperationResponse:
    """Create a report, or overwrite it when ``id`` names an existing one."""
    svc = ReportService(settings)
    try:
        report_id = await svc.save_report(request)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return OperationResponse(id=report_id)


@router.delete("/{report_id}", response_model=OperationResponse)
async def delete_report(
    report_id: str,
    settings: Settings = Depends(get_settings),
) -> OperationResponse:
    svc = ReportService(settings)
    try:
        await svc.delete_report(report_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return OperationResponse(id=report_id)
