from fastapi import APIRouter, Depends, Request
from magaza.config import settings
from magaza.database.supabase_client import get_service_supabase
from magaza.core.dependencies import get_optional_user
from magaza.core.rate_limit import limiter
from magaza.modules.error_reports.schemas import ErrorReport, ErrorReportResponse, ErrorHealthResponse
from magaza.modules.error_reports.service import ErrorReportService
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/errors", tags=["errors"])


def get_error_report_service(supabase: Client = Depends(get_service_supabase)) -> ErrorReportService:
    return ErrorReportService(supabase)


@router.post("", response_model=ErrorReportResponse)
@limiter.limit(settings.error_report_rate_limit)
async def report_error(
    request: Request,
    report: ErrorReport,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: ErrorReportService = Depends(get_error_report_service)
):
    """Browser error reports, logged and stored in production"""
    return service.report(report, user_data)


@router.get("", response_model=ErrorHealthResponse)
async def error_monitoring_health(service: ErrorReportService = Depends(get_error_report_service)):
    return service.health()
