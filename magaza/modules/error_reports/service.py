from supabase import Client
from magaza.config import settings
from magaza.core.errors import sanitize_error
from magaza.modules.error_reports.schemas import (
    ErrorReport, ErrorReportResponse, ErrorHealthResponse, LEVELS, CATEGORIES,
)
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

MESSAGE_LIMIT = 1000
STACK_LIMIT = 5000
FIELD_LIMIT = 500

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def _truncate(value: Any, limit: int) -> Optional[str]:
    if value is None:
        return None
    return str(value)[:limit]


class ErrorReportService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def report(self, report: ErrorReport, user: Optional[Dict[str, Any]] = None) -> ErrorReportResponse:
        if not report.message or not report.level or not report.category:
            raise HTTPException(status_code=400, detail="Missing required fields: message, level, category")
        if report.level not in LEVELS:
            raise HTTPException(status_code=400, detail=f"Invalid level. Expected one of: {', '.join(LEVELS)}")
        if report.category not in CATEGORIES:
            raise HTTPException(
                status_code=400, detail=f"Invalid category. Expected one of: {', '.join(CATEGORIES)}"
            )

        context = dict(report.context or {})
        user_id = (user or {}).get("id") or context.get("userId")
        user_email = (user or {}).get("email") or context.get("userEmail")
        context.update({
            "userId": user_id,
            "userEmail": user_email,
            "timestamp": context.get("timestamp") or datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        })

        logger.log(
            _LOG_LEVELS[report.level],
            f"Client error report [{report.category}] {_truncate(report.message, MESSAGE_LIMIT)} "
            f"user={user_id} url={context.get('url')}"
        )

        if settings.is_production:
            try:
                self.supabase.table("error_logs").insert({
                    "message": _truncate(report.message, MESSAGE_LIMIT),
                    "stack": _truncate(report.stack, STACK_LIMIT),
                    "level": report.level,
                    "category": report.category,
                    "user_id": user_id,
                    "user_email": user_email,
                    "url": _truncate(context.get("url"), FIELD_LIMIT),
                    "user_agent": _truncate(context.get("userAgent"), FIELD_LIMIT),
                    "session_id": context.get("sessionId"),
                    "build_version": context.get("buildVersion"),
                    "environment": context["environment"],
                    "additional_data": context.get("additionalData"),
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }).execute()
            except Exception as e:
                logger.warning(f"Failed to store error report: {sanitize_error(e)}")

        return ErrorReportResponse(success=True, message="Error reported successfully")

    def health(self) -> ErrorHealthResponse:
        return ErrorHealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            service="error-monitoring",
        )
