from pydantic import BaseModel
from typing import Any, Dict, Optional

LEVELS = ("error", "warning", "info", "debug")
CATEGORIES = ("auth", "database", "api", "ui", "performance", "security", "unknown")


class ErrorReport(BaseModel):
    """Client-side error report. `context` keeps the browser's camelCase keys
    (userId, userEmail, url, userAgent, timestamp, sessionId, buildVersion, additionalData)."""
    message: Optional[str] = None
    level: Optional[str] = None
    category: Optional[str] = None
    stack: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class ErrorReportResponse(BaseModel):
    success: bool
    message: str


class ErrorHealthResponse(BaseModel):
    status: str
    timestamp: str
    service: str
