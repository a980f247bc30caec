import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from magaza.config import settings
from magaza.core.rate_limit import limiter
from magaza.database.supabase_client import SupabaseClient
from magaza.modules.auth import routes as auth_routes
from magaza.modules.users import routes as users_routes
from magaza.modules.categories import routes as categories_routes
from magaza.modules.automations import routes as automations_routes
from magaza.modules.payments import routes as payments_routes
from magaza.modules.developers import routes as developers_routes
from magaza.modules.admin import routes as admin_routes
from magaza.modules.notifications import routes as notifications_routes
from magaza.modules.contact import routes as contact_routes
from magaza.modules.storage import routes as storage_routes
from magaza.modules.error_reports import routes as error_reports_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Beklenmeyen bir hata oluştu"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module_routes in (
    auth_routes,
    users_routes,
    categories_routes,
    automations_routes,
    payments_routes,
    developers_routes,
    admin_routes,
    notifications_routes,
    contact_routes,
    storage_routes,
    error_reports_routes,
):
    app.include_router(module_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info(f"Application startup ({settings.environment})")
    if not SupabaseClient.has_service_role():
        logger.warning("SUPABASE_SERVICE_ROLE_KEY is not set; privileged writes fall back to the anon key")
    if not settings.stripe_configured:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout endpoints will return 500")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Otomasyon Mağazası API", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    return {
        "status": "ready",
        "supabase_configured": bool(settings.supabase_url and settings.supabase_key),
        "stripe_configured": settings.stripe_configured,
        "smtp_configured": settings.smtp_configured,
    }
