import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .domain.accounts import admin_router as admin_clinical_router
from .domain.accounts import router as accounts_router
from .domain.accounts import superadmin_router
from .errors import ApiError, api_error_handler
from .routes.auth import router as auth_router
from .routes.pages import router as pages_router
from .security_headers import SecurityHeadersMiddleware
from .session_gate import RequestGateMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        from .supabase_client import create_anon_client, get_service_client

        service_client = get_service_client()
        if getattr(app.state, "identity_provider", None) is None:
            from .identity import SupabaseIdentityProvider

            app.state.identity_provider = SupabaseIdentityProvider(service_client, create_anon_client)
        if getattr(app.state, "profile_repository", None) is None:
            from .domain.accounts.repository import ProfileRepository

            app.state.profile_repository = ProfileRepository(service_client)
        logger.info("Supabase collaborators initialized")
    except ApiError as e:
        # Requests that need Supabase will answer 500 until configured
        logger.error(f"Supabase not configured: {e.message}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="AiSurgeonPilot API", version="1.0.0", lifespan=lifespan)

app.add_exception_handler(ApiError, api_error_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render validation failures as 400 {"error": ...} like every other API error"""
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")

    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if first.get("type") == "missing":
            message = f"{field} is required" if field else "Request body is required"
        else:
            message = str(first.get("msg", message)).removeprefix("Value error, ")
            if first.get("type") != "value_error" and field:
                message = f"{field}: {message}"

    return JSONResponse(status_code=400, content={"error": message})


# Gate runs inside security headers so redirects carry them too
app.add_middleware(RequestGateMiddleware)

if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

# CORS Configuration
# Session cookies require specific origins with credentials
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://aisurgeonpilot.com,https://www.aisurgeonpilot.com,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(accounts_router)
app.include_router(superadmin_router)
app.include_router(admin_clinical_router)
app.include_router(pages_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
