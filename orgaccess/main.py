from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from orgaccess.api import organizations, invitations
from orgaccess.core.config import settings
from orgaccess.core.errors import AccessControlError
from orgaccess.core.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Organization Access Control API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccessControlError)
async def access_control_error_handler(request: Request, exc: AccessControlError):
    """Every domain error kind gets its own status and stable code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


app.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
app.include_router(invitations.router, prefix="/invitations", tags=["invitations"])


@app.get("/")
async def root():
    return {"message": "Organization Access Control API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
