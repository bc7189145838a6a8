"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Seva Kendra portal
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and wrap results in the portal's
`{success, ...}` envelope. Errors raised by services are translated by
the handlers registered from `errors`.

Endpoints implemented:
- GET /
- GET /health
- GET /api/services
- GET /api/users
- POST /api/users/register
- POST /api/auth/login
- GET /api/auth/me
- GET /api/applications
- POST /api/applications
- GET /api/applications/{id}
- GET /api/applications/{id}/history
- PUT /api/applications/{id}/status
"""

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from datetime import datetime, timezone
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session, ping
from . import services, models
from .auth import get_current_user
from .config import settings
from .errors import register_error_handlers
from .schemas import ApplicationIn, LoginIn, RegisterIn, StatusUpdateIn, UserOut

API_VERSION = "1.0.0"
ENDPOINTS = {
    "home": "GET /",
    "health": "GET /health",
    "services": "GET /api/services",
    "users": "GET /api/users",
    "register": "POST /api/users/register",
    "login": "POST /api/auth/login",
    "me": "GET /api/auth/me",
    "applications": "GET /api/applications",
    "create_application": "POST /api/applications",
    "application": "GET /api/applications/:id",
    "application_history": "GET /api/applications/:id/history",
    "update_status": "PUT /api/applications/:id/status",
}

app = FastAPI(title="Seva Kendra API", version=API_VERSION)
logger = logging.getLogger("seva_kendra.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_error_handlers(app)
create_db_and_tables()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.error(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.get("/")
def home():
    """Describe the API and list its endpoints."""
    return {"message": "Seva Kendra API working", "version": API_VERSION, "endpoints": ENDPOINTS}


@app.get("/health")
def health():
    """Report whether the database answers a trivial query."""
    try:
        ping()
    except SQLAlchemyError as e:
        logger.error("health check failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"status": "ERROR", "database": "Disconnected", "error": str(e), "timestamp": _now_iso()},
        )
    return {"status": "OK", "database": "Connected", "timestamp": _now_iso(), "environment": settings.ENV}


@app.get("/api/services")
def list_services(db: Session = Depends(get_session)):
    """List active services ordered by name."""
    data = services.CatalogService(db).list_services()
    return {"success": True, "data": data, "count": len(data)}


@app.get("/api/users")
def list_users(db: Session = Depends(get_session)):
    """List users newest first; password hashes are never returned."""
    data = services.AuthService(db).list_users()
    return {"success": True, "data": data, "count": len(data)}


@app.post("/api/users/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user and return it with a signed token.

    A phone number can only be registered once.
    """
    user, token = services.AuthService(db).register(payload.name, payload.phone, payload.password, payload.role)
    return {"success": True, "message": "User registered successfully", "token": token, "user": user}


@app.post("/api/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate by phone and password and return a short-lived JWT token.

    The token contains `user_id` and `phone` and is signed using the
    configured JWT secret.
    """
    user, token = services.AuthService(db).authenticate(payload.phone, payload.password)
    return {"success": True, "message": "Login successful", "token": token, "user": user}


@app.get("/api/auth/me")
def me(user: models.User = Depends(get_current_user)):
    """Return the user that owns the bearer token."""
    return {"success": True, "data": UserOut.model_validate(user)}


@app.get("/api/applications")
def list_applications(phone: Optional[str] = None, db: Session = Depends(get_session)):
    """List applications most recent first, optionally filtered by applicant phone.

    Each application carries its service's catalog name and fee.
    """
    data = services.ApplicationService(db).list_applications(phone)
    return {"success": True, "data": data, "count": len(data)}


@app.post("/api/applications", status_code=201)
def create_application(payload: ApplicationIn, db: Session = Depends(get_session)):
    """Submit an application; it starts out `pending` with one history entry."""
    data = services.ApplicationService(db).submit(
        user_name=payload.user_name,
        user_phone=payload.user_phone,
        service_id=payload.service_id,
        service_name=payload.service_name,
        aadhaar_number=payload.aadhaar_number,
        address=payload.address,
        additional_info=payload.additional_info,
    )
    return {"success": True, "message": "Application submitted successfully", "data": data}


@app.get("/api/applications/{application_id}")
def get_application(application_id: int, db: Session = Depends(get_session)):
    data = services.ApplicationService(db).get_application(application_id)
    return {"success": True, "data": data}


@app.get("/api/applications/{application_id}/history")
def application_history(application_id: int, db: Session = Depends(get_session)):
    """Return the status ledger of an application, oldest entry first."""
    data = services.ApplicationService(db).history(application_id)
    return {"success": True, "data": data, "count": len(data)}


@app.put("/api/applications/{application_id}/status")
def update_application_status(application_id: int, payload: StatusUpdateIn, db: Session = Depends(get_session)):
    """Move an application to a new status and record it in the history ledger."""
    data = services.ApplicationService(db).update_status(
        application_id, payload.status, remarks=payload.remarks, updated_by=payload.updated_by
    )
    return {"success": True, "message": "Application status updated successfully", "data": data}
