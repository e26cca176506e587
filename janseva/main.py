# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from janseva import config
from janseva.crud import crud
from janseva.database import database
from janseva.routers import admin, auth, otp, ping
from janseva.schemas.enums import UserRole
from janseva.utils.exceptions import OTPServiceError
from janseva.utils.security import get_password_hash

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------- Lifespan context ----------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates all tables on startup, ensures a default admin user exists
    and logs the registered routes.
    """
    database.Base.metadata.create_all(bind=database.engine)

    db = database.SessionLocal()
    try:
        admin_user = crud.get_user_by_email(db, config.ADMIN_EMAIL)
        if not admin_user:
            crud.create_user(
                db,
                hashed_password=get_password_hash(config.ADMIN_PASSWORD),
                full_name="Admin User",
                email=config.ADMIN_EMAIL,
                role=UserRole.ADMIN,
                email_confirmed=True,
            )
            logger.info("Default admin created: %s", config.ADMIN_EMAIL)
        else:
            logger.info("Admin already exists: %s", config.ADMIN_EMAIL)
    finally:
        db.close()

    logger.info("Routes registered:")
    for route in app.routes:
        if isinstance(route, APIRoute):
            methods = ",".join(sorted(route.methods))
            logger.info("%-10s -> %s", methods, route.path)

    yield


# ---------------- FastAPI instance ----------------
app = FastAPI(title="Smart Janseva OTP Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# ---------------- Error handlers ----------------
@app.exception_handler(OTPServiceError)
async def otp_service_error_handler(request: Request, exc: OTPServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "details": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()],
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ---------------- Include routers ----------------
app.include_router(otp.router)
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(ping.router)
