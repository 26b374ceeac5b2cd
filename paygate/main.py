"""
Main FastAPI application for the pay-per-access device gateway.
Serves health, device, payment and metrics routes.
"""
import logging
import secrets
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paygate.api.routes import devices, health, payments
from paygate.core.config import settings
from paygate.core.errors import GatewayError
from paygate.core.logging import configure_logging
from paygate.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger("paygate.http")

app = FastAPI(
    title="Paygate",
    description="Payment-gated, time-boxed access to devices",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or secrets.token_hex(8)
    start = time.monotonic()
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round((time.monotonic() - start) * 1000, 1),
        },
    )
    return response


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Missing or invalid fields", "fields": fields},
    )


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(devices.router)
app.include_router(payments.router)
app.include_router(metrics_router)
