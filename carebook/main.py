from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time

from .api.deps import get_payment_gateway, get_stores
from .api.v1.appointments import router as appointments_router
from .api.v1.auth import router as auth_router
from .api.v1.doctors import router as doctors_router
from .api.v1.payments import router as payments_router
from .core.config import settings
from .core.exceptions import CarebookError, InfrastructureError

API_PREFIX = "/api/v1"

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Book doctor appointments and pay consultation fees",
    openapi_url=f"{API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# TestClient requests carry a host the allow list would reject
if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost"]
    )

@app.middleware("http")
async def time_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers["X-Process-Time"] = f"{elapsed:.6f}"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.1f} ms)")
    return response

def _server_error(exc: Exception, message: str) -> JSONResponse:
    body = {"message": message}
    if settings.DEBUG:
        body["detail"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content=body)

@app.exception_handler(CarebookError)
async def handle_carebook_error(request: Request, exc: CarebookError):
    if isinstance(exc, InfrastructureError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _server_error(exc.__cause__ or exc, exc.message)

    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "The requested resource was not found"

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())}
    )

@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _server_error(exc, "An unexpected error occurred")

for router in (auth_router, appointments_router, payments_router, doctors_router):
    app.include_router(router, prefix=API_PREFIX)

@app.on_event("startup")
async def startup_event():
    """Build the stores and the payment gateway before serving requests."""
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION}")

    try:
        get_stores()
        get_payment_gateway()
    except Exception as e:
        logger.error(f"Could not set up storage or payments: {str(e)}")
        raise

    logger.info(f"Ready ({settings.STORAGE_BACKEND} storage, {settings.PAYMENT_GATEWAY} payments)")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Stopping {settings.APP_NAME}")

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "storage": settings.STORAGE_BACKEND,
        "paymentGateway": settings.PAYMENT_GATEWAY,
        "timestamp": time.time()
    }

@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} appointment API",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health"
    }

@app.get(f"{API_PREFIX}/info")
async def api_info():
    """Entry points of the versioned API."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            "auth": f"{API_PREFIX}/auth",
            "appointments": f"{API_PREFIX}/appointments",
            "payments": f"{API_PREFIX}/payments",
            "doctors": f"{API_PREFIX}/doctors",
            "openapi": app.openapi_url
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("carebook.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
