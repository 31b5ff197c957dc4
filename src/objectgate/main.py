import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from objectgate.api.objects import router as objects_router
from objectgate.dependencies import get_s3_client_instance, set_s3_client_instance
from objectgate.errors import GatewayError, InternalError, log_gateway_error
from objectgate.metrics import setup_metrics
from objectgate.s3_service import AsyncS3Client

# Configure logging early: uvicorn imports this module when starting the app
from .logging_config import configure_logging

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown.

    Startup creates the S3 client and makes sure its bucket exists with
    versioning enabled; the app refuses to start otherwise. Shutdown closes
    the client.
    """
    logger.info("Starting up application...")
    s3_client = AsyncS3Client()
    try:
        await s3_client.ensure_bucket()
    except GatewayError as e:
        logger.error(f"S3 bucket check failed, refusing to start: {e}")
        await s3_client.close()
        raise
    set_s3_client_instance(s3_client)
    logger.info("S3 client initialized successfully")

    yield

    logger.info("Shutting down application...")
    try:
        await get_s3_client_instance().close()
        logger.info("S3 client closed successfully")
    except RuntimeError as e:
        logger.error(f"Error during S3 client shutdown: {e}")
    finally:
        set_s3_client_instance(None)


app = FastAPI(title="objectgate", redoc_url=None, redirect_slashes=False, lifespan=lifespan)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    log_gateway_error(exc, method=request.method, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # routing errors (unknown path, method not allowed) use the same body shape
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = InternalError(detail=f"{type(exc).__name__}: {exc}")
    error.__cause__ = exc
    log_gateway_error(error, method=request.method, path=request.url.path)
    return JSONResponse(status_code=error.status_code, content={"error": error.public_message})


app.include_router(objects_router)

setup_metrics(app)


@app.get("/")
def read_root():
    return {"message": "Hello from objectgate!"}


@app.get("/health")
def health():
    return {"status": "ok"}
