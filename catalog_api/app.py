import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_api.config import get_settings
from catalog_api.db import dispose_engine, get_engine
from catalog_api.exceptions import DatabaseError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.routes.product_route import router as product_router

logger = get_child_logger("app")


@asynccontextmanager
async def lifespan(_: FastAPI):
    await get_engine()
    try:
        yield
    finally:
        await dispose_engine()


app = FastAPI(
    title="Products API",
    description="API CRUD of Products.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware that logs every request with its status code and duration.
    """
    with tracer.start_as_current_span("process_request") as span:
        span.set_attribute("http.method", request.method)
        span.set_attribute("http.url", str(request.url))

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        span.set_attribute("http.status_code", response.status_code)
        logger.info(
            f'"{request.method} {request.url.path}" {response.status_code} in {duration_ms:.2f}ms',
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
        )
        return response


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_: Request, exc: RequestValidationError):
    # Rejected input is omitted; it may not be JSON-encodable (NaN)
    errors = [
        {"type": error["type"], "loc": error["loc"], "msg": error["msg"]}
        for error in exc.errors()
    ]
    if any(error.get("loc", ())[:1] == ("path",) for error in errors):
        detail = "Invalid product ID"
    else:
        detail = "Invalid request payload"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": detail, "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(DatabaseError)
async def handle_database_error(request: Request, exc: DatabaseError):
    logger.error(
        "Unhandled database error",
        extra={"path": request.url.path, "message": str(exc)},
        exc_info=exc.original_exception,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred."},
    )


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError):
    logger.warning(
        "Rejected request with invalid value",
        extra={"path": request.url.path, "message": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request"},
    )


app.include_router(product_router)
