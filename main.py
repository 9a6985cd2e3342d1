from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color, ErrorMessage
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, get_redis
from config.ledger import close_ledger, get_ledger, inclusion_policy
from core.errors import (
    InvalidRecord,
    NotFound,
    StoreError,
    SubmissionError,
    TransportError,
)
from fastapi.responses import JSONResponse
from service.store_service import StoreService
from util.logger import init_logger


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    try:
        init_logger()
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        if settings.REDIS_URL:
            redis = await get_redis()
            await FastAPILimiter.init(redis, identifier=_real_ip)
        ledger = await get_ledger()
        fastApi.state.store = await StoreService.open(
            ledger,
            label=settings.NAMESPACE_LABEL,
            width=settings.NAMESPACE_WIDTH,
            start_height=settings.START_HEIGHT,
            search_limit=settings.SEARCH_LIMIT,
            concurrency=settings.SCAN_CONCURRENCY,
            inclusion=inclusion_policy(),
        )
        print(f"{Color.BLUE}Server Started{Color.RESET}")
    except Exception as e:
        print("Failed to open store:", e)
        raise

    try:
        yield
    finally:
        store: StoreService | None = getattr(fastApi.state, "store", None)
        fastApi.state.store = None
        try:
            if store is not None:
                await store.aclose()
            await close_ledger()
            await close_redis()
        except Exception as e:
            print("Error closing connections:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,  # Allow cookies and other credentials
    allow_methods=["GET", "POST"],  # Allowed HTTP Methods
    allow_headers=["Authorization", "Content-Type", "Accept"],  # Allowed HTTP Headers
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


_ERROR_BY_TYPE = (
    (NotFound, ErrorMessage.RECORD_NOT_FOUND),
    (InvalidRecord, ErrorMessage.INVALID_RECORD),
    (SubmissionError, ErrorMessage.SUBMISSION_REJECTED),
    (TransportError, ErrorMessage.LEDGER_UNAVAILABLE),
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    info = next(
        (e.value for cls, e in _ERROR_BY_TYPE if isinstance(exc, cls)),
        ErrorMessage.INTERNAL_ERROR.value,
    )
    return JSONResponse(
        status_code=info.http_status,
        content={
            "ok": False,
            "error": exc.code,
            "message": f"{info.message}: {exc.message}" if exc.message else info.message,
        },
    )


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many writes. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
