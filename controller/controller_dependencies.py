from fastapi import Request, Response
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from service.store_service import StoreService
from util.enums import ErrorMessage
from util.errors import AppError

_write_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


def get_store_service(request: Request) -> StoreService:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise AppError.of(ErrorMessage.STORE_NOT_READY)
    return store


async def limit_writes(request: Request, response: Response) -> None:
    # Limiter needs Redis; without REDIS_URL writes go unthrottled.
    if settings.REDIS_URL:
        await _write_limiter(request, response)
