import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment, LedgerBackend
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV, validation_alias="APP_ENV")

    # Ledger node
    LEDGER_BACKEND: LedgerBackend = Field(
        default=LedgerBackend.CELESTIA, validation_alias="LEDGER_BACKEND"
    )
    LEDGER_RPC_URL: str = Field(
        default="http://localhost:26658", validation_alias="LEDGER_RPC_URL"
    )
    CELESTIA_NODE_AUTH_TOKEN: Optional[str] = Field(
        default=None, validation_alias="CELESTIA_NODE_AUTH_TOKEN"
    )
    LEDGER_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="LEDGER_TIMEOUT_SECONDS"
    )

    # Store
    NAMESPACE_LABEL: str = Field(default="blobkv", validation_alias="NAMESPACE_LABEL")
    NAMESPACE_WIDTH: int = Field(default=10, validation_alias="NAMESPACE_WIDTH")
    START_HEIGHT: Optional[int] = Field(default=None, validation_alias="START_HEIGHT")
    SEARCH_LIMIT: int = Field(default=1000, validation_alias="SEARCH_LIMIT")
    SCAN_CONCURRENCY: int = Field(default=8, validation_alias="SCAN_CONCURRENCY")

    # Retry / inclusion polling
    TRANSPORT_MAX_ATTEMPTS: int = Field(default=3, validation_alias="TRANSPORT_MAX_ATTEMPTS")
    TRANSPORT_BACKOFF_BASE: float = Field(
        default=0.25, validation_alias="TRANSPORT_BACKOFF_BASE"
    )
    INCLUSION_MAX_ATTEMPTS: int = Field(default=6, validation_alias="INCLUSION_MAX_ATTEMPTS")
    INCLUSION_BACKOFF_BASE: float = Field(
        default=1.0, validation_alias="INCLUSION_BACKOFF_BASE"
    )
    BACKOFF_MAX_SECONDS: float = Field(default=30.0, validation_alias="BACKOFF_MAX_SECONDS")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")
    REDIS_URL: Optional[str] = Field(default=None, validation_alias="REDIS_URL")
    RATE_LIMIT_TIMES: int = Field(default=30, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Logging knobs
    LOGGER_NAME: str = "blobkv"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
