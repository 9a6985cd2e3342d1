from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class LedgerBackend(str, Enum):
    CELESTIA = "celestia"
    MEMORY = "memory"


class BootstrapOutcome(str, Enum):
    CREATED = "created"
    RESUMED = "resumed"


class InclusionStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    RECORD_NOT_FOUND = ErrorInfo("Record not found", status.HTTP_404_NOT_FOUND)
    INVALID_RECORD = ErrorInfo("Invalid record", status.HTTP_400_BAD_REQUEST)
    LEDGER_UNAVAILABLE = ErrorInfo("Ledger unavailable", status.HTTP_502_BAD_GATEWAY)
    SUBMISSION_REJECTED = ErrorInfo(
        "Ledger rejected submission", status.HTTP_502_BAD_GATEWAY
    )
    STORE_NOT_READY = ErrorInfo("Store not ready", status.HTTP_503_SERVICE_UNAVAILABLE)
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
