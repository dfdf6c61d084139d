from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    TRANSIENT_NETWORK = "transient_network"
    EXHAUSTED_RETRIES = "exhausted_retries"
    CONFIGURATION = "configuration"
    FATAL_STARTUP = "fatal_startup"


class BotError(Exception):
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransientNetworkError(BotError):
    """RPC or HTTP call failed, timed out or the transaction reverted."""

    kind = ErrorKind.TRANSIENT_NETWORK


class ExhaustedRetries(BotError):
    kind = ErrorKind.EXHAUSTED_RETRIES

    def __init__(self, operation: str, attempts: int, cause: Optional[BaseException]):
        super().__init__(f"{operation}: failed after {attempts} attempt(s): {cause}")
        self.operation = operation
        self.attempts = attempts
        self.cause = cause


class ConfigurationError(BotError):
    kind = ErrorKind.CONFIGURATION


class FatalStartupError(BotError):
    kind = ErrorKind.FATAL_STARTUP
