from __future__ import annotations

from enum import IntEnum

from botocore.exceptions import BotoCoreError, ClientError


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    AUTH_ERROR = 3
    AWS_ERROR = 4
    RUNTIME_ERROR = 5


class InventoryError(Exception):
    """Base error for inventory pipeline."""


class ConfigError(InventoryError):
    """Raised for configuration or argument issues."""


class AuthResolutionError(InventoryError):
    """Raised when AWS credentials or profile cannot be resolved."""


class AWSClientError(InventoryError):
    """Raised when AWS SDK operations fail."""


class ExportError(InventoryError):
    """Raised when exporting artifacts fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, AuthResolutionError):
        return int(ExitCode.AUTH_ERROR)
    if isinstance(exc, AWSClientError):
        return int(ExitCode.AWS_ERROR)
    if isinstance(exc, (ExportError, InventoryError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1


def is_aws_error(exc: BaseException) -> bool:
    """
    Return True if the exception is raised by botocore/boto3.
    """
    if isinstance(exc, (ClientError, BotoCoreError)):
        return True
    return exc.__class__.__module__.startswith(("botocore.", "boto3."))


def map_aws_error(exc: BaseException, context: str) -> AWSClientError | None:
    """
    Wrap AWS SDK errors with AWSClientError for consistent exit codes.
    """
    if not is_aws_error(exc):
        return None
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "Unknown")
        return AWSClientError(f"{context}: {code}: {exc}")
    return AWSClientError(f"{context}: {exc}")
