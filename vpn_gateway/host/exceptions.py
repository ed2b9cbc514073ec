"""Custom exceptions for VPN host administration."""

from typing import Optional

from .models import CommandResult


class GatewayError(Exception):
    """Base exception for gateway errors."""
    status_code = 500


class ConfigurationError(GatewayError):
    """Raised when the gateway configuration is invalid"""
    pass


class ValidationError(GatewayError):
    """Raised when caller input is missing or malformed"""
    status_code = 400


class PathNotAllowedError(GatewayError):
    """Raised when a file path is outside the allowed locations"""
    status_code = 403


class CommandNotAllowedError(GatewayError):
    """Raised when an executable is not in the execute allow-list"""
    status_code = 403


class NotFoundError(GatewayError):
    """Raised when a file or credential artifact does not exist"""
    status_code = 404


class AlreadyExistsError(GatewayError):
    """Raised when an exclusive create hits an existing file"""
    status_code = 409


class StaleRuleError(GatewayError):
    """Raised when a firewall rule moved since the caller listed it"""
    status_code = 409


class DirectoryReadError(GatewayError):
    """Raised when the credentials directory cannot be listed"""
    pass


class FileAccessError(GatewayError):
    """Raised for filesystem faults other than a missing file"""
    pass


class CommandSpawnError(GatewayError):
    """Raised when an external command cannot be started"""
    pass


class CommandTimeoutError(GatewayError):
    """Raised when an external command exceeds its deadline"""
    status_code = 504


class ExecutionError(GatewayError):
    """Raised when an external command exits with a non-zero status"""

    def __init__(self, message: str, result: Optional[CommandResult] = None):
        super().__init__(message)
        self.result = result
