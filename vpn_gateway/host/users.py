"""Credential bundle discovery."""

import os
from pathlib import Path
from typing import List

from .exceptions import DirectoryReadError, NotFoundError, ValidationError
from .models import ARTIFACT_EXTENSIONS, VPNUser
from ..logging_utility import logger


class CredentialScanner:
    def __init__(self, directory: str, suffix: str = ".p12"):
        self.directory = Path(directory)
        self.suffix = suffix

    def list_users(self) -> List[VPNUser]:
        """
        Enumerate VPN users from credential bundles in the directory.

        Returns:
            One VPNUser per bundle, in directory listing order
        """
        try:
            with os.scandir(self.directory) as entries:
                names = [
                    entry.name for entry in entries
                    if entry.name.endswith(self.suffix)
                    and len(entry.name) > len(self.suffix)
                    and entry.is_file()
                ]
        except OSError as e:
            logger.error(f"Failed to read {self.directory}: {e}")
            raise DirectoryReadError(f"Error reading user configs: {e.strerror or e}")

        return [VPNUser.from_username(name[:-len(self.suffix)]) for name in names]

    def artifact_path(self, filename: str) -> Path:
        """Resolve a downloadable credential artifact by bare filename."""
        if not filename or filename in (".", "..") or "/" in filename or "\\" in filename or "\x00" in filename:
            raise ValidationError(f"Invalid file name '{filename}'")
        ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
        if ext not in ARTIFACT_EXTENSIONS:
            raise ValidationError(f"Unsupported config type '{filename}'")

        path = self.directory / filename
        if not path.is_file():
            raise NotFoundError("File not found")
        return path
