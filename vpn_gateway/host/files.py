"""Filesystem access restricted to configured locations."""

import os
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from .exceptions import (
    AlreadyExistsError,
    FileAccessError,
    NotFoundError,
    PathNotAllowedError,
    ValidationError,
)
from .locks import KeyedLocks
from .models import FileRecord
from ..logging_utility import logger


class FileGateway:
    def __init__(
            self,
            allowed_paths: Sequence[str] = (),
            restrict: bool = True,
            known_files: Sequence[str] = (),
            locks: Optional[KeyedLocks] = None,
    ):
        self.allowed_paths = [os.path.realpath(p) for p in allowed_paths]
        self.restrict = restrict
        self.known_files = list(known_files)
        self.locks = locks or KeyedLocks()
        if not restrict:
            logger.warning("File access is unrestricted: any path the process can reach is exposed")

    def _resolve(self, path: str) -> str:
        """Validate a caller path and return its real location."""
        if not path:
            raise ValidationError("File path is required")
        if "\x00" in path or not os.path.isabs(path):
            raise ValidationError(f"File path must be absolute: {path}")

        real = os.path.realpath(path)
        if self.restrict and not any(
                real == allowed or real.startswith(allowed.rstrip(os.sep) + os.sep)
                for allowed in self.allowed_paths
        ):
            raise PathNotAllowedError(f"Access to {path} is not allowed")
        return real

    def exists(self, path: str) -> bool:
        """True if the path exists; a missing path is not an error."""
        return self._stat_exists(self._resolve(path), path)

    @staticmethod
    def _stat_exists(real: str, path: str) -> bool:
        try:
            os.stat(real)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise FileAccessError(f"Cannot check {path}: {e.strerror or e}")
        return True

    def read(self, path: str) -> FileRecord:
        real = self._resolve(path)
        try:
            with open(real, "r", encoding="utf-8", newline="") as f:
                content = f.read()
            stats = os.stat(real)
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {path}")
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(f"Cannot read {path}: {getattr(e, 'strerror', None) or e}")

        return FileRecord(
            path=path,
            content=content,
            size=stats.st_size,
            last_modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
            writable=os.access(real, os.W_OK),
        )

    async def write(self, path: str, content: str) -> None:
        """Replace the file content, creating the file if needed."""
        real = self._resolve(path)
        async with self.locks.get(f"file:{real}"):
            self._write(real, path, content, mode="w")
        logger.info(f"Wrote {len(content)} characters to {path}")

    async def create(self, path: str, content: str = "", exclusive: bool = False) -> None:
        """Create a file; with ``exclusive`` an existing file is an error."""
        real = self._resolve(path)
        async with self.locks.get(f"file:{real}"):
            self._write(real, path, content, mode="x" if exclusive else "w")
        logger.info(f"Created {path}")

    @staticmethod
    def _write(real: str, path: str, content: str, mode: str) -> None:
        try:
            with open(real, mode, encoding="utf-8", newline="") as f:
                f.write(content)
        except FileExistsError:
            raise AlreadyExistsError(f"File already exists: {path}")
        except OSError as e:
            raise FileAccessError(f"Cannot write {path}: {e.strerror or e}")

    async def delete(self, path: str) -> None:
        real = self._resolve(path)
        async with self.locks.get(f"file:{real}"):
            try:
                os.unlink(real)
            except FileNotFoundError:
                raise NotFoundError(f"File not found: {path}")
            except OSError as e:
                raise FileAccessError(f"Cannot delete {path}: {e.strerror or e}")
        logger.info(f"Deleted {path}")

    def check_known(self) -> Dict[str, dict]:
        """
        Existence report for the well-known VPN configuration files and scripts.

        The list comes from configuration, so it is checked even outside
        ``allowed_paths``; only existence is revealed.
        """
        results = {}
        for path in self.known_files:
            try:
                results[path] = {"exists": self._stat_exists(os.path.realpath(path), path)}
            except FileAccessError as e:
                results[path] = {"exists": False, "error": str(e)}
        return results
