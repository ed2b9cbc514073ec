"""VPN host administration implementation."""

import os
import shlex
from functools import partial

from .command_factory import HostCommandFactory
from .exceptions import CommandNotAllowedError, CommandSpawnError, ValidationError
from .files import FileGateway
from .firewall import FirewallManager
from .health import HealthAggregator
from .locks import KeyedLocks
from .models import CommandResult, ServiceStatus
from .users import CredentialScanner
from .utils import check_result, failure_message, run_command
from ..logging_utility import logger


class VPNHostManager:
    """Entry point for every administrative operation on the VPN host."""

    def __init__(self, settings, runner=None):
        self.settings = settings
        self.runner = runner or partial(run_command, timeout=settings.command_timeout)
        self.factory = HostCommandFactory.from_settings(settings)
        self.locks = KeyedLocks()

        self.users = CredentialScanner(settings.credentials_dir, settings.credential_suffix)
        self.health = HealthAggregator(
            self.runner,
            self.factory,
            monitored=settings.monitored_services,
            core=settings.core_services,
        )
        self.firewall = FirewallManager(self.runner, self.factory, self.locks)
        self.files = FileGateway(
            allowed_paths=settings.allowed_paths,
            restrict=settings.restrict_paths,
            known_files=settings.known_files,
            locks=self.locks,
        )
        self.allowed_commands = frozenset(settings.allowed_commands)

    async def _run_checked(self, cmd: list[str]) -> CommandResult:
        return check_result(await self.runner(cmd))

    async def add_user(self, username: str, password: str) -> str:
        """Create a user (or reset its password) via the provisioning script."""
        async with self.locks.get(f"user:{username}"):
            result = await self._run_checked(self.factory.add_user(username, password))
        logger.info(f"Provisioned VPN user {username}")
        return result.stdout

    async def delete_user(self, username: str) -> str:
        async with self.locks.get(f"user:{username}"):
            result = await self._run_checked(self.factory.delete_user(username))
        logger.info(f"Deleted VPN user {username}")
        return result.stdout

    async def reload_ikev2(self) -> str:
        result = await self._run_checked(self.factory.reload_ikev2())
        logger.info("IKEv2 configuration regenerated")
        return result.stdout

    async def restart_services(self) -> str:
        result = await self._run_checked(self.factory.restart_services())
        logger.info("VPN services restarted")
        return result.stdout

    async def get_status(self) -> ServiceStatus:
        return await self.health.snapshot()

    def parse_command(self, command: str) -> list[str]:
        """Tokenise an operator command and check it against the allow-list."""
        if not command or not command.strip():
            raise ValidationError("Command is required")
        try:
            argv = shlex.split(command)
        except ValueError as e:
            raise ValidationError(f"Invalid command: {e}")
        executable = argv[0]
        # bare names only; the binary is found through PATH
        if os.sep in executable or (os.altsep and os.altsep in executable):
            raise CommandNotAllowedError(f"Command must be given by name, not path: {executable}")
        if executable not in self.allowed_commands:
            raise CommandNotAllowedError(f"Command '{executable}' is not allowed")
        return argv

    async def execute(self, command: str) -> dict:
        """
        Run an allow-listed command and report its outcome.

        Non-zero exit codes and spawn failures are reported in the result rather
        than raised; timeouts propagate.
        """
        argv = self.parse_command(command)
        try:
            result = await self.runner(argv)
        except CommandSpawnError as e:
            return {"success": False, "output": "", "error": str(e)}

        if not result.ok:
            return {"success": False, "output": result.stdout, "error": failure_message(result)}
        response = {"success": True, "output": result.stdout}
        if result.stderr:
            response["error"] = result.stderr
        return response
