"""Command templates and builders for VPN host administration."""

import re
from typing import List, Optional, Dict
from dataclasses import dataclass

from .exceptions import ValidationError


@dataclass(frozen=True)
class Command:
    """Immutable command builder with option validation."""
    base_cmd: List[str]
    use_sudo: bool = False
    _valid_options: Optional[Dict[str, type]] = None

    def _validate_option(self, opt: str, value: Optional[str]) -> None:
        """Validate option and its value if validation rules exist."""
        if self._valid_options is not None:
            # Remove leading dashes for validation
            opt_name = opt.lstrip('-').replace('-', '_')

            if opt_name not in self._valid_options:
                valid_opts = ", ".join(f"--{opt.replace('_', '-')}"
                                       for opt in self._valid_options.keys())
                raise ValidationError(
                    f"Invalid option '{opt}' for command {self.base_cmd[0]}. "
                    f"Valid options are: {valid_opts}"
                )

            expected_type = self._valid_options[opt_name]
            if expected_type is type(None):
                if value is not None:
                    raise ValidationError(f"Option '{opt}' does not take a value")
                return
            if value is None:
                raise ValidationError(f"Option '{opt}' requires a value")
            try:
                expected_type(value)
            except ValueError:
                raise ValidationError(
                    f"Invalid value '{value}' for option '{opt}'. Expected {expected_type.__name__}"
                )

    def _validate_executable(self) -> None:
        """Validate that base command exists."""
        if not self.base_cmd or not self.base_cmd[0]:
            raise ValidationError("Command cannot be empty")

    @classmethod
    def from_str(cls, cmd: str, use_sudo: bool = False, valid_options: Optional[Dict[str, type]] = None) -> 'Command':
        """Create command from a whitespace-separated template."""
        command = cls(cmd.split(), use_sudo, valid_options)
        command._validate_executable()
        return command

    def with_arg(self, arg: str) -> 'Command':
        """Add single argument."""
        return Command(self.base_cmd + [str(arg)], self.use_sudo, self._valid_options)

    def with_args(self, *args: str) -> 'Command':
        """Add multiple arguments."""
        return Command(self.base_cmd + [str(a) for a in args], self.use_sudo, self._valid_options)

    def with_option(self, opt: str, value: Optional[str] = None) -> 'Command':
        """Add option with validation."""
        opt_clean = opt.lstrip('-').replace('_', '-')
        self._validate_option(opt_clean, value)
        cmd = self.base_cmd.copy()
        cmd.append(f"--{opt_clean}")
        if value is not None:
            cmd.append(str(value))
        return Command(cmd, self.use_sudo, self._valid_options)

    def with_options(self, **kwargs: Optional[str]) -> 'Command':
        """Add multiple options with validation."""
        command = self
        for opt, value in kwargs.items():
            command = command.with_option(opt, str(value) if value is not None else None)
        return command

    def as_sudo(self, enabled: bool = True) -> 'Command':
        """Mark command to be executed with sudo."""
        return Command(self.base_cmd, enabled, self._valid_options)

    def build(self) -> List[str]:
        """Get final command list."""
        self._validate_executable()
        return ["sudo"] + self.base_cmd if self.use_sudo else list(self.base_cmd)


USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._@-]{0,63}$")
CHAIN_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,28}$")
SERVICE_PATTERN = re.compile(r"^[A-Za-z0-9@._-]+$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def validate_username(username: str) -> str:
    if not username or not USERNAME_PATTERN.match(username):
        raise ValidationError(f"Invalid username '{username}'")
    return username


def validate_password(password: str) -> str:
    if not password:
        raise ValidationError("Password is required")
    if _CONTROL_CHARS.search(password):
        raise ValidationError("Password must not contain control characters")
    return password


def validate_chain(chain: str) -> str:
    if not chain or not CHAIN_PATTERN.match(chain):
        raise ValidationError(f"Invalid chain name '{chain}'")
    return chain


def validate_service(service: str) -> str:
    if not service or not SERVICE_PATTERN.match(service):
        raise ValidationError(f"Invalid service name '{service}'")
    return service


IPTABLES_OPTIONS = {
    'list': type(None),
    'numeric': type(None),
    'line_numbers': type(None),
    'append': str,
    'delete': str,
}

UPTIME_OPTIONS = {
    'pretty': type(None),
}


SYSTEMCTL = Command.from_str("systemctl")
SYSTEMCTL_IS_ACTIVE = SYSTEMCTL.with_arg("is-active")
SYSTEMCTL_RESTART = SYSTEMCTL.with_arg("restart")

UPTIME = Command.from_str("uptime", valid_options=UPTIME_OPTIONS)
UPTIME_PRETTY = UPTIME.with_option("pretty")

IPSEC = Command.from_str("ipsec")
IPSEC_STATUS = IPSEC.with_arg("status")


def iptables(binary: str = "iptables") -> Command:
    """Base iptables command for the given binary."""
    return Command.from_str(binary, valid_options=IPTABLES_OPTIONS)
