"""Factory for the fixed set of privileged host operations."""

from typing import Sequence

from .commands import (
    Command,
    IPSEC_STATUS,
    SYSTEMCTL_IS_ACTIVE,
    SYSTEMCTL_RESTART,
    UPTIME_PRETTY,
    iptables,
    validate_chain,
    validate_password,
    validate_service,
    validate_username,
)
from .exceptions import ValidationError


class HostCommandFactory:
    """Builds argv lists for every operation the gateway may run."""

    def __init__(
            self,
            add_user_script: str = "/opt/src/addvpnuser.sh",
            delete_user_script: str = "/opt/src/delvpnuser.sh",
            ikev2_script: str = "/opt/src/ikev2.sh",
            restart_services: Sequence[str] = ("strongswan", "xl2tpd"),
            iptables_bin: str = "iptables",
            use_sudo: bool = True,
    ):
        self.add_user_script = Command.from_str(add_user_script)
        self.delete_user_script = Command.from_str(delete_user_script)
        self.ikev2_script = Command.from_str(ikev2_script)
        self.restart_services_list = [validate_service(s) for s in restart_services]
        self.iptables = iptables(iptables_bin)
        self.use_sudo = use_sudo

    @classmethod
    def from_settings(cls, settings) -> 'HostCommandFactory':
        return cls(
            add_user_script=settings.add_user_script,
            delete_user_script=settings.delete_user_script,
            ikev2_script=settings.ikev2_script,
            restart_services=settings.restart_services,
            iptables_bin=settings.iptables_bin,
            use_sudo=settings.use_sudo,
        )

    def add_user(self, username: str, password: str) -> list[str]:
        """Create or re-provision a VPN user."""
        validate_username(username)
        validate_password(password)
        return self.add_user_script.with_args(username, password).as_sudo(self.use_sudo).build()

    def delete_user(self, username: str) -> list[str]:
        """Remove a VPN user."""
        validate_username(username)
        return self.delete_user_script.with_arg(username).as_sudo(self.use_sudo).build()

    def reload_ikev2(self) -> list[str]:
        """Regenerate IKEv2 configuration."""
        return self.ikev2_script.as_sudo(self.use_sudo).build()

    def restart_services(self) -> list[str]:
        """Restart the VPN daemons."""
        return SYSTEMCTL_RESTART.with_args(*self.restart_services_list).as_sudo(self.use_sudo).build()

    @staticmethod
    def service_is_active(service: str) -> list[str]:
        """Probe a systemd unit; needs no privileges."""
        return SYSTEMCTL_IS_ACTIVE.with_arg(validate_service(service)).build()

    @staticmethod
    def uptime() -> list[str]:
        return UPTIME_PRETTY.build()

    def ipsec_status(self) -> list[str]:
        return IPSEC_STATUS.as_sudo(self.use_sudo).build()

    def list_rules(self) -> list[str]:
        """List all filter rules with their line numbers."""
        return (
            self.iptables
            .with_options(list=None, numeric=None, line_numbers=None)
            .as_sudo(self.use_sudo)
            .build()
        )

    def append_rule(self, chain: str, rule_args: Sequence[str]) -> list[str]:
        """Append a rule to the end of a chain."""
        if not rule_args:
            raise ValidationError("Rule specification is required")
        return (
            self.iptables
            .with_option("append", validate_chain(chain))
            .with_args(*rule_args)
            .as_sudo(self.use_sudo)
            .build()
        )

    def delete_rule(self, chain: str, position: int) -> list[str]:
        """Delete the rule at a 1-based position in a chain."""
        if position < 1:
            raise ValidationError("Rule number must be 1 or greater")
        return (
            self.iptables
            .with_option("delete", validate_chain(chain))
            .with_arg(str(position))
            .as_sudo(self.use_sudo)
            .build()
        )
