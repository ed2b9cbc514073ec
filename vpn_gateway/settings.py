"""Gateway configuration loaded from an INI file."""

import configparser
import os
from dataclasses import dataclass
from typing import Tuple

from .host.exceptions import ConfigurationError


DEFAULT_CONFIG_FILE = 'config/vpn_gateway.conf'
CONFIG_ENV_VAR = 'VPN_GATEWAY_CONFIG'


@dataclass(frozen=True)
class GatewaySettings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    command_timeout: float = 30.0
    use_sudo: bool = True
    cors_origins: Tuple[str, ...] = ("*",)

    credentials_dir: str = "/root"
    credential_suffix: str = ".p12"
    add_user_script: str = "/opt/src/addvpnuser.sh"
    delete_user_script: str = "/opt/src/delvpnuser.sh"
    ikev2_script: str = "/opt/src/ikev2.sh"

    monitored_services: Tuple[str, ...] = ("strongswan", "xl2tpd", "ipsec")
    core_services: Tuple[str, ...] = ("strongswan", "xl2tpd")
    restart_services: Tuple[str, ...] = ("strongswan", "xl2tpd")

    iptables_bin: str = "iptables"

    restrict_paths: bool = True
    allowed_paths: Tuple[str, ...] = (
        "/etc/ipsec.conf",
        "/etc/ipsec.secrets",
        "/etc/ipsec.d",
        "/etc/xl2tpd",
        "/etc/ppp",
    )
    known_files: Tuple[str, ...] = (
        "/etc/ipsec.conf",
        "/etc/ipsec.secrets",
        "/etc/xl2tpd/xl2tpd.conf",
        "/opt/src/addvpnuser.sh",
        "/opt/src/delvpnuser.sh",
        "/opt/src/ikev2.sh",
    )

    allowed_commands: Tuple[str, ...] = ("ipsec", "systemctl", "iptables", "uptime", "journalctl")


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(',') if item.strip())


def _load_config(config_file: str) -> configparser.ConfigParser:
    config = configparser.ConfigParser()
    try:
        config.read(config_file, encoding='utf-8')
    except configparser.Error as e:
        raise ConfigurationError(f"Cannot parse {config_file}: {e}")
    return config


def load_settings(config_file: str = None) -> GatewaySettings:
    """Read settings from ``config_file``; missing keys keep their defaults."""
    if config_file is None:
        config_file = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
    config = _load_config(config_file)
    defaults = GatewaySettings()

    def get(section, key, default):
        return config.get(section, key, fallback=default)

    def get_list(section, key, default):
        if not config.has_option(section, key):
            return default
        return _split_list(config.get(section, key))

    try:
        return GatewaySettings(
            host=get('server', 'host', defaults.host),
            port=config.getint('server', 'port', fallback=defaults.port),
            log_level=get('server', 'log_level', defaults.log_level),
            command_timeout=config.getfloat('server', 'command_timeout', fallback=defaults.command_timeout),
            use_sudo=config.getboolean('server', 'use_sudo', fallback=defaults.use_sudo),
            cors_origins=get_list('server', 'cors_origins', defaults.cors_origins),
            credentials_dir=get('users', 'credentials_dir', defaults.credentials_dir),
            credential_suffix=get('users', 'credential_suffix', defaults.credential_suffix),
            add_user_script=get('users', 'add_user_script', defaults.add_user_script),
            delete_user_script=get('users', 'delete_user_script', defaults.delete_user_script),
            ikev2_script=get('users', 'ikev2_script', defaults.ikev2_script),
            monitored_services=get_list('services', 'monitored', defaults.monitored_services),
            core_services=get_list('services', 'core', defaults.core_services),
            restart_services=get_list('services', 'restart', defaults.restart_services),
            iptables_bin=get('firewall', 'iptables_bin', defaults.iptables_bin),
            restrict_paths=config.getboolean('files', 'restrict_paths', fallback=defaults.restrict_paths),
            allowed_paths=get_list('files', 'allowed_paths', defaults.allowed_paths),
            known_files=get_list('files', 'known_files', defaults.known_files),
            allowed_commands=get_list('execute', 'allowed_commands', defaults.allowed_commands),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid value in {config_file}: {e}")
