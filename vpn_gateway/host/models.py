"""Data models for VPN host administration."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


ARTIFACT_EXTENSIONS = ("p12", "sswan", "mobileconfig")


@dataclass
class CommandResult:
    """Outcome of one external command"""
    args: List[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class VPNUser:
    """A VPN user, defined by a credential bundle on disk"""
    username: str
    configs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_username(cls, username: str) -> 'VPNUser':
        configs = {ext: f"/configs/{username}.{ext}" for ext in ARTIFACT_EXTENSIONS}
        return cls(username=username, configs=configs)

    def to_dict(self) -> dict:
        return {"username": self.username, "configs": dict(self.configs)}


@dataclass
class ServiceStatus:
    """Point-in-time health snapshot of the VPN services"""
    services: Dict[str, bool]
    core_services: Tuple[str, ...]
    active_connections: int = 0
    uptime: Optional[str] = None

    @property
    def running(self) -> bool:
        return all(self.services.get(name, False) for name in self.core_services)

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "services": dict(self.services),
            "activeConnections": self.active_connections,
            "uptime": self.uptime,
        }


@dataclass
class FirewallRule:
    """One rule line from an iptables listing.

    ``id`` only identifies the rule within the listing that produced it.
    """
    id: str
    chain: str
    rule_text: str
    number: int
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chain": self.chain,
            "rule": self.rule_text,
            "number": self.number,
            "enabled": self.enabled,
        }


@dataclass
class PortRule:
    """Port-oriented view of a firewall rule"""
    id: str
    chain: str
    number: int
    port: Optional[int]
    protocol: str
    action: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chain": self.chain,
            "number": self.number,
            "port": self.port,
            "protocol": self.protocol,
            "action": self.action,
        }


@dataclass
class FileRecord:
    """Contents and metadata of a file"""
    path: str
    content: str
    size: Optional[int] = None
    last_modified: Optional[str] = None
    writable: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "content": self.content,
            "size": self.size,
            "lastModified": self.last_modified,
            "writable": self.writable,
        }
