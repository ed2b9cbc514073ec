"""Shared test fixtures."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List

import httpx
import pytest

from vpn_gateway.host.models import CommandResult
from vpn_gateway.main import create_app
from vpn_gateway.settings import GatewaySettings


def ok(cmd: List[str], stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=list(cmd), exit_code=0, stdout=stdout, stderr=stderr)


def failed(cmd: List[str], stderr: str = "", stdout: str = "", code: int = 1) -> CommandResult:
    return CommandResult(args=list(cmd), exit_code=code, stdout=stdout, stderr=stderr)


class FakeRunner:
    """Stands in for run_command; records every argv it receives.

    ``handler`` maps an argv list to a CommandResult, or raises.
    """

    def __init__(self, handler: Callable[[List[str]], CommandResult] = None):
        self.handler = handler or (lambda cmd: ok(cmd))
        self.calls: List[List[str]] = []

    async def __call__(self, cmd: List[str], timeout: float = None) -> CommandResult:
        self.calls.append(list(cmd))
        return self.handler(list(cmd))


class FakeIptables:
    """Minimal in-memory iptables understanding --list, --append and --delete."""

    def __init__(self):
        self.chains: Dict[str, List[str]] = {"INPUT": [], "FORWARD": [], "OUTPUT": []}

    def render(self) -> str:
        lines = []
        for chain, rules in self.chains.items():
            lines.append(f"Chain {chain} (policy ACCEPT)")
            lines.append("num  target     prot opt source               destination")
            for number, rule in enumerate(rules, start=1):
                lines.append(f"{number:<4} {rule}")
            lines.append("")
        return "\n".join(lines)

    def __call__(self, cmd: List[str]) -> CommandResult:
        if cmd[0] == "sudo":
            cmd = cmd[1:]
        if "--list" in cmd:
            return ok(cmd, stdout=self.render())
        if "--append" in cmd:
            idx = cmd.index("--append")
            chain, spec = cmd[idx + 1], cmd[idx + 2:]
            if chain not in self.chains:
                return failed(cmd, stderr="iptables: No chain/target/match by that name.\n")
            self.chains[chain].append(" ".join(spec))
            return ok(cmd)
        if "--delete" in cmd:
            idx = cmd.index("--delete")
            chain, position = cmd[idx + 1], int(cmd[idx + 2])
            rules = self.chains.get(chain)
            if rules is None or position > len(rules):
                return failed(cmd, stderr="iptables: Index of deletion too big.\n")
            del rules[position - 1]
            return ok(cmd)
        return failed(cmd, stderr=f"unexpected command {cmd}")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def credentials_dir(tmp_path: Path) -> Path:
    path = tmp_path / "creds"
    path.mkdir()
    return path


@pytest.fixture
def etc_dir(tmp_path: Path) -> Path:
    path = tmp_path / "etc"
    path.mkdir()
    return path


@pytest.fixture
def settings(credentials_dir: Path, etc_dir: Path) -> GatewaySettings:
    return dataclasses.replace(
        GatewaySettings(),
        credentials_dir=str(credentials_dir),
        use_sudo=False,
        allowed_paths=(str(etc_dir),),
        known_files=(str(etc_dir / "ipsec.conf"), str(etc_dir / "ipsec.secrets")),
        command_timeout=5.0,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def app(settings: GatewaySettings, runner: FakeRunner):
    return create_app(settings, runner=runner)


@pytest.fixture
async def client(app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
