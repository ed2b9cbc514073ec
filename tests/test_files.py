"""Tests for the restricted file gateway."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from vpn_gateway.host.exceptions import (
    AlreadyExistsError,
    FileAccessError,
    NotFoundError,
    PathNotAllowedError,
    ValidationError,
)
from vpn_gateway.host.files import FileGateway


running_as_root = pytest.mark.skipif(os.geteuid() == 0, reason="root ignores file permissions")


@pytest.fixture
def gateway(etc_dir: Path) -> FileGateway:
    return FileGateway(allowed_paths=[str(etc_dir)], known_files=[str(etc_dir / "ipsec.conf")])


class TestExists:
    def test_missing_path_is_false(self, gateway, etc_dir):
        assert gateway.exists(str(etc_dir / "nope.conf")) is False

    def test_missing_parent_is_false(self, gateway, etc_dir):
        assert gateway.exists(str(etc_dir / "nope" / "deeper.conf")) is False

    def test_existing_file(self, gateway, etc_dir):
        (etc_dir / "ipsec.conf").write_text("config setup\n")
        assert gateway.exists(str(etc_dir / "ipsec.conf")) is True

    @running_as_root
    def test_unreadable_parent_is_an_error(self, gateway, etc_dir):
        locked = etc_dir / "locked"
        locked.mkdir()
        (locked / "file.conf").write_text("x")
        locked.chmod(0)
        try:
            with pytest.raises(FileAccessError):
                gateway.exists(str(locked / "file.conf"))
        finally:
            locked.chmod(0o755)

    def test_permission_denied_is_an_error_not_missing(self, gateway, etc_dir, monkeypatch):
        locked = etc_dir / "locked"
        real_stat = os.stat

        def denied(path, *args, **kwargs):
            if f"{os.sep}locked{os.sep}" in str(path):
                raise PermissionError(13, "Permission denied", str(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(os, "stat", denied)
        with pytest.raises(FileAccessError, match="Permission denied"):
            gateway.exists(str(locked / "file.conf"))


class TestReadWrite:
    @pytest.mark.anyio
    async def test_round_trip_is_exact(self, gateway, etc_dir):
        path = str(etc_dir / "ipsec.secrets")
        content = "%any %any : PSK \"ключ-秘密\"\r\nline two\nno trailing newline"
        await gateway.write(path, content)
        record = gateway.read(path)
        assert record.content == content
        assert record.size == len(content.encode("utf-8"))
        assert record.last_modified is not None

    @pytest.mark.anyio
    async def test_write_overwrites(self, gateway, etc_dir):
        path = str(etc_dir / "xl2tpd.conf")
        await gateway.write(path, "first version, longer")
        await gateway.write(path, "second")
        assert gateway.read(path).content == "second"

    def test_read_missing(self, gateway, etc_dir):
        with pytest.raises(NotFoundError):
            gateway.read(str(etc_dir / "missing.conf"))

    def test_read_directory_is_access_error(self, gateway, etc_dir):
        (etc_dir / "ipsec.d").mkdir()
        with pytest.raises(FileAccessError):
            gateway.read(str(etc_dir / "ipsec.d"))

    @pytest.mark.anyio
    async def test_write_into_missing_directory(self, gateway, etc_dir):
        with pytest.raises(FileAccessError):
            await gateway.write(str(etc_dir / "missing" / "file.conf"), "x")

    def test_wire_shape(self, gateway, etc_dir):
        (etc_dir / "a.conf").write_text("abc")
        data = gateway.read(str(etc_dir / "a.conf")).to_dict()
        assert set(data) == {"path", "content", "size", "lastModified", "writable"}
        assert data["writable"] is True


class TestCreateDelete:
    @pytest.mark.anyio
    async def test_create_defaults_to_empty(self, gateway, etc_dir):
        path = str(etc_dir / "new.conf")
        await gateway.create(path)
        assert gateway.read(path).content == ""

    @pytest.mark.anyio
    async def test_create_overwrites_by_default(self, gateway, etc_dir):
        path = etc_dir / "new.conf"
        path.write_text("old")
        await gateway.create(str(path), "new")
        assert path.read_text() == "new"

    @pytest.mark.anyio
    async def test_exclusive_create_refuses_existing(self, gateway, etc_dir):
        path = etc_dir / "new.conf"
        path.write_text("old")
        with pytest.raises(AlreadyExistsError):
            await gateway.create(str(path), "new", exclusive=True)
        assert path.read_text() == "old"

    @pytest.mark.anyio
    async def test_exclusive_create_new_file(self, gateway, etc_dir):
        await gateway.create(str(etc_dir / "fresh.conf"), "content", exclusive=True)
        assert (etc_dir / "fresh.conf").read_text() == "content"

    @pytest.mark.anyio
    async def test_delete(self, gateway, etc_dir):
        path = etc_dir / "old.conf"
        path.write_text("x")
        await gateway.delete(str(path))
        assert not path.exists()

    @pytest.mark.anyio
    async def test_delete_missing(self, gateway, etc_dir):
        with pytest.raises(NotFoundError):
            await gateway.delete(str(etc_dir / "ghost.conf"))


class TestPathPolicy:
    def test_relative_path_rejected(self, gateway):
        with pytest.raises(ValidationError):
            gateway.exists("etc/ipsec.conf")

    def test_empty_path_rejected(self, gateway):
        with pytest.raises(ValidationError):
            gateway.exists("")

    def test_outside_allowed_paths(self, gateway, tmp_path):
        with pytest.raises(PathNotAllowedError):
            gateway.read(str(tmp_path / "elsewhere.conf"))

    def test_dot_dot_escape(self, gateway, etc_dir):
        with pytest.raises(PathNotAllowedError):
            gateway.exists(str(etc_dir / ".." / "creds"))

    def test_prefix_sibling_is_not_inside(self, gateway, etc_dir, tmp_path):
        sibling = tmp_path / (etc_dir.name + "-other")
        sibling.mkdir()
        with pytest.raises(PathNotAllowedError):
            gateway.exists(str(sibling / "x.conf"))

    def test_symlink_escape(self, gateway, etc_dir, tmp_path):
        target = tmp_path / "outside.txt"
        target.write_text("secret")
        (etc_dir / "link.conf").symlink_to(target)
        with pytest.raises(PathNotAllowedError):
            gateway.read(str(etc_dir / "link.conf"))

    def test_unrestricted_mode(self, tmp_path):
        target = tmp_path / "anywhere.txt"
        target.write_text("ok")
        gateway = FileGateway(restrict=False)
        assert gateway.read(str(target)).content == "ok"


def test_check_known(gateway, etc_dir):
    (etc_dir / "ipsec.conf").write_text("x")
    assert gateway.check_known() == {str(etc_dir / "ipsec.conf"): {"exists": True}}


def test_check_known_outside_allowed_paths(etc_dir, tmp_path):
    script = tmp_path / "src" / "addvpnuser.sh"
    script.parent.mkdir()
    script.write_text("#!/bin/sh\n")
    gateway = FileGateway(
        allowed_paths=[str(etc_dir)],
        known_files=[str(script), "/definitely/elsewhere.conf"],
    )
    assert gateway.check_known() == {
        str(script): {"exists": True},
        "/definitely/elsewhere.conf": {"exists": False},
    }
    with pytest.raises(PathNotAllowedError):
        gateway.read(str(script))
