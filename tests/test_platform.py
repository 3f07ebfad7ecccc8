"""Tests for platform module."""

import pytest

import opsdk.errors
import opsdk.platform


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("x86_64", "amd64"), ("AMD64", "amd64"), ("aarch64", "arm64"), ("arm64", "arm64")],
)
def test_normalize_arch(raw: str, expected: str) -> None:
    """normalize_arch maps raw machine names to canonical tokens."""
    assert opsdk.platform.normalize_arch(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("Linux", "linux"), ("linux-gnu", "linux"), ("Darwin", "darwin")],
)
def test_normalize_os(raw: str, expected: str) -> None:
    """normalize_os maps raw OS names to canonical tokens."""
    assert opsdk.platform.normalize_os(raw) == expected


def test_normalize_os_unsupported() -> None:
    """Windows is not supported."""
    with pytest.raises(opsdk.errors.PlatformError, match="Unsupported operating"):
        opsdk.platform.normalize_os("Windows")


def test_normalize_arch_unsupported() -> None:
    """Unknown architectures raise PlatformError."""
    with pytest.raises(opsdk.errors.PlatformError, match="Unsupported architecture"):
        opsdk.platform.normalize_arch("mips")


def test_get_host_uses_platform_module(monkeypatch) -> None:
    """get_host normalizes platform.system and platform.machine."""
    monkeypatch.setattr(opsdk.platform.platform, "system", lambda: "Linux")
    monkeypatch.setattr(opsdk.platform.platform, "machine", lambda: "x86_64")
    host = opsdk.platform.get_host()
    assert host == opsdk.platform.HostDescriptor(platform_os="linux", arch="amd64")


def test_asset_filter_templates() -> None:
    """asset_filter renders both upstream naming conventions."""
    host = opsdk.platform.HostDescriptor(platform_os="linux", arch="amd64")
    assert host.asset_filter("{platform}_{arch}") == "linux_amd64"
    assert host.asset_filter("{arch}-{platform}") == "amd64-linux"


def test_template_fields() -> None:
    """template_fields lists replacement fields."""
    assert opsdk.platform.template_fields("{arch}-{platform}") == {"arch", "platform"}
    assert opsdk.platform.template_fields("static") == set()
