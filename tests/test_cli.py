"""Tests for CLI module."""

import logging
import pathlib

import pytest

import opsdk.cli
import opsdk.config
import opsdk.errors
import opsdk.github
import opsdk.platform

LINUX_AMD64 = opsdk.platform.HostDescriptor(platform_os="linux", arch="amd64")


class FakeSource:
    """ReleaseSource serving a fixed release index."""

    def __init__(self, releases: tuple[opsdk.github.Release, ...]) -> None:
        self.releases = releases

    def list_releases(self, repo: str) -> tuple[opsdk.github.Release, ...]:
        return self.releases

    def download_asset(self, url: str, dest_fpath: pathlib.Path) -> None:
        dest_fpath.write_bytes(b"binary")


def make_release(tag: str) -> opsdk.github.Release:
    name = "operator-sdk_linux_amd64"
    asset = opsdk.github.ReleaseAsset(name=name, url=f"https://dl/{tag}/{name}")
    return opsdk.github.Release(tag=tag, assets=(asset,))


def make_settings(tmp_path: pathlib.Path) -> opsdk.config.Settings:
    return opsdk.config.Settings(cache_dpath=tmp_path / "tools")


def test_run_install_prints_path(tmp_path: pathlib.Path, capsys) -> None:
    """run_install prints the cached path and returns 0."""
    source = FakeSource((make_release("v1.9.0"), make_release("v1.8.0")))
    cmd = opsdk.cli.Install(version="~1.8")

    code = opsdk.cli.run_install(cmd, make_settings(tmp_path), source, LINUX_AMD64)

    assert code == 0
    output = capsys.readouterr().out.strip()
    assert output == str(
        tmp_path / "tools" / "operator-sdk" / "1.8.0" / "amd64" / "operator-sdk"
    )


def test_run_install_not_found(tmp_path: pathlib.Path, capsys) -> None:
    """run_install reports a missing match on stderr and returns 1."""
    source = FakeSource((make_release("v1.9.0"),))
    cmd = opsdk.cli.Install(version="^2.0.0")

    code = opsdk.cli.run_install(cmd, make_settings(tmp_path), source, LINUX_AMD64)

    assert code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "No release of operator-sdk matches '^2.0.0' for linux/amd64" in captured.err


def test_run_install_raises_install_error(tmp_path: pathlib.Path) -> None:
    """An empty index propagates as InstallError."""
    cmd = opsdk.cli.Install(version="^1.0.0")
    with pytest.raises(opsdk.errors.InstallError):
        opsdk.cli.run_install(cmd, make_settings(tmp_path), FakeSource(()), LINUX_AMD64)


def test_run_releases_marks_matches(tmp_path: pathlib.Path, capsys) -> None:
    """run_releases marks satisfying releases and flags non-semver tags."""
    source = FakeSource(
        (make_release("v2.0.0"), make_release("nightly"), make_release("v1.9"))
    )
    cmd = opsdk.cli.Releases(spec="^1.0.0")

    code = opsdk.cli.run_releases(cmd, make_settings(tmp_path), source)

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "v2.0.0   2.0.0",
        "nightly  (not semver, skipped)",
        "v1.9     1.9.0  *",
    ]


def test_run_releases_limit(tmp_path: pathlib.Path, capsys) -> None:
    """run_releases shows at most limit releases."""
    source = FakeSource((make_release("v2.0.0"), make_release("v1.9.0")))
    opsdk.cli.run_releases(opsdk.cli.Releases(limit=1), make_settings(tmp_path), source)
    assert capsys.readouterr().out.splitlines() == ["v2.0.0  2.0.0"]


def test_run_releases_invalid_spec(tmp_path: pathlib.Path) -> None:
    """An invalid spec is rejected before fetching."""
    with pytest.raises(opsdk.errors.SpecError):
        opsdk.cli.run_releases(
            opsdk.cli.Releases(spec="banana"), make_settings(tmp_path), FakeSource(())
        )


def test_run_cached_lists_versions(tmp_path: pathlib.Path, capsys) -> None:
    """run_cached lists what install put in the cache."""
    settings = make_settings(tmp_path)
    source = FakeSource((make_release("v1.9.0"), make_release("v1.8.0")))
    for spec in ("1.8.0", "1.9.0"):
        opsdk.cli.run_install(opsdk.cli.Install(version=spec), settings, source, LINUX_AMD64)
    capsys.readouterr()

    code = opsdk.cli.run_cached(opsdk.cli.Cached(), settings, LINUX_AMD64)

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in lines] == ["1.9.0", "1.8.0"]


def test_run_cached_empty(tmp_path: pathlib.Path, capsys) -> None:
    """run_cached says so when nothing is cached."""
    opsdk.cli.run_cached(opsdk.cli.Cached(), make_settings(tmp_path), LINUX_AMD64)
    assert capsys.readouterr().out == "No cached versions of operator-sdk.\n"


def test_configure_logging_verbose() -> None:
    """configure_logging sets the opsdk logger level once."""
    logger = logging.getLogger("opsdk")
    old_level, old_handlers = logger.level, list(logger.handlers)
    try:
        logger.handlers.clear()
        opsdk.cli.configure_logging(verbose=True)
        opsdk.cli.configure_logging(verbose=True)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
    finally:
        logger.handlers[:] = old_handlers
        logger.setLevel(old_level)
