"""CLI definition using tyro."""

import dataclasses
import logging
import sys
import typing as tp

import beartype
import tyro

import opsdk.cache
import opsdk.config
import opsdk.errors
import opsdk.github
import opsdk.install
import opsdk.matcher
import opsdk.platform
import opsdk.versions


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Install:
    """Install the newest release matching a version spec and print its path."""

    version: tp.Annotated[str, tyro.conf.Positional]
    """Exact version (1.9.0) or range (^1.8.0)."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Releases:
    """List published releases and whether they match a version spec."""

    spec: str | None = None
    """Version spec to check each release against."""

    limit: int = 20
    """Maximum number of releases to show."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Cached:
    """List cached versions for this host."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
def configure_logging(verbose: bool) -> None:
    """Send opsdk log records to stderr."""
    logger = logging.getLogger("opsdk")
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    logger.addHandler(handler)


@beartype.beartype
def run_install(
    cmd: Install,
    settings: opsdk.config.Settings,
    client: opsdk.github.ReleaseSource,
    host: opsdk.platform.HostDescriptor,
) -> int:
    """Run the install command."""
    installer = opsdk.install.Installer(
        client,
        opsdk.cache.ToolCache(settings.cache_dpath),
        settings,
        host=host,
    )
    tool_fpath = installer.install(cmd.version)
    if tool_fpath is None:
        print(
            f"No release of {settings.tool_name} matches '{cmd.version}' "
            f"for {host.platform_os}/{host.arch}",
            file=sys.stderr,
        )
        return 1
    print(tool_fpath)
    return 0


@beartype.beartype
def run_releases(
    cmd: Releases,
    settings: opsdk.config.Settings,
    client: opsdk.github.ReleaseSource,
) -> int:
    """Run the releases command."""
    spec = opsdk.matcher.parse_spec(cmd.spec) if cmd.spec else None
    releases = client.list_releases(settings.repo)
    if not releases:
        print("No releases found.")
        return 0

    shown = releases[: max(cmd.limit, 0)]
    max_tag_len = max(len(release.tag) for release in shown) if shown else 0
    for release in shown:
        try:
            version = opsdk.versions.parse(release.tag, settings.policy)
        except opsdk.errors.InvalidVersionError:
            print(f"{release.tag:<{max_tag_len}}  (not semver, skipped)")
            continue

        marker = ""
        if spec is not None and spec.match(version):
            marker = "  *"
        print(f"{release.tag:<{max_tag_len}}  {version}{marker}")
    return 0


@beartype.beartype
def run_cached(
    cmd: Cached,
    settings: opsdk.config.Settings,
    host: opsdk.platform.HostDescriptor,
) -> int:
    """Run the cached command."""
    cache = opsdk.cache.ToolCache(settings.cache_dpath)
    versions = cache.list_versions(settings.tool_name, host.arch)
    if not versions:
        print(f"No cached versions of {settings.tool_name}.")
        return 0

    for version in versions:
        cached = cache.find(settings.tool_name, version, host.arch, settings.tool_name)
        print(f"{version}  {cached}")
    return 0


@beartype.beartype
def main() -> None:
    """Main entry point."""
    command = tyro.cli(Install | Releases | Cached)  # type: ignore[arg-type]
    configure_logging(command.verbose)

    try:
        settings = opsdk.config.load_settings()
        client = opsdk.github.GitHubClient(
            token=settings.token, api_base=settings.api_base
        )
        match command:
            case Install() as cmd:
                code = run_install(cmd, settings, client, opsdk.platform.get_host())
            case Releases() as cmd:
                code = run_releases(cmd, settings, client)
            case Cached() as cmd:
                code = run_cached(cmd, settings, opsdk.platform.get_host())
    except opsdk.errors.OpsdkError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)

    sys.exit(code)
