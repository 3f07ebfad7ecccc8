"""Install orchestration: match a release, download its binary, cache it."""

import logging
import os
import pathlib
import stat
import tempfile

import beartype

import opsdk.cache
import opsdk.config
import opsdk.errors
import opsdk.github
import opsdk.matcher
import opsdk.platform
import opsdk.versions

logger = logging.getLogger(__name__)


@beartype.beartype
def split_assets(
    assets: tuple[opsdk.github.ReleaseAsset, ...], signature_ext: str
) -> tuple[opsdk.github.ReleaseAsset | None, opsdk.github.ReleaseAsset | None]:
    """Partition assets into (binary, signature).

    Exactly one binary is expected; when several non-signature assets are
    present the last one wins.
    """
    binary = None
    signature = None
    for asset in assets:
        if asset.name.endswith(signature_ext):
            signature = asset
        else:
            binary = asset
    return binary, signature


@beartype.beartype
def make_executable(fpath: pathlib.Path) -> None:
    """Add execute permission for user, group and other."""
    mode = fpath.stat().st_mode
    os.chmod(fpath, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


class Installer:
    """Resolves a version spec to a cached, executable tool binary."""

    def __init__(
        self,
        client: opsdk.github.ReleaseSource,
        cache: opsdk.cache.ToolCache,
        settings: opsdk.config.Settings,
        host: opsdk.platform.HostDescriptor | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._settings = settings
        self._host = host

    @beartype.beartype
    def install(self, version_spec: str) -> pathlib.Path | None:
        """Install the newest release satisfying version_spec.

        Returns the cached binary path, or None when no release satisfies the
        spec or the matched release has no binary for this host. Any failure
        is raised as an InstallError naming version_spec.
        """
        try:
            return self._install(version_spec)
        except opsdk.errors.InstallError:
            raise
        except Exception as err:
            raise opsdk.errors.InstallError.make(version_spec, err) from err

    @beartype.beartype
    def _install(self, version_spec: str) -> pathlib.Path | None:
        host = self._host if self._host is not None else opsdk.platform.get_host()
        settings = self._settings

        releases = self._client.list_releases(settings.repo)
        match = opsdk.matcher.find_match(
            version_spec,
            host,
            releases,
            template=settings.asset_template,
            policy=settings.policy,
            require_assets=settings.require_assets,
        )
        if match is None:
            logger.info("No release of %s satisfies %s", settings.repo, version_spec)
            return None

        binary, signature = split_assets(match.assets, settings.signature_ext)
        if binary is None:
            logger.info(
                "Release %s has no %s binary for %s/%s",
                match.tag,
                settings.tool_name,
                host.platform_os,
                host.arch,
            )
            return None
        if signature is not None:
            logger.debug("Signature asset %s is not verified", signature.name)

        version = opsdk.versions.normalize(match.tag, settings.policy)
        cached = self._cache.find(
            settings.tool_name, version, host.arch, settings.tool_name
        )
        if cached is not None:
            logger.info("Using cached %s %s at %s", settings.tool_name, version, cached)
            return cached

        with tempfile.TemporaryDirectory(prefix="opsdk-") as temp_dpath_str:
            binary_fpath = pathlib.Path(temp_dpath_str) / binary.name
            logger.info("Downloading from %s", binary.url)
            self._client.download_asset(binary.url, binary_fpath)
            make_executable(binary_fpath)
            return self._cache.cache_file(
                binary_fpath,
                settings.tool_name,
                settings.tool_name,
                version,
                host.arch,
            )
