"""Release selection: newest release satisfying a version spec."""

import dataclasses
import logging

import beartype
import semantic_version

import opsdk.errors
import opsdk.github
import opsdk.platform
import opsdk.versions

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "{platform}_{arch}"


@beartype.beartype
def parse_spec(version_spec: str) -> semantic_version.NpmSpec:
    """Parse an exact version or npm-style range."""
    try:
        return semantic_version.NpmSpec(version_spec.strip())
    except ValueError:
        raise opsdk.errors.SpecError.make(version_spec) from None


@beartype.beartype
def filter_assets(
    assets: tuple[opsdk.github.ReleaseAsset, ...], asset_filter: str
) -> tuple[opsdk.github.ReleaseAsset, ...]:
    """Keep assets whose name contains asset_filter."""
    return tuple(asset for asset in assets if asset_filter in asset.name)


@beartype.beartype
def find_match(
    version_spec: str,
    host: opsdk.platform.HostDescriptor,
    releases: tuple[opsdk.github.Release, ...],
    *,
    template: str = DEFAULT_TEMPLATE,
    policy: opsdk.versions.Policy = opsdk.versions.Policy.PERMISSIVE,
    require_assets: bool = False,
) -> opsdk.github.Release | None:
    """Return the first release (releases are newest-first) satisfying version_spec.

    The returned release carries only the assets built for host. Unless
    require_assets is set, a satisfying release is returned even when none of
    its assets match the host.
    """
    asset_filter = host.asset_filter(template)
    logger.debug('assetFilter used - "%s"', asset_filter)

    if not releases:
        raise opsdk.errors.FetchError(
            message="Release index did not return any releases",
            hint="Check the repository name and that it publishes GitHub releases.",
        )

    spec = parse_spec(version_spec)
    for candidate in releases:
        try:
            version = opsdk.versions.parse(candidate.tag, policy)
        except opsdk.errors.InvalidVersionError as err:
            logger.warning("Skipping release %s: %s", candidate.tag, err.message)
            continue

        logger.debug("check %s satisfies %s", version, version_spec)
        if not spec.match(version):
            continue

        assets = filter_assets(candidate.assets, asset_filter)
        if require_assets and not assets:
            logger.debug("%s has no assets matching %s", version, asset_filter)
            continue

        logger.debug("matched %s", version)
        return dataclasses.replace(candidate, assets=assets)

    return None
