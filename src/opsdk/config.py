"""Settings loaded from the environment."""

import dataclasses
import os
import pathlib

import beartype

import opsdk.errors
import opsdk.github
import opsdk.matcher
import opsdk.platform
import opsdk.versions

DEFAULT_REPO = "operator-framework/operator-sdk"
DEFAULT_TOOL_NAME = "operator-sdk"
DEFAULT_SIGNATURE_EXT = ".asc"


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Settings:
    """Resolved opsdk configuration."""

    repo: str = DEFAULT_REPO
    """GitHub repo publishing the tool, in owner/repo format."""

    tool_name: str = DEFAULT_TOOL_NAME
    """Logical tool name; also the cached binary's file name."""

    asset_template: str = opsdk.matcher.DEFAULT_TEMPLATE
    """Template rendered with {platform} and {arch} to filter host assets."""

    signature_ext: str = DEFAULT_SIGNATURE_EXT
    """Extension marking detached signature assets."""

    policy: opsdk.versions.Policy = opsdk.versions.Policy.PERMISSIVE
    """Tag normalization rule set."""

    require_assets: bool = False
    """Skip satisfying releases that have no asset for the host."""

    token: str | None = None
    """GitHub token, if any."""

    cache_dpath: pathlib.Path = dataclasses.field(
        default_factory=lambda: get_cache_dpath()
    )
    """Root of the tool cache."""

    api_base: str = opsdk.github.API_BASE
    """GitHub API base URL."""

    def __post_init__(self) -> None:
        _validate_repo(self.repo)
        _validate_template(self.asset_template)
        if not self.tool_name or "/" in self.tool_name:
            raise opsdk.errors.ConfigError(
                message=f"Invalid tool name '{self.tool_name}'",
                hint="The tool name must be a non-empty file name.",
            )


@beartype.beartype
def get_cache_dpath() -> pathlib.Path:
    """Get the tool cache directory, respecting OPSDK_TOOL_CACHE and XDG_CACHE_HOME."""
    env_cache = os.environ.get("OPSDK_TOOL_CACHE")
    if env_cache:
        return pathlib.Path(env_cache)
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return pathlib.Path(xdg_cache) / "opsdk" / "tools"
    return pathlib.Path.home() / ".cache" / "opsdk" / "tools"


@beartype.beartype
def load_settings() -> Settings:
    """Build Settings from environment variables."""
    policy_name = os.environ.get("OPSDK_VERSION_POLICY", "permissive")
    try:
        policy = opsdk.versions.Policy(policy_name.lower())
    except ValueError:
        choices = ", ".join(p.value for p in opsdk.versions.Policy)
        raise opsdk.errors.ConfigError(
            message=f"Invalid OPSDK_VERSION_POLICY '{policy_name}'",
            hint=f"Choose one of: {choices}.",
        ) from None

    return Settings(
        repo=os.environ.get("OPSDK_REPO") or DEFAULT_REPO,
        tool_name=os.environ.get("OPSDK_TOOL_NAME") or DEFAULT_TOOL_NAME,
        asset_template=(
            os.environ.get("OPSDK_ASSET_TEMPLATE") or opsdk.matcher.DEFAULT_TEMPLATE
        ),
        signature_ext=os.environ.get("OPSDK_SIGNATURE_EXT") or DEFAULT_SIGNATURE_EXT,
        policy=policy,
        require_assets=os.environ.get("OPSDK_REQUIRE_ASSETS") == "1",
        token=os.environ.get("GITHUB_TOKEN") or None,
        cache_dpath=get_cache_dpath(),
        api_base=os.environ.get("OPSDK_API_BASE") or opsdk.github.API_BASE,
    )


@beartype.beartype
def _validate_repo(repo: str) -> None:
    """Validate that repo is in owner/repo format."""
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise opsdk.errors.ConfigError(
            message=f"Invalid repo '{repo}'",
            hint="Expected format 'owner/repo'.",
        )


@beartype.beartype
def _validate_template(template: str) -> None:
    """Validate the asset filter template fields."""
    try:
        fields = opsdk.platform.template_fields(template)
    except ValueError as err:
        raise opsdk.errors.ConfigError(
            message=f"Invalid asset template '{template}': {err}",
        ) from None

    unknown = fields - opsdk.platform.TEMPLATE_FIELDS
    if unknown:
        names = ", ".join(sorted(unknown))
        raise opsdk.errors.ConfigError(
            message=f"Unknown fields in asset template '{template}': {names}",
            hint="Only {platform} and {arch} are supported.",
        )
    if fields != opsdk.platform.TEMPLATE_FIELDS:
        raise opsdk.errors.ConfigError(
            message=f"Asset template '{template}' must use both {{platform}} and {{arch}}",
        )
