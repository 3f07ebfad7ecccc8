"""Upstream tag normalization into strict semantic versions.

Upstream tags do not reliably follow semver:

    1.13.1    => 1.13.1
    1.13      => 1.13.0
    v1.0.0    => 1.0.0

The older rule set (`Policy.PRERELEASE`) also rewrites informal pre-release
markers:

    1.10beta1 => 1.10.0-beta1
    1.8.5rc1  => 1.8.5-rc1
"""

import enum
import re

import beartype
import semantic_version

import opsdk.errors

_PRERELEASE_MARKER_RE = re.compile(r"(?<![-.])(beta|rc)")
_SUFFIX_RE = re.compile(r"[-+]")


class Policy(enum.Enum):
    """Normalization rule set."""

    PERMISSIVE = "permissive"
    """Strip the v prefix and pad MAJOR.MINOR to MAJOR.MINOR.0."""

    PRERELEASE = "prerelease"
    """PERMISSIVE plus beta/rc marker rewriting."""


@beartype.beartype
def normalize(raw_tag: str, policy: Policy = Policy.PERMISSIVE) -> str:
    """Convert an upstream tag into a strict semantic version string."""
    return str(parse(raw_tag, policy))


@beartype.beartype
def parse(raw_tag: str, policy: Policy = Policy.PERMISSIVE) -> semantic_version.Version:
    """Normalize raw_tag and parse it as a semantic_version.Version."""
    candidate = _clean(raw_tag)
    if policy is Policy.PRERELEASE:
        candidate = _PRERELEASE_MARKER_RE.sub(r"-\1", candidate)
    candidate = _pad_minor(candidate)

    try:
        return semantic_version.Version(candidate)
    except ValueError:
        raise opsdk.errors.InvalidVersionError.make(raw_tag, candidate) from None


@beartype.beartype
def _clean(raw_tag: str) -> str:
    """Strip whitespace and a leading '=' or 'v', as node-semver's clean does."""
    version = raw_tag.strip()
    version = version.lstrip("=")
    if version[:1] in {"v", "V"}:
        version = version[1:]
    return version


@beartype.beartype
def _pad_minor(version: str) -> str:
    """Append '.0' when the numeric core is MAJOR.MINOR."""
    match = _SUFFIX_RE.search(version)
    if match is None:
        core, suffix = version, ""
    else:
        core, suffix = version[: match.start()], version[match.start() :]

    if len(core.split(".")) == 2:
        core += ".0"
    return core + suffix
