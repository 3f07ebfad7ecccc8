"""OS/arch detection and normalization."""

import dataclasses
import platform
import string

import beartype

import opsdk.errors

_OS_TABLE = {
    "linux": "linux",
    "linux-gnu": "linux",
    "darwin": "darwin",
    "apple-darwin": "darwin",
    "macos": "darwin",
}

_ARCH_TABLE = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}

TEMPLATE_FIELDS = frozenset({"platform", "arch"})


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class HostDescriptor:
    """Normalized platform of the running host."""

    platform_os: str
    """Canonical OS token, e.g. "linux"."""

    arch: str
    """Canonical CPU architecture token, e.g. "amd64"."""

    def asset_filter(self, template: str) -> str:
        """Render the substring a host asset name must contain."""
        return template.format(platform=self.platform_os, arch=self.arch)


@beartype.beartype
def normalize_os(raw: str) -> str:
    """Map a raw OS identifier to its canonical token."""
    key = raw.strip().lower()
    if key in _OS_TABLE:
        return _OS_TABLE[key]
    raise opsdk.errors.PlatformError(
        message=f"Unsupported operating system: {raw}",
        hint="opsdk supports macOS and Linux only.",
    )


@beartype.beartype
def normalize_arch(raw: str) -> str:
    """Map a raw CPU architecture identifier to its canonical token."""
    key = raw.strip().lower()
    if key in _ARCH_TABLE:
        return _ARCH_TABLE[key]
    supported = ", ".join(sorted(set(_ARCH_TABLE.values())))
    raise opsdk.errors.PlatformError(
        message=f"Unsupported architecture: {raw}",
        hint=f"opsdk supports {supported} only.",
    )


@beartype.beartype
def get_os() -> str:
    """Get normalized OS name."""
    return normalize_os(platform.system())


@beartype.beartype
def get_arch() -> str:
    """Get normalized architecture name."""
    return normalize_arch(platform.machine())


@beartype.beartype
def get_host() -> HostDescriptor:
    """Resolve the HostDescriptor for the running process."""
    return HostDescriptor(platform_os=get_os(), arch=get_arch())


@beartype.beartype
def template_fields(template: str) -> set[str]:
    """Return the replacement field names used in an asset filter template."""
    fields = set()
    for _, field_name, _, _ in string.Formatter().parse(template):
        if field_name is not None:
            fields.add(field_name)
    return fields
