"""User-facing errors with actionable context.

Errors are messages for humans. Each error should answer:
1. What went wrong?
2. What was the context?
3. What can the user do about it?

Only `InvalidVersionError` is recovered from internally (the candidate release
is skipped). Everything else propagates, and `Installer.install` wraps it once
in an `InstallError` that names the requested version spec.
"""

import dataclasses
import pathlib

import beartype


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class OpsdkError(Exception):
    """Base error with structured context for user-facing messages."""

    message: str
    """What went wrong."""

    hint: str | None = None
    """What the user can do about it."""

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class InvalidVersionError(OpsdkError):
    """A release tag cannot be coerced into a semantic version."""

    raw_tag: str = dataclasses.field(kw_only=True)
    """Tag as published upstream."""

    @staticmethod
    def make(raw_tag: str, normalized: str) -> "InvalidVersionError":
        """Create an InvalidVersionError with default message."""
        return InvalidVersionError(
            message=f"Tag '{raw_tag}' is not a valid semantic version ({normalized!r})",
            raw_tag=raw_tag,
        )


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class SpecError(OpsdkError):
    """Version specification cannot be parsed."""

    version_spec: str = dataclasses.field(kw_only=True)

    @staticmethod
    def make(version_spec: str) -> "SpecError":
        """Create a SpecError with default message and hint."""
        return SpecError(
            message=f"Invalid version spec '{version_spec}'",
            hint="Use an exact version (1.9.0) or a range (^1.8.0, ~1.9, >=1.0.0 <2.0.0).",
            version_spec=version_spec,
        )


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class FetchError(OpsdkError):
    """Release index or asset could not be fetched or parsed."""

    url: str | None = dataclasses.field(default=None, kw_only=True)
    """URL that failed, if known."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class AuthError(OpsdkError):
    """GitHub authentication failed."""

    message: str = ""
    hint: str | None = None

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", "GitHub authentication failed.")
        if not self.hint:
            object.__setattr__(
                self,
                "hint",
                "Check your GITHUB_TOKEN. If invalid or expired, create a new one.",
            )


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class PlatformError(OpsdkError):
    """Unsupported platform or architecture."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class ConfigError(OpsdkError):
    """Configuration is missing or invalid."""

    path: pathlib.Path | None = None
    """Related path, if any."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class LockError(OpsdkError):
    """Another opsdk process is writing the tool cache."""

    lock_fpath: pathlib.Path = dataclasses.field(kw_only=True)
    """Path to the lock file."""

    @staticmethod
    def make(lock_fpath: pathlib.Path) -> "LockError":
        """Create a LockError with default message and hint."""
        return LockError(
            message=f"Another opsdk process is writing the cache (lock: {lock_fpath})",
            hint=f"Wait for it to finish, or delete {lock_fpath} if stale.",
            lock_fpath=lock_fpath,
        )


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class InstallError(OpsdkError):
    """Installing the requested version failed."""

    version_spec: str = dataclasses.field(kw_only=True)
    """Version spec the caller asked for."""

    cause: Exception | None = dataclasses.field(default=None, kw_only=True)
    """Underlying error."""

    @staticmethod
    def make(version_spec: str, cause: Exception) -> "InstallError":
        """Create an InstallError wrapping cause."""
        hint = None
        if isinstance(cause, OpsdkError):
            hint = cause.hint
            detail = cause.message
        else:
            detail = f"{type(cause).__name__}: {cause}"
        return InstallError(
            message=f"Failed to download version {version_spec}: {detail}",
            hint=hint,
            version_spec=version_spec,
            cause=cause,
        )
