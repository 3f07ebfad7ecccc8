"""Versioned tool cache.

Layout:

    <root>/<tool>/<version>/<arch>/<file>
    <root>/<tool>/<version>/<arch>.complete

The marker is written last, so an entry without it is an interrupted write
and is never returned. Entries are append-only: a complete entry is never
overwritten or removed.
"""

import collections.abc
import contextlib
import hashlib
import logging
import os
import pathlib
import shutil

import beartype
import filelock
import semantic_version

import opsdk.errors

logger = logging.getLogger(__name__)


@beartype.beartype
def compute_sha256(fpath: pathlib.Path) -> str:
    """Compute SHA-256 checksum of a file."""
    hasher = hashlib.sha256()
    with fpath.open("rb") as fd:
        while True:
            chunk = fd.read(1024 * 1024)
            if not chunk:
                break
            hasher.update(chunk)
    return f"sha256:{hasher.hexdigest()}"


class ToolCache:
    """On-disk cache of downloaded tool binaries keyed by tool, version and arch."""

    def __init__(self, root_dpath: pathlib.Path, lock_timeout: float = 60.0) -> None:
        self._root_dpath = root_dpath
        self._lock_timeout = lock_timeout

    @property
    def root_dpath(self) -> pathlib.Path:
        return self._root_dpath

    @beartype.beartype
    def find(
        self, tool: str, version: str, arch: str, dest_name: str
    ) -> pathlib.Path | None:
        """Return the cached file if a complete entry exists."""
        entry_dpath = self._entry_dpath(tool, version, arch)
        if not _marker_fpath(entry_dpath).exists():
            return None
        cached_fpath = entry_dpath / dest_name
        if not cached_fpath.is_file():
            return None
        return cached_fpath

    @beartype.beartype
    def cache_file(
        self,
        source_fpath: pathlib.Path,
        dest_name: str,
        tool: str,
        version: str,
        arch: str,
    ) -> pathlib.Path:
        """Copy source_fpath into the cache and return the cached path."""
        with self._acquire_lock(tool):
            existing = self.find(tool, version, arch, dest_name)
            if existing is not None:
                logger.info("%s %s already cached at %s", tool, version, existing)
                return existing

            entry_dpath = self._entry_dpath(tool, version, arch)
            dest_fpath = entry_dpath / dest_name
            _copy_binary(source_fpath, dest_fpath)
            _marker_fpath(entry_dpath).touch()
            logger.info("Cached %s %s at %s", tool, version, dest_fpath)
            return dest_fpath

    @beartype.beartype
    def list_versions(self, tool: str, arch: str) -> tuple[str, ...]:
        """List completely cached versions of tool for arch, newest first."""
        tool_dpath = self._root_dpath / tool
        if not tool_dpath.is_dir():
            return ()

        versions = []
        for version_dpath in tool_dpath.iterdir():
            if not _marker_fpath(version_dpath / arch).exists():
                continue
            try:
                versions.append(semantic_version.Version(version_dpath.name))
            except ValueError:
                continue
        return tuple(str(version) for version in sorted(versions, reverse=True))

    @beartype.beartype
    def _entry_dpath(self, tool: str, version: str, arch: str) -> pathlib.Path:
        return self._root_dpath / tool / version / arch

    @contextlib.contextmanager
    def _acquire_lock(self, tool: str) -> collections.abc.Iterator[None]:
        """Serialize writers of one tool's cache entries."""
        lock_fpath = self._root_dpath / f"{tool}.lock"
        lock_fpath.parent.mkdir(parents=True, exist_ok=True)

        lock = filelock.FileLock(lock_fpath)
        try:
            lock.acquire(timeout=self._lock_timeout)
        except filelock.Timeout:
            raise opsdk.errors.LockError.make(lock_fpath) from None

        try:
            yield
        finally:
            lock.release()


@beartype.beartype
def _marker_fpath(entry_dpath: pathlib.Path) -> pathlib.Path:
    return entry_dpath.with_name(entry_dpath.name + ".complete")


@beartype.beartype
def _copy_binary(source_fpath: pathlib.Path, dest_fpath: pathlib.Path) -> None:
    """Copy binary to destination using atomic rename, verifying the checksum."""
    dest_fpath.parent.mkdir(parents=True, exist_ok=True)
    tmp_fpath = dest_fpath.with_name(dest_fpath.name + ".tmp")

    shutil.copy(source_fpath, tmp_fpath)
    source_checksum = compute_sha256(source_fpath)
    tmp_checksum = compute_sha256(tmp_fpath)
    if source_checksum != tmp_checksum:
        tmp_fpath.unlink()
        raise opsdk.errors.OpsdkError(
            message=f"Checksum mismatch copying {source_fpath} to {dest_fpath}",
        )

    os.chmod(tmp_fpath, 0o755)
    os.replace(tmp_fpath, dest_fpath)
