"""GitHub API client for the release index and asset downloads."""

import dataclasses
import json
import logging
import pathlib
import time
import typing as tp

import beartype
import requests

import opsdk.errors

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class ReleaseAsset:
    """Release asset metadata."""

    name: str
    url: str
    """browser_download_url of the asset."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Release:
    """GitHub release metadata."""

    tag: str
    assets: tuple[ReleaseAsset, ...]


@tp.runtime_checkable
class ReleaseSource(tp.Protocol):
    """Anything that can list releases and download assets."""

    def list_releases(self, repo: str) -> tuple[Release, ...]: ...

    def download_asset(self, url: str, dest_fpath: pathlib.Path) -> None: ...


class GitHubClient:
    """GitHub API client with basic retries.

    The HTTP session is injected so tests can substitute a fake transport.
    """

    def __init__(
        self,
        token: str | None,
        session: requests.Session | None = None,
        api_base: str = API_BASE,
        max_pages: int = 10,
    ) -> None:
        self._token = token
        self._session = session if session is not None else requests.Session()
        self._api_base = api_base.rstrip("/")
        self._max_pages = max_pages

    @beartype.beartype
    def list_releases(self, repo: str) -> tuple[Release, ...]:
        """Fetch all releases of repo, newest first as published."""
        owner, name = _split_repo(repo)
        url: str | None = f"{self._api_base}/repos/{owner}/{name}/releases"
        params: dict[str, str] | None = {"per_page": "100"}

        releases: list[Release] = []
        pages = 0
        while url is not None and pages < self._max_pages:
            logger.debug("Fetching release index page %s", url)
            response = self._request_raw(
                url, headers=self._json_headers(), params=params, stream=False
            )
            data = _decode_json(response, url)
            if not isinstance(data, list):
                raise opsdk.errors.FetchError(
                    message=f"Unexpected response from GitHub for {repo} releases",
                    hint="Expected a JSON array of releases.",
                    url=url,
                )
            for item in data:
                if not isinstance(item, dict):
                    raise opsdk.errors.FetchError(
                        message=f"Unexpected release entry for {repo}: {item!r}",
                        url=url,
                    )
                releases.append(_parse_release(tp.cast(dict[str, object], item), url))

            pages += 1
            # "next" already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None

        return tuple(releases)

    @beartype.beartype
    def download_asset(self, url: str, dest_fpath: pathlib.Path) -> None:
        """Download a release asset to dest_fpath."""
        headers = {"Accept": "application/octet-stream"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        response = self._request_raw(url, headers=headers, stream=True)
        dest_fpath.parent.mkdir(parents=True, exist_ok=True)
        try:
            with dest_fpath.open("wb") as fd:
                for chunk in response.iter_content(chunk_size=1024 * 1024):
                    if not chunk:
                        continue
                    fd.write(chunk)
        except requests.RequestException as err:
            raise opsdk.errors.FetchError(
                message=f"Download interrupted for {url}: {err}",
                url=url,
            ) from err

    @beartype.beartype
    def _json_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @beartype.beartype
    def _request_raw(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        stream: bool,
    ) -> requests.Response:
        """Perform a request with retries and handle GitHub errors."""
        last_err: Exception | None = None
        for attempt in range(3):
            try:
                response = self._session.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=30,
                    stream=stream,
                )
            except requests.RequestException as err:
                last_err = err
                if attempt < 2:
                    logger.debug("Request to %s failed (%s), retrying", url, err)
                    time.sleep(2**attempt)
                    continue
                break

            if response.status_code == 404:
                raise opsdk.errors.FetchError(
                    message=f"Resource not found: {url}",
                    url=url,
                )

            if response.status_code in {401, 403}:
                if self._token:
                    raise opsdk.errors.AuthError()
                raise opsdk.errors.FetchError(
                    message="GitHub API rate limit exceeded.",
                    hint="Set GITHUB_TOKEN to increase the limit.",
                    url=url,
                )

            if response.status_code >= 400:
                raise opsdk.errors.FetchError(
                    message=f"GitHub API error ({response.status_code}) for {url}",
                    url=url,
                )

            return response

        assert last_err is not None
        raise opsdk.errors.FetchError(
            message=f"Network error contacting GitHub: {last_err}",
            url=url,
        ) from last_err


@beartype.beartype
def _decode_json(response: requests.Response, url: str) -> object:
    """Decode a JSON body or raise FetchError."""
    try:
        return response.json()
    except (json.JSONDecodeError, requests.JSONDecodeError) as err:
        raise opsdk.errors.FetchError(
            message=f"Invalid JSON response from GitHub: {err}",
            url=url,
        ) from None


@beartype.beartype
def _parse_release(data: dict[str, object], url: str) -> Release:
    """Parse release JSON into a Release object."""
    tag = data.get("tag_name")
    if not isinstance(tag, str) or not tag:
        raise opsdk.errors.FetchError(
            message="Release JSON missing tag_name",
            url=url,
        )

    assets_data = data.get("assets")
    if not isinstance(assets_data, list):
        raise opsdk.errors.FetchError(
            message=f"Release JSON missing assets for {tag}",
            url=url,
        )

    assets = []
    for asset in assets_data:
        if not isinstance(asset, dict):
            continue
        asset_data = tp.cast(dict[str, object], asset)
        name = asset_data.get("name")
        download_url = asset_data.get("browser_download_url")
        if not isinstance(name, str) or not isinstance(download_url, str):
            continue
        assets.append(ReleaseAsset(name=name, url=download_url))

    return Release(tag=tag, assets=tuple(assets))


@beartype.beartype
def _split_repo(repo: str) -> tuple[str, str]:
    """Split owner/repo string."""
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise opsdk.errors.ConfigError(
            message=f"Invalid repo '{repo}'",
            hint="Expected format 'owner/repo'.",
        )
    return owner, name
