"""
Remote catalog access for discshelf.

RemoteCatalog is the fetch capability the synchronizer depends on. It has
four calls: one for the profile, one to enumerate collection
folders, and paginated calls for folder contents and the wantlist. Tests
substitute a scripted implementation; DiscogsClient is the real one.

Error Mapping (DiscogsClient):
    Connection error, timeout   -> RemoteUnavailable(is_transient=True)
    HTTP 429, 5xx               -> RemoteUnavailable(is_transient=True)
    HTTP 401, 403               -> RemoteUnavailable(is_auth_error=True)
    Other HTTP 4xx              -> RemoteUnavailable
    Invalid JSON / fields       -> RemoteDataError

DiscogsClient never retries on its own; retry policy belongs to the
synchronizer, which knows which failures may be retried.

Usage:
    client = DiscogsClient(config.discogs)
    profile = client.fetch_profile()
    for name in client.fetch_folders():
        releases, has_more = client.fetch_collection_page(name, 1)
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import requests

from discshelf.catalog.models import Profile, Release
from discshelf.core.config import DiscogsConfig
from discshelf.core.exceptions import RemoteDataError, RemoteUnavailable
from discshelf.core.logger import get_logger


logger = get_logger(__name__)


API_BASE_URL = "https://api.discogs.com"

# Discogs' virtual folder aggregating every other folder
ALL_FOLDER_ID = 0

# Pause when the per-minute request budget is nearly spent
RATE_LIMIT_THRESHOLD = 1
RATE_LIMIT_PAUSE = 2.0


class RemoteCatalog(ABC):
    """
    Fetch capability over a remote record catalog.

    Pages are 1-based. Each page call returns (releases, has_more), where
    has_more tells whether a following page exists.
    """

    @abstractmethod
    def fetch_profile(self) -> Profile:
        ...

    @abstractmethod
    def fetch_folders(self) -> list[str]:
        """Names of the collection folders to mirror."""

    @abstractmethod
    def fetch_collection_page(self, folder: str, page: int) -> tuple[list[Release], bool]:
        ...

    @abstractmethod
    def fetch_wantlist_page(self, page: int) -> tuple[list[Release], bool]:
        ...


class DiscogsClient(RemoteCatalog):
    """
    RemoteCatalog backed by the Discogs REST API.

    Authenticates with a personal access token. All requests go through a
    single requests.Session with a bounded timeout.

    Args:
        config: Discogs section of the application configuration.
        session: Optional pre-built session (tests inject a mock).
        base_url: API root, overridable for tests.
        sleep: Function used for the rate-limit pause.

    Attributes:
        username: Account whose collection is fetched.
    """

    def __init__(
        self,
        config: DiscogsConfig,
        session: requests.Session | None = None,
        base_url: str = API_BASE_URL,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.username = config.username
        self._timeout = config.timeout
        self._per_page = config.per_page
        self._base_url = base_url.rstrip("/")
        self._sleep = sleep
        self._folder_ids: dict[str, int] = {}

        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Discogs token={config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        })

    def close(self) -> None:
        self._session.close()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        GET an API path and return the decoded JSON object.

        Raises:
            RemoteUnavailable: On network failure or error status.
            RemoteDataError: If the body is not a JSON object.
        """
        url = f"{self._base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RemoteUnavailable(
                f"Cannot reach Discogs: {e}",
                details={"url": url, "original_error": str(e)},
                is_transient=True
            ) from e
        except requests.RequestException as e:
            raise RemoteUnavailable(
                f"Request to Discogs failed: {e}",
                details={"url": url, "original_error": str(e)}
            ) from e

        status = response.status_code
        if status in (401, 403):
            raise RemoteUnavailable(
                "Discogs rejected the credentials; check the username and token",
                details={"url": url, "status_code": status},
                is_auth_error=True
            )
        if status == 429 or 500 <= status < 600:
            raise RemoteUnavailable(
                f"Discogs temporarily unavailable (HTTP {status})",
                details={
                    "url": url,
                    "status_code": status,
                    "retry_after": response.headers.get("Retry-After"),
                },
                is_transient=True
            )
        if status >= 400:
            raise RemoteUnavailable(
                f"Discogs API error (HTTP {status}): {response.text[:200]}",
                details={"url": url, "status_code": status}
            )

        self._respect_rate_limit(response)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteDataError(
                f"Invalid JSON from {url}",
                details={"url": url, "original_error": str(e)}
            ) from e
        if not isinstance(data, dict):
            raise RemoteDataError(
                f"Unexpected response shape from {url}",
                details={"url": url}
            )
        return data

    def _respect_rate_limit(self, response: requests.Response) -> None:
        remaining = response.headers.get("X-Discogs-Ratelimit-Remaining")
        if remaining is None:
            return
        try:
            if int(remaining) <= RATE_LIMIT_THRESHOLD:
                logger.debug(f"Discogs rate limit nearly exhausted, pausing {RATE_LIMIT_PAUSE}s")
                self._sleep(RATE_LIMIT_PAUSE)
        except ValueError:
            logger.debug(f"Ignoring malformed rate limit header: {remaining!r}")

    def _fetch_page(self, path: str, key: str, page: int) -> tuple[list[Release], bool]:
        data = self._get(path, params={"page": page, "per_page": self._per_page})
        try:
            items = data[key]
            pages = int(data["pagination"]["pages"])
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDataError(
                f"Malformed page {page} of {path}",
                details={"path": path, "page": page, "original_error": str(e)}
            ) from e
        if not isinstance(items, list):
            raise RemoteDataError(
                f"Malformed page {page} of {path}: '{key}' is not a list",
                details={"path": path, "page": page}
            )
        releases = [Release.from_discogs_api(item) for item in items]
        return releases, page < pages

    def fetch_profile(self) -> Profile:
        return Profile.from_discogs_api(self._get(f"/users/{self.username}"))

    def fetch_folders(self) -> list[str]:
        """
        List collection folders, skipping the virtual "All" folder.

        Also remembers each folder's id for fetch_collection_page().
        """
        data = self._get(f"/users/{self.username}/collection/folders")
        try:
            folder_ids = {
                folder["name"]: int(folder["id"])
                for folder in data["folders"]
                if int(folder["id"]) != ALL_FOLDER_ID
            }
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDataError(
                "Malformed folder list",
                details={"original_error": str(e)}
            ) from e
        self._folder_ids = folder_ids
        return list(folder_ids)

    def fetch_collection_page(self, folder: str, page: int) -> tuple[list[Release], bool]:
        if folder not in self._folder_ids:
            self.fetch_folders()
        try:
            folder_id = self._folder_ids[folder]
        except KeyError:
            raise RemoteUnavailable(
                f"Collection folder not found on Discogs: {folder}",
                details={"folder": folder}
            ) from None
        path = f"/users/{self.username}/collection/folders/{folder_id}/releases"
        return self._fetch_page(path, "releases", page)

    def fetch_wantlist_page(self, page: int) -> tuple[list[Release], bool]:
        return self._fetch_page(f"/users/{self.username}/wants", "wants", page)
