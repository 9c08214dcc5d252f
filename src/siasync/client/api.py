"""HTTP client for the Sia renter API.

This module provides:
- RenterClient: HTTP client for the subset of siad used by the sync engine
- RemoteFile, RemoteDirectory, DirectoryHealth: Parsed API responses
- APIError and subclasses: Remote failures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from siasync.core.config import SyncConfig
from siasync.core.paths import is_under

logger = logging.getLogger(__name__)

# siad reports unknown files with this message rather than a 404
NO_FILE_KNOWN = "no file known"


class APIError(Exception):
    """Base exception for remote store errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """API password rejected."""


class NotFoundError(APIError):
    """Resource not found."""


@dataclass
class RemoteFile:
    """File known to the renter."""

    path: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFile:
        """Create from API response dictionary."""
        return cls(path=data["siapath"], size=int(data.get("filesize", 0)))


@dataclass
class RemoteDirectory:
    """Directory entry with its health."""

    path: str
    aggregate_min_redundancy: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteDirectory:
        """Create from API response dictionary."""
        return cls(
            path=data["siapath"],
            aggregate_min_redundancy=float(data.get("aggregateminredundancy", 0.0)),
        )


@dataclass
class DirectoryHealth:
    """Result of a directory query.

    directories[0] is always the queried directory itself, the rest are
    its immediate children.
    """

    directories: list[RemoteDirectory]
    files: list[RemoteFile]

    @property
    def children(self) -> list[RemoteDirectory]:
        """Immediate subdirectories, excluding the queried directory."""
        return self.directories[1:]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryHealth:
        """Create from API response dictionary."""
        return cls(
            directories=[
                RemoteDirectory.from_dict(d) for d in data.get("directories") or []
            ],
            files=[RemoteFile.from_dict(f) for f in data.get("files") or []],
        )


def _siapath(path: str) -> str:
    """Escape a siapath for use in a URL path."""
    return quote(path.strip("/"), safe="/")


class RenterClient:
    """HTTP client for the Sia renter API."""

    def __init__(
        self,
        api_url: str,
        password: str = "",
        user_agent: str = "Sia-Agent",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the renter client.

        Args:
            api_url: Base URL of siad (e.g. "http://127.0.0.1:9980").
            password: API password, sent with an empty user name.
            user_agent: User agent siad expects.
            timeout: Request timeout in seconds.
        """
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._client = httpx.Client(
            base_url=self._api_url,
            timeout=timeout,
            auth=httpx.BasicAuth("", password),
            headers={"User-Agent": user_agent},
        )

    @classmethod
    def from_config(cls, config: SyncConfig) -> RenterClient:
        """Create a client from a SyncConfig."""
        return cls(
            config.api_url,
            password=config.api_password,
            user_agent=config.user_agent,
            timeout=config.timeout,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RenterClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request and translate failures into APIError."""
        try:
            response = self._client.request(method, url, params=params)
        except httpx.RequestError as e:
            raise APIError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code < 400:
            return response

        try:
            message = response.json().get("message", response.reason_phrase)
        except ValueError:
            message = response.text or response.reason_phrase

        if response.status_code == 401:
            raise AuthenticationError(message or "Invalid API password", 401)
        if response.status_code == 404:
            raise NotFoundError(message or "Resource not found", 404)
        raise APIError(message, response.status_code)

    # === Daemon ===

    def health_check(self) -> bool:
        """Check that siad answers.

        Returns:
            True if the daemon is reachable and accepts our credentials.
        """
        try:
            response = self._client.get("/daemon/version")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Files ===

    def upload_file(
        self,
        local_path: str,
        remote_path: str,
        data_pieces: int,
        parity_pieces: int,
    ) -> None:
        """Upload a local file.

        Args:
            local_path: Absolute path of the file on the siad host.
            remote_path: Destination siapath.
            data_pieces: Erasure coding data pieces.
            parity_pieces: Erasure coding parity pieces.
        """
        self._request(
            "POST",
            f"/renter/upload/{_siapath(remote_path)}",
            params={
                "source": local_path,
                "datapieces": data_pieces,
                "paritypieces": parity_pieces,
            },
        )

    def delete_file(self, remote_path: str) -> None:
        """Delete a file from the renter."""
        self._request("POST", f"/renter/delete/{_siapath(remote_path)}")

    def list_files(self, prefixes: list[str] | None = None) -> list[RemoteFile]:
        """List renter files.

        Args:
            prefixes: Only return files strictly beneath one of these
                directories. All files when None.

        Returns:
            List of remote files.
        """
        response = self._request("GET", "/renter/files")
        files = [RemoteFile.from_dict(f) for f in response.json().get("files") or []]
        if prefixes is None:
            return files
        return [f for f in files if any(is_under(f.path, p) for p in prefixes)]

    def file_exists(self, remote_path: str) -> bool:
        """Check whether the renter knows a file.

        Raises:
            APIError: If the lookup itself failed.
        """
        try:
            self._request("GET", f"/renter/file/{_siapath(remote_path)}")
        except NotFoundError:
            return False
        except APIError as e:
            if NO_FILE_KNOWN in str(e):
                return False
            raise
        return True

    # === Directories ===

    def get_directory(self, remote_path: str) -> DirectoryHealth:
        """Get a directory and the health of its immediate children."""
        response = self._request("GET", f"/renter/dir/{_siapath(remote_path)}")
        return DirectoryHealth.from_dict(response.json())

    def rename_path(self, old_path: str, new_path: str, is_dir: bool = False) -> None:
        """Rename a file or directory.

        Args:
            old_path: Current siapath.
            new_path: New siapath.
            is_dir: Rename a directory instead of a single file.
        """
        if is_dir:
            self._request(
                "POST",
                f"/renter/dir/{_siapath(old_path)}",
                params={"action": "rename", "newsiapath": new_path.strip("/")},
            )
        else:
            self._request(
                "POST",
                f"/renter/rename/{_siapath(old_path)}",
                params={"newsiapath": new_path.strip("/")},
            )
