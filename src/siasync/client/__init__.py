"""Client module - Sia renter API access."""

from siasync.client.api import (
    APIError,
    AuthenticationError,
    DirectoryHealth,
    NotFoundError,
    RemoteDirectory,
    RemoteFile,
    RenterClient,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "DirectoryHealth",
    "NotFoundError",
    "RemoteDirectory",
    "RemoteFile",
    "RenterClient",
]
