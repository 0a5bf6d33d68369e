"""
Drive access layer.

Provides:
- Item models and wire validation (models.py)
- Filename normalization (naming.py)
- HTTP transport and static bearer credential (transport.py)
- Rate-limited, retrying client (client.py)
"""

from .client import RemoteClient, drive_link
from .errors import (
    ListingError,
    MalformedResponseError,
    RemoteError,
    RemotePermissionError,
    TransientError,
)
from .models import ItemKind, RemoteItem
from .naming import real_filename
from .transport import DriveHttpTransport, DriveTransport, StaticTokenAuthenticator

__all__ = [
    "RemoteClient",
    "drive_link",
    "ListingError",
    "MalformedResponseError",
    "RemoteError",
    "RemotePermissionError",
    "TransientError",
    "ItemKind",
    "RemoteItem",
    "real_filename",
    "DriveHttpTransport",
    "DriveTransport",
    "StaticTokenAuthenticator",
]
