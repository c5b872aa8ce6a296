from __future__ import annotations

from .client import InternetArchiveClient

__all__ = ["InternetArchiveClient"]
