from __future__ import annotations

from .cinemeta import CinemetaClient

__all__ = ["CinemetaClient"]
