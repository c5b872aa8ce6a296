from __future__ import annotations

from .stremio_stream import StremioStreamUseCase, parse_stream_id

__all__ = ["StremioStreamUseCase", "parse_stream_id"]
