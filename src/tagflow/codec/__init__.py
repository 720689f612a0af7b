from __future__ import annotations

from .registry import Codec, CodecsRegistry, get_default_codecs

__all__ = ["Codec", "CodecsRegistry", "get_default_codecs"]
