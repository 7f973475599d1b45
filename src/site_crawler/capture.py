from __future__ import annotations

import hashlib
import zlib


class CapturedFile:
    """Body of one internal page or asset, held compressed.

    The body is compressed once, on construction. ``content()`` inflates a
    fresh copy on every call and never touches the stored bytes.
    """

    __slots__ = ("abs_path", "content_type", "_compressed")

    def __init__(self, abs_path: str, content_type: str, content: bytes) -> None:
        self.abs_path = abs_path
        self.content_type = content_type
        self._compressed = zlib.compress(content)

    @property
    def compressed(self) -> bytes:
        return self._compressed

    def content(self) -> bytes:
        return zlib.decompress(self._compressed)

    def text(self, encoding: str = "utf-8") -> str:
        return self.content().decode(encoding, errors="replace")

    def sha256(self) -> str:
        return hashlib.sha256(self.content()).hexdigest()

    def __repr__(self) -> str:
        return (
            f"CapturedFile(abs_path={self.abs_path!r}, "
            f"content_type={self.content_type!r}, "
            f"compressed_size={len(self._compressed)})"
        )
