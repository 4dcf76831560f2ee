"""
SourceFile - An in-memory file submitted for upload.
"""

import os
from dataclasses import dataclass
from mimetypes import guess_type


@dataclass(frozen=True)
class SourceFile:
    """
    An immutable file payload.

    Used both for the original user-selected file and for derived
    artifacts (compressed image, thumbnail).

    Attributes:
        name: Base filename (e.g., 'IMG_0042.jpg')
        data: File contents
        content_type: MIME type, empty if unknown
    """
    name: str
    data: bytes
    content_type: str = ''

    def __repr__(self) -> str:
        return f"SourceFile(name={self.name!r}, size={self.size}, content_type={self.content_type!r})"

    @property
    def size(self) -> int:
        """Size in bytes."""
        return len(self.data)

    @property
    def extension(self) -> str:
        """Lower-cased extension including the dot, e.g. '.jpg'."""
        return os.path.splitext(self.name)[1].lower()

    @property
    def stem(self) -> str:
        return os.path.splitext(self.name)[0]

    @classmethod
    def from_path(cls, path: str) -> 'SourceFile':
        """Read a file from disk, guessing its MIME type from the name."""
        with open(path, 'rb') as f:
            data = f.read()
        content_type, _ = guess_type(path)
        return cls(
            name=os.path.basename(path),
            data=data,
            content_type=content_type or '',
        )
