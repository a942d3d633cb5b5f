# storage/prefix.py
from typing import Optional


def normalize_path(path: str) -> str:
    """Strips surrounding slashes so 'a/b', '/a/b' and 'a/b/' name the same object."""
    return path.strip("/")


class PathPrefixer:
    """
    Scopes object keys to a sub-tree of a bucket.
    `strip_prefix(apply_prefix(p)) == p` holds for every normalized path.
    """

    def __init__(self, prefix: Optional[str] = None):
        prefix = normalize_path(prefix or "")
        self.prefix = f"{prefix}/" if prefix else ""

    def apply_prefix(self, path: str) -> str:
        return self.prefix + normalize_path(path)

    def strip_prefix(self, key: str) -> str:
        if self.prefix and key.startswith(self.prefix):
            key = key[len(self.prefix):]
        return key.rstrip("/")

    def directory_key(self, path: str) -> str:
        """Key under which a directory's children (and its marker object) live."""
        key = self.apply_prefix(path)
        if key and not key.endswith("/"):
            key += "/"
        return key
