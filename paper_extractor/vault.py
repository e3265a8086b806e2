"""Local vault: a directory of Markdown notes addressed by vault-relative paths."""

import posixpath
import re
from pathlib import Path


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path to forward slashes without outer slashes."""
    path = path.replace("\\", "/")
    path = re.sub(r"/+", "/", path)
    return path.strip("/")


def join_path(*parts: str) -> str:
    """Join vault-relative parts, ignoring empty ones."""
    return normalize_path("/".join(p for p in parts if p))


class Vault:
    """Hierarchical file store rooted at a directory on disk."""

    normalize_path = staticmethod(normalize_path)

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser().resolve()

    def full_path(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def exists(self, path: str) -> bool:
        return self.full_path(path).exists()

    def is_file(self, path: str) -> bool:
        return self.full_path(path).is_file()

    def is_folder(self, path: str) -> bool:
        return self.full_path(path).is_dir()

    def read_text(self, path: str) -> str:
        return self.full_path(path).read_text(encoding="utf-8")

    def write_text(self, path: str, text: str) -> None:
        target = self.full_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

    def write_bytes(self, path: str, data: bytes) -> None:
        target = self.full_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def create_folder(self, path: str) -> None:
        self.full_path(path).mkdir(parents=True, exist_ok=True)

    def rename(self, old_path: str, new_path: str) -> None:
        """Rename a file inside the vault.

        Raises:
            FileExistsError: If something already exists at new_path
        """
        target = self.full_path(new_path)
        if target.exists():
            raise FileExistsError(f"Target already exists: {normalize_path(new_path)}")
        self.full_path(old_path).rename(target)

    @staticmethod
    def parent(path: str) -> str:
        return posixpath.dirname(normalize_path(path))

    @staticmethod
    def basename(path: str) -> str:
        """File name without its extension."""
        name = posixpath.basename(normalize_path(path))
        stem, _ = posixpath.splitext(name)
        return stem
