"""Source that walks a local directory and emits one record per matching file."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable, Iterator

from databridge.core import Action, Record, Source

DEFAULT_EXTENSIONS = frozenset(
    {
        ".go", ".py", ".md", ".mdx",
        ".ts", ".tsx", ".js", ".jsx",
        ".rs", ".java", ".cpp", ".c", ".h",
    }
)

_LANGUAGES = {
    ".go": "go",
    ".py": "python",
    ".md": "markdown",
    ".mdx": "markdown",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".rs": "rust",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".c": "c",
    ".h": "c",
    ".hpp": "c",
}


def lang_from_ext(ext: str) -> str:
    """Map a lowercase file extension (with its dot) to a language name."""
    return _LANGUAGES.get(ext, "text")


def deterministic_id(workspace_id: str, path: str) -> str:
    """A stable hex ID for a file path within a workspace."""
    return hashlib.sha256(f"{workspace_id}:{path}".encode("utf-8")).hexdigest()


def _extension(path: str) -> str:
    """The suffix from the last dot of the final path element, or empty."""
    name = os.path.basename(path)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _is_hidden_dir(name: str) -> bool:
    return name.startswith(".") and name != "."


class LocalFileSource(Source):
    """Walks a directory tree, skipping hidden directories, in lexical order."""

    def __init__(
        self,
        workspace_id: str,
        root_dir: str | os.PathLike[str],
        extensions: Iterable[str] | None = None,
    ) -> None:
        self.workspace_id = workspace_id
        self.root_dir = os.fspath(root_dir)
        self.extensions = DEFAULT_EXTENSIONS if extensions is None else frozenset(extensions)

    def open(self) -> None:
        """Check that the root directory exists and is a directory."""
        try:
            is_dir = os.path.isdir(self.root_dir) and os.stat(self.root_dir) is not None
        except OSError as exc:
            raise OSError(f"local source: stat {self.root_dir}: {exc}") from exc
        if not os.path.exists(self.root_dir):
            raise FileNotFoundError(
                f"local source: stat {self.root_dir}: no such file or directory"
            )
        if not is_dir:
            raise NotADirectoryError(f"local source: {self.root_dir} is not a directory")
        super().open()

    def records(self) -> Iterator[Record]:
        """Yield one upsert record per readable file with a wanted extension."""
        root_name = os.path.basename(os.path.normpath(self.root_dir))
        if os.path.isdir(self.root_dir) and _is_hidden_dir(root_name):
            return
        for path in self._walk(self.root_dir):
            ext = _extension(path).lower()
            if ext not in self.extensions:
                continue
            try:
                with open(path, "rb") as handle:
                    data = handle.read()
            except OSError:
                continue
            try:
                rel = os.path.relpath(path, self.root_dir)
            except ValueError:
                rel = path
            yield Record(
                id=deterministic_id(self.workspace_id, rel),
                source_id=self.workspace_id,
                path=rel,
                language=lang_from_ext(ext),
                content=data.decode("utf-8", errors="replace"),
                action=Action.UPSERT,
                metadata={},
            )

    def close(self) -> None:
        """Mark the source closed; no files are held open between records."""
        super().close()

    def _walk(self, directory: str) -> Iterator[str]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError:
            return
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if is_dir:
                if _is_hidden_dir(entry.name):
                    continue
                yield from self._walk(entry.path)
            else:
                yield entry.path