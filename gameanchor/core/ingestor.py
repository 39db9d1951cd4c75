"""Directory ingestion — turns a folder tree into an ordered FileEntry list.

Traversal is recursive and depth-first, with the entries of every directory
visited in name order. The collected list is then sorted by relative path,
so two ingestions of an unchanged tree produce the same sequence, in the
same order as a browser upload of that tree. Only regular files are
collected: symbolic links (to files or directories) and special files are
skipped and logged at DEBUG.

Contents are fully buffered in memory. Reads are independent, so they run
on a small thread pool; the path sort fixes the output order.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePosixPath

from gameanchor.core.errors import (
    EmptyDirectory,
    FolderNotFound,
    NotADirectory,
    UnreadableFile,
    UnsafePath,
)
from gameanchor.models.files import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_NAME = "upload"


def resolve_folder(root_path: str | Path) -> Path:
    """Resolve *root_path* to an absolute, existing directory."""
    absolute = Path(root_path).expanduser().resolve()
    if not absolute.exists():
        raise FolderNotFound(f"Folder not found: {absolute}")
    if not absolute.is_dir():
        raise NotADirectory(f"Not a directory: {absolute}")
    return absolute


def _walk(directory: Path, root: Path, out: list[tuple[str, Path]]) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        relative = directory.relative_to(root).as_posix()
        raise UnreadableFile(f"Cannot list {relative}", details=str(exc)) from exc
    for entry in entries:
        if entry.is_symlink():
            logger.debug("Skipping symlink %s", entry.path)
            continue
        if entry.is_dir(follow_symlinks=False):
            _walk(Path(entry.path), root, out)
        elif stat.S_ISREG(entry.stat(follow_symlinks=False).st_mode):
            absolute = Path(entry.path)
            out.append((absolute.relative_to(root).as_posix(), absolute))
        else:
            logger.debug("Skipping special file %s", entry.path)


def _read_entry(item: tuple[str, Path]) -> FileEntry:
    relative_path, absolute = item
    try:
        content = absolute.read_bytes()
    except OSError as exc:
        raise UnreadableFile(
            f"Cannot read {relative_path}", details=str(exc)
        ) from exc
    return FileEntry(relative_path=relative_path, content=content, size=len(content))


def ingest_directory(root_path: str | Path, *, max_workers: int = 8) -> list[FileEntry]:
    """Read every regular file under *root_path*.

    Raises
    ------
    FolderNotFound
        The path does not exist.
    NotADirectory
        The path is not a directory.
    EmptyDirectory
        No regular files were found anywhere in the tree.
    UnreadableFile
        A file or subdirectory could not be read.
    """
    root = resolve_folder(root_path)

    found: list[tuple[str, Path]] = []
    _walk(root, root, found)
    if not found:
        raise EmptyDirectory(f"Directory is empty: {root}")
    found.sort(key=lambda item: item[0])

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        entries = list(pool.map(_read_entry, found))

    logger.info(
        "Ingested %d files (%d bytes) from %s",
        len(entries), sum(e.size for e in entries), root,
    )
    return entries


# ---------------------------------------------------------------------------
# Browser folder uploads
# ---------------------------------------------------------------------------


def normalize_upload_path(filename: str) -> str:
    """Normalize a client-supplied relative path to POSIX form.

    Backslashes become slashes; empty and ``.`` segments are dropped.
    Any ``..`` segment is rejected.
    """
    parts = [p for p in filename.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts:
        raise UnsafePath(f"Empty upload filename: {filename!r}")
    if ".." in parts:
        raise UnsafePath(f"Upload filename escapes the upload root: {filename!r}")
    return str(PurePosixPath(*parts))


def ingest_uploaded_files(files: Iterable[tuple[str, bytes]]) -> tuple[str, list[FileEntry]]:
    """Build FileEntry records from already-received ``(filename, bytes)`` pairs.

    Browsers send each file of a picked folder with its path relative to the
    folder's parent (``MyGame/index.html``). When every file shares the same
    first segment it is taken as the folder name and stripped.

    Returns ``(folder_name, entries)`` with entries sorted by path.
    """
    normalized: dict[str, bytes] = {}
    for filename, content in files:
        path = normalize_upload_path(filename)
        if path in normalized:
            raise UnsafePath(f"Duplicate upload filename: {path}")
        normalized[path] = content

    if not normalized:
        raise EmptyDirectory("No files were uploaded")

    split = [PurePosixPath(p).parts for p in normalized]
    heads = {parts[0] for parts in split}
    folder_name = DEFAULT_UPLOAD_NAME
    strip = len(heads) == 1 and all(len(parts) > 1 for parts in split)
    if strip:
        folder_name = heads.pop()

    entries: list[FileEntry] = []
    for path in sorted(normalized):
        content = normalized[path]
        relative = str(PurePosixPath(*PurePosixPath(path).parts[1:])) if strip else path
        entries.append(FileEntry(relative_path=relative, content=content, size=len(content)))

    logger.info("Received %d uploaded files for %s", len(entries), folder_name)
    return folder_name, entries
