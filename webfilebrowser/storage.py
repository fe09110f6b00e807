"""File storage helpers: safe path resolution, chunked uploads and background merging."""

from __future__ import annotations

import enum
import os
import secrets
import shutil
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

DEFAULT_MERGE_SLOTS = 5


class MergeStatus(enum.Enum):
    """State of a background chunk merge."""

    INCOMPLETE = 0
    SUCCESS = 1
    FAILED = 2


def sanitize_path(path: str) -> str:
    """Return *path* as a relative path with every '..' and root component removed."""
    parts = [
        part
        for part in PurePosixPath(path).parts
        if part != ".." and not part.startswith("/")
    ]
    return "/".join(parts)


def resolve_path(base_dir: str | os.PathLike, relative_path: str) -> str:
    """Resolve *relative_path* beneath *base_dir* as a normalised absolute path."""
    base = os.path.abspath(base_dir)
    return os.path.normpath(os.path.join(base, sanitize_path(relative_path)))


def init_storage(base_dir: str | os.PathLike, tmp_dir: str | os.PathLike) -> None:
    """Create the storage root and the temporary chunk directory if missing."""
    Path(base_dir).mkdir(parents=True, exist_ok=True)
    Path(tmp_dir).mkdir(parents=True, exist_ok=True)


def generate_upload_id() -> str:
    """Return a random 32-character lowercase hexadecimal upload id."""
    return secrets.token_hex(16)


def chunk_path(tmp_dir: str | os.PathLike, upload_id: str, index: int) -> Path:
    """Return the file that holds chunk *index* of an upload."""
    return Path(tmp_dir) / f"{upload_id}_{index}"


def count_uploaded_chunks(tmp_dir: str | os.PathLike, upload_id: str, total_chunks: int) -> int:
    """Count how many of the first *total_chunks* chunks are present."""
    return sum(
        1 for index in range(total_chunks) if chunk_path(tmp_dir, upload_id, index).exists()
    )


def remove_chunks(tmp_dir: str | os.PathLike, upload_id: str, total_chunks: int) -> None:
    """Delete every stored chunk of an upload."""
    for index in range(total_chunks):
        chunk_path(tmp_dir, upload_id, index).unlink(missing_ok=True)


def unique_target_path(directory: str | os.PathLike, filename: str) -> Path:
    """Return a path in *directory* for *filename* that does not exist yet.

    An existing name gets " (n)" inserted before its last dot.
    """
    target = Path(directory) / filename
    if not target.exists():
        return target
    dot = filename.rfind(".")
    if dot == -1:
        stem, ext = filename, ""
    else:
        stem, ext = filename[:dot], filename[dot:]
    counter = 1
    while True:
        target = Path(directory) / f"{stem} ({counter}){ext}"
        if not target.exists():
            return target
        counter += 1


def merge_chunks(
    tmp_dir: str | os.PathLike,
    upload_id: str,
    total_chunks: int,
    target_path: str | os.PathLike,
) -> Path:
    """Append all chunks of an upload to *target_path*, deleting each chunk once copied.

    On a missing or unreadable chunk the target file is removed and the error is raised.
    """
    target = Path(target_path)
    with open(target, "ab") as out:
        try:
            for index in range(total_chunks):
                chunk = chunk_path(tmp_dir, upload_id, index)
                with open(chunk, "rb") as source:
                    shutil.copyfileobj(source, out)
                chunk.unlink()
        except OSError:
            out.close()
            target.unlink(missing_ok=True)
            raise
    return target


def list_directory(abs_path: str | os.PathLike, include_parent: bool = False) -> list[dict]:
    """List a directory as dicts with name, type and size; directories first, then by name."""
    path = Path(abs_path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    if not path.is_dir():
        raise NotADirectoryError(str(path))

    entries: list[dict] = []
    if include_parent:
        entries.append({"name": "..", "type": "directory", "size": 0})
    with os.scandir(path) as listing:
        for entry in listing:
            is_dir = entry.is_dir()
            entries.append(
                {
                    "name": entry.name,
                    "type": "directory" if is_dir else "file",
                    "size": 0 if is_dir else entry.stat().st_size,
                }
            )
    entries.sort(key=lambda item: (item["type"] != "directory", item["name"]))
    return entries


@dataclass
class _MergeJob:
    status: MergeStatus
    thread: threading.Thread | None = None
    target: Path | None = None


class MergeTracker:
    """Runs chunk merges in background threads and remembers the latest few results."""

    def __init__(self, tmp_dir: str | os.PathLike, slots: int = DEFAULT_MERGE_SLOTS):
        if slots < 1:
            raise ValueError("slots must be at least 1")
        self.tmp_dir = Path(tmp_dir)
        self.slots = slots
        self._jobs: OrderedDict[str, _MergeJob] = OrderedDict()
        self._lock = threading.Lock()

    def start(
        self,
        upload_id: str,
        directory: str | os.PathLike,
        filename: str,
        total_chunks: int,
    ) -> None:
        """Begin merging an upload's chunks into *directory*/*filename* in the background."""
        job = _MergeJob(MergeStatus.INCOMPLETE)
        job.thread = threading.Thread(
            target=self._run,
            args=(job, upload_id, Path(directory), filename, total_chunks),
            daemon=True,
        )
        with self._lock:
            self._jobs.pop(upload_id, None)
            self._jobs[upload_id] = job
            while len(self._jobs) > self.slots:
                self._jobs.popitem(last=False)
        job.thread.start()

    def _run(
        self,
        job: _MergeJob,
        upload_id: str,
        directory: Path,
        filename: str,
        total_chunks: int,
    ) -> None:
        try:
            target = unique_target_path(directory, filename)
            merge_chunks(self.tmp_dir, upload_id, total_chunks, target)
        except OSError:
            outcome, target = MergeStatus.FAILED, None
        else:
            outcome = MergeStatus.SUCCESS
        with self._lock:
            job.target = target
            job.status = outcome

    def status(self, upload_id: str) -> MergeStatus | None:
        """Return the merge status of an upload, or None if it is not tracked."""
        with self._lock:
            job = self._jobs.get(upload_id)
            return job.status if job is not None else None

    def wait(self, upload_id: str, timeout: float | None = None) -> MergeStatus:
        """Block until the merge of *upload_id* ends or *timeout* passes; return its status."""
        with self._lock:
            job = self._jobs.get(upload_id)
        if job is None:
            raise KeyError(upload_id)
        if job.thread is not None:
            job.thread.join(timeout)
        with self._lock:
            return job.status