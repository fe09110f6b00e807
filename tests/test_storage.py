import os
import string

import pytest

from webfilebrowser.storage import (
    MergeStatus,
    MergeTracker,
    chunk_path,
    count_uploaded_chunks,
    generate_upload_id,
    init_storage,
    list_directory,
    merge_chunks,
    remove_chunks,
    resolve_path,
    sanitize_path,
    unique_target_path,
)


def _write_chunks(tmp_dir, upload_id, pieces):
    for index, piece in enumerate(pieces):
        chunk_path(tmp_dir, upload_id, index).write_bytes(piece)


@pytest.mark.parametrize(
    "path", ["../../etc", "/etc/hosts", "a/../../b", "..", "//x/../y", "a/./b/"]
)
def test_sanitize_path_removes_traversal(path):
    result = sanitize_path(path)
    assert ".." not in result.split("/")
    assert not result.startswith("/")


def test_sanitize_path_keeps_plain_relative_path():
    assert sanitize_path("docs/report.txt") == "docs/report.txt"


@pytest.mark.parametrize("path", ["", "/", "..", "../..", "/../../etc/hosts", "a/../../../b"])
def test_resolve_path_stays_inside_base(tmp_path, path):
    base = os.path.abspath(tmp_path)
    result = resolve_path(tmp_path, path)
    assert result == base or result.startswith(base + os.sep)


def test_resolve_path_root_is_base(tmp_path):
    assert resolve_path(tmp_path, "") == os.path.abspath(tmp_path)
    assert resolve_path(tmp_path, "/") == os.path.abspath(tmp_path)


def test_resolve_path_joins_components(tmp_path):
    expected = os.path.join(os.path.abspath(tmp_path), "sub", "file.txt")
    assert resolve_path(tmp_path, "sub//file.txt") == expected


def test_init_storage_creates_directories(tmp_path):
    base = tmp_path / "files"
    tmp = tmp_path / "deep" / "tmp"
    init_storage(base, tmp)
    init_storage(base, tmp)
    assert base.is_dir()
    assert tmp.is_dir()


def test_generate_upload_id_shape():
    first = generate_upload_id()
    second = generate_upload_id()
    assert len(first) == 32
    assert set(first) <= set(string.hexdigits.lower())
    assert first != second


def test_chunk_path_name(tmp_path):
    assert chunk_path(tmp_path, "abc", 3) == tmp_path / "abc_3"


def test_count_and_remove_chunks(tmp_path):
    chunk_path(tmp_path, "up", 0).write_bytes(b"x")
    chunk_path(tmp_path, "up", 2).write_bytes(b"y")
    chunk_path(tmp_path, "other", 1).write_bytes(b"z")
    assert count_uploaded_chunks(tmp_path, "up", 3) == 2
    remove_chunks(tmp_path, "up", 3)
    assert count_uploaded_chunks(tmp_path, "up", 3) == 0
    assert chunk_path(tmp_path, "other", 1).exists()


def test_unique_target_path_free_name(tmp_path):
    assert unique_target_path(tmp_path, "a.txt") == tmp_path / "a.txt"


def test_unique_target_path_adds_counter(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"")
    assert unique_target_path(tmp_path, "a.txt") == tmp_path / "a (1).txt"
    (tmp_path / "a (1).txt").write_bytes(b"")
    assert unique_target_path(tmp_path, "a.txt") == tmp_path / "a (2).txt"


def test_unique_target_path_without_extension(tmp_path):
    (tmp_path / "notes").write_bytes(b"")
    result = unique_target_path(tmp_path, "notes")
    assert result.name.startswith("notes (")
    assert not result.exists()


def test_merge_chunks_concatenates_and_cleans_up(tmp_path):
    tmp = tmp_path / "tmp"
    tmp.mkdir()
    pieces = [b"first-", b"second-", b"third"]
    _write_chunks(tmp, "uid", pieces)
    target = tmp_path / "out.bin"
    merge_chunks(tmp, "uid", len(pieces), target)
    assert target.read_bytes() == b"".join(pieces)
    assert count_uploaded_chunks(tmp, "uid", len(pieces)) == 0


def test_merge_chunks_missing_chunk_raises_and_removes_target(tmp_path):
    tmp = tmp_path / "tmp"
    tmp.mkdir()
    _write_chunks(tmp, "uid", [b"only"])
    target = tmp_path / "out.bin"
    with pytest.raises(FileNotFoundError):
        merge_chunks(tmp, "uid", 2, target)
    assert not target.exists()


def test_list_directory_orders_directories_first(tmp_path):
    (tmp_path / "zdir").mkdir()
    (tmp_path / "adir").mkdir()
    (tmp_path / "b.txt").write_bytes(b"12345")
    (tmp_path / "a.txt").write_bytes(b"")
    entries = list_directory(tmp_path)
    assert [e["name"] for e in entries] == ["adir", "zdir", "a.txt", "b.txt"]
    assert [e["type"] for e in entries] == ["directory", "directory", "file", "file"]
    sizes = {e["name"]: e["size"] for e in entries}
    assert sizes["b.txt"] == 5
    assert sizes["adir"] == 0


def test_list_directory_with_parent(tmp_path):
    (tmp_path / "sub").mkdir()
    entries = list_directory(tmp_path, include_parent=True)
    assert entries[0] == {"name": "..", "type": "directory", "size": 0}
    assert len(entries) == 2


def test_list_directory_errors(tmp_path):
    (tmp_path / "f").write_bytes(b"x")
    with pytest.raises(NotADirectoryError):
        list_directory(tmp_path / "f")
    with pytest.raises(FileNotFoundError):
        list_directory(tmp_path / "missing")


def test_tracker_successful_merge(tmp_path):
    tmp = tmp_path / "tmp"
    dest = tmp_path / "files"
    tmp.mkdir()
    dest.mkdir()
    _write_chunks(tmp, "uid", [b"ab", b"cd"])
    tracker = MergeTracker(tmp)
    tracker.start("uid", dest, "data.bin", 2)
    assert tracker.wait("uid", 10) is MergeStatus.SUCCESS
    assert tracker.status("uid") is MergeStatus.SUCCESS
    assert (dest / "data.bin").read_bytes() == b"abcd"


def test_tracker_keeps_existing_file(tmp_path):
    tmp = tmp_path / "tmp"
    dest = tmp_path / "files"
    tmp.mkdir()
    dest.mkdir()
    (dest / "data.bin").write_bytes(b"old")
    _write_chunks(tmp, "uid", [b"new"])
    tracker = MergeTracker(tmp)
    tracker.start("uid", dest, "data.bin", 1)
    assert tracker.wait("uid", 10) is MergeStatus.SUCCESS
    assert (dest / "data.bin").read_bytes() == b"old"
    assert unique_target_path(dest, "data.bin").name != "data.bin"
    created = [p for p in dest.iterdir() if p.name != "data.bin"]
    assert [p.read_bytes() for p in created] == [b"new"]


def test_tracker_failed_merge(tmp_path):
    tmp = tmp_path / "tmp"
    dest = tmp_path / "files"
    tmp.mkdir()
    dest.mkdir()
    tracker = MergeTracker(tmp)
    tracker.start("uid", dest, "data.bin", 3)
    assert tracker.wait("uid", 10) is MergeStatus.FAILED
    assert not (dest / "data.bin").exists()


def test_tracker_unknown_upload(tmp_path):
    tracker = MergeTracker(tmp_path)
    assert tracker.status("nope") is None
    with pytest.raises(KeyError):
        tracker.wait("nope")


def test_tracker_forgets_oldest_beyond_slots(tmp_path):
    tmp = tmp_path / "tmp"
    dest = tmp_path / "files"
    tmp.mkdir()
    dest.mkdir()
    tracker = MergeTracker(tmp, slots=2)
    for upload_id in ("one", "two", "three"):
        _write_chunks(tmp, upload_id, [upload_id.encode()])
        tracker.start(upload_id, dest, upload_id, 1)
        tracker.wait(upload_id, 10)
    assert tracker.status("one") is None
    assert tracker.status("two") is MergeStatus.SUCCESS
    assert tracker.status("three") is MergeStatus.SUCCESS


def test_tracker_rejects_zero_slots(tmp_path):
    with pytest.raises(ValueError):
        MergeTracker(tmp_path, slots=0)