"""HTTP front end: browsing, chunked uploads, downloads and file management."""

from __future__ import annotations

import getopt
import os
import re
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator

from flask import Flask, Response, request, send_file

from webfilebrowser.storage import (
    MergeStatus,
    MergeTracker,
    chunk_path,
    count_uploaded_chunks,
    generate_upload_id,
    init_storage,
    list_directory,
    remove_chunks,
    resolve_path,
)

DEFAULT_BASE_DIR = "./files"
DEFAULT_TMP_DIR = "./tmp"
DEFAULT_PORT = 8080
DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = DEFAULT_CHUNK_SIZE // 1024
INDEX_HTML = "./index.html"
TRACKER_KEY = "webfilebrowser.merges"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_MERGE_STATUS_NAMES = {
    MergeStatus.SUCCESS: "completed",
    MergeStatus.FAILED: "failed",
    MergeStatus.INCOMPLETE: "merge",
}


@dataclass
class Options:
    """Command-line settings."""

    base_dir: str = DEFAULT_BASE_DIR
    port: int = DEFAULT_PORT
    show_help: bool = False


def _parse_int(value: str) -> int:
    """Parse a leading decimal integer, ignoring leading blanks and trailing text."""
    match = _LEADING_INT.match(value or "")
    if match is None:
        raise ValueError(f"not an integer: {value!r}")
    return int(match.group(1))


def _json(payload: dict | list, status: int = 200) -> Response:
    return Response(
        __import_json_dumps(payload), status=status, mimetype="application/json"
    )


def __import_json_dumps(payload: dict | list) -> str:
    import json

    return json.dumps(payload, separators=(",", ":"))


def _param(name: str) -> str:
    return request.values.get(name, "")


def _index_exists(announce: bool = False) -> bool:
    if os.path.exists(INDEX_HTML):
        if announce:
            print("External index html exists, it will use.")
        return True
    return False


def _stream_file(path: str) -> Iterator[bytes]:
    with open(path, "rb") as handle:
        while block := handle.read(DOWNLOAD_CHUNK_SIZE):
            yield block


def create_app(base_dir: str | os.PathLike = DEFAULT_BASE_DIR,
               tmp_dir: str | os.PathLike = DEFAULT_TMP_DIR) -> Flask:
    """Build the Flask application serving files beneath *base_dir*."""
    init_storage(base_dir, tmp_dir)
    tracker = MergeTracker(tmp_dir)
    app = Flask(__name__)
    app.extensions[TRACKER_KEY] = tracker

    @app.get("/")
    def index() -> Response:
        if _index_exists():
            return send_file(os.path.abspath(INDEX_HTML), mimetype="text/html")
        return Response("index.html not found", status=404, mimetype="text/plain")

    @app.get("/config")
    def config() -> Response:
        return _json({"chunksize": DEFAULT_CHUNK_SIZE})

    @app.get("/browse")
    def browse() -> Response:
        rel_path = _param("path")
        abs_path = resolve_path(base_dir, rel_path)
        if not os.path.isdir(abs_path):
            return Response(status=404)
        entries = list_directory(abs_path, include_parent=rel_path not in ("", "/"))
        return _json([{**entry, "size": str(entry["size"])} for entry in entries])

    @app.post("/upload")
    def upload() -> Response:
        path = _param("path")
        filename = _param("filename")
        upload_id = _param("upload_id")
        try:
            chunk_index = _parse_int(_param("chunk_index"))
            total_chunks = _parse_int(_param("total_chunks"))
        except ValueError:
            return _json({"error": "Invalid chunk parameters"}, 400)

        if not filename or chunk_index < 0 or total_chunks <= 0 or chunk_index >= total_chunks:
            return _json({"error": "Invalid parameters"}, 400)

        if not upload_id:
            upload_id = generate_upload_id()

        abs_path = resolve_path(base_dir, path)
        if not os.path.isdir(abs_path):
            return _json({"error": "Directory not found"}, 404)

        upload_file = request.files.get("file")
        content = upload_file.read() if upload_file is not None else b""
        if upload_file is None or not upload_file.filename or not content:
            return _json({"error": "No file data"}, 400)

        try:
            chunk_path(tmp_dir, upload_id, chunk_index).write_bytes(content)
        except OSError:
            return _json({"error": "Failed to save chunk"}, 500)

        if count_uploaded_chunks(tmp_dir, upload_id, total_chunks) == total_chunks:
            final_name = PurePosixPath(abs_path + "/" + filename).name
            return _json({"status": "merge", "upload_id": upload_id, "filename": final_name})
        return _json(
            {
                "status": "partial",
                "upload_id": upload_id,
                "chunk_index": chunk_index,
                "total_chunks": total_chunks,
            }
        )

    @app.post("/upload/merge")
    def upload_merge() -> Response:
        path = _param("path")
        filename = _param("filename")
        upload_id = _param("upload_id")

        state = tracker.status(upload_id)
        if state is not None:
            return _json({"status": _MERGE_STATUS_NAMES[state], "upload_id": upload_id})

        abs_path = resolve_path(base_dir, path)
        try:
            total_chunks = _parse_int(_param("total_chunks"))
        except ValueError:
            return _json({"error": "Invalid chunk parameters"}, 400)
        if not os.path.isdir(abs_path):
            return _json({"error": "Directory not found"}, 404)

        tracker.start(upload_id, abs_path, filename, total_chunks)
        return _json({"status": "merge", "upload_id": upload_id})

    def _upload_query() -> tuple[str, int] | Response:
        upload_id = _param("upload_id")
        try:
            total_chunks = _parse_int(_param("total_chunks"))
        except ValueError:
            return _json({"error": "Invalid parameters"}, 400)
        if not upload_id or total_chunks <= 0:
            return _json({"error": "Invalid parameters"}, 400)
        return upload_id, total_chunks

    @app.get("/upload/progress")
    def upload_progress() -> Response:
        query = _upload_query()
        if isinstance(query, Response):
            return query
        upload_id, total_chunks = query
        uploaded = count_uploaded_chunks(tmp_dir, upload_id, total_chunks)
        return _json(
            {
                "upload_id": upload_id,
                "uploaded_chunks": uploaded,
                "total_chunks": total_chunks,
                "progress": int(uploaded / total_chunks * 100),
            }
        )

    @app.post("/upload/cancel")
    def upload_cancel() -> Response:
        query = _upload_query()
        if isinstance(query, Response):
            return query
        upload_id, total_chunks = query
        remove_chunks(tmp_dir, upload_id, total_chunks)
        return _json({"status": "cancelled"})

    @app.get("/download")
    def download() -> Response:
        filename = _param("filename")
        abs_path = resolve_path(base_dir, _param("path") + "/" + filename)
        if not os.path.isfile(abs_path) or not os.access(abs_path, os.R_OK):
            return Response("404 not found", status=404, mimetype="text/plain; charset=UTF-8")
        response = Response(_stream_file(abs_path), mimetype="application/octet-stream")
        response.headers["Cache-Control"] = "no-cache"
        response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    @app.post("/delete")
    def delete() -> Response:
        abs_path = resolve_path(base_dir, _param("path") + "/" + _param("name"))
        if not os.path.lexists(abs_path):
            return Response(status=404)
        try:
            if os.path.isdir(abs_path) and not os.path.islink(abs_path):
                os.rmdir(abs_path)
            else:
                os.unlink(abs_path)
        except OSError:
            return _json({"error": "Deletion failed"}, 500)
        return _json({"status": "success"})

    @app.post("/rename")
    def rename() -> Response:
        rel_path = _param("path")
        old_path = resolve_path(base_dir, rel_path + "/" + _param("oldname"))
        new_path = resolve_path(base_dir, rel_path + "/" + _param("newname"))
        if not os.path.lexists(old_path):
            return Response(status=404)
        try:
            os.replace(old_path, new_path)
        except OSError:
            return _json({"error": "Rename failed"}, 500)
        return _json({"status": "success"})

    @app.post("/mkdir")
    def mkdir() -> Response:
        abs_path = resolve_path(base_dir, _param("path") + "/" + _param("dirname"))
        if os.path.exists(abs_path):
            return _json({"error": "Directory already exists"}, 400)
        try:
            os.mkdir(abs_path)
        except OSError:
            return _json({"error": "Failed to create directory"}, 500)
        return _json({"status": "success"})

    @app.post("/delete_folder")
    def delete_folder() -> Response:
        abs_path = resolve_path(base_dir, _param("path") + "/" + _param("name"))
        if not os.path.isdir(abs_path):
            return Response(status=404)
        try:
            shutil.rmtree(abs_path)
        except OSError:
            return _json({"error": "Deletion failed"}, 500)
        return _json({"status": "success"})

    return app


def _usage(program: str) -> str:
    return (
        "fileBrowser V1.0 \nA simple web file Browser\n"
        f"Usage: {program} [-d root_dir] [-p port] [-h]\n"
        "\t -d : set root path.\n\t -p : set server port.\n\t -h : show helps.\n"
    )


def parse_args(argv: list[str] | None = None) -> Options:
    """Parse '-d root_dir', '-p port' and '-h'; options are read up to the first '-h'."""
    if argv is None:
        argv = sys.argv[1:]
    options = Options()
    pairs, _ = getopt.getopt(argv, "d:hp:")
    for flag, value in pairs:
        if flag == "-h":
            options.show_help = True
            return options
        if flag == "-d":
            options.base_dir = value
        elif flag == "-p":
            try:
                port = _parse_int(value)
            except ValueError:
                continue
            options.port = port if port > 0 else DEFAULT_PORT
    return options


def main(argv: list[str] | None = None) -> int:
    """Run the file browser server."""
    program = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "webfilebrowser"
    try:
        options = parse_args(argv)
    except getopt.GetoptError as exc:
        print(f"{program}: {exc}", file=sys.stderr)
        print(_usage(program), end="", file=sys.stderr)
        return 2
    if options.show_help:
        print(_usage(program), end="")
        return 0

    print(f"Root Path:{options.base_dir}")
    app = create_app(options.base_dir, DEFAULT_TMP_DIR)
    _index_exists(announce=True)
    print(f"File Browser running on http://localhost:{options.port}")
    app.run(host="0.0.0.0", port=options.port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())