# webfilebrowser

A small HTTP file server built on Flask. It serves one directory tree and
offers a JSON interface for browsing folders, streaming downloads, chunked
uploads, and renaming, deleting and creating files and folders.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Running

```
webfilebrowser -d ./files -p 8080
```

Options:

- `-d ROOT_DIR`: the directory to serve (default `./files`, created if missing)
- `-p PORT`: the port to listen on (default `8080`; `0` or a negative number
  also means `8080`, a value that is not a number is ignored)
- `-h`: print usage and exit

Options are read in order up to the first `-h`. An unknown option prints an
error and the usage text and exits with status 2.

The server listens on all interfaces (`0.0.0.0`). Upload chunks are kept in
`./tmp` (created if missing) until they are merged.

## No built-in page

The package has no web front end of its own. If a file named `index.html`
exists in the working directory, it is served at `/`; otherwise `/` answers
`404` with `index.html not found`. Everything else is a plain HTTP/JSON
interface to be used from your own page or any HTTP client.

## HTTP interface

Parameters may be given in the query string or as form fields.

| Method | Path               | Parameters                                                           |
|--------|--------------------|----------------------------------------------------------------------|
| GET    | `/`                | none; serves `./index.html` if present                               |
| GET    | `/config`          | none; returns `{"chunksize":5242880}`                                |
| GET    | `/browse`          | `path`                                                               |
| POST   | `/upload`          | `path`, `filename`, `upload_id`, `chunk_index`, `total_chunks`, file field `file` |
| POST   | `/upload/merge`    | `path`, `filename`, `upload_id`, `total_chunks`                      |
| GET    | `/upload/progress` | `upload_id`, `total_chunks`                                          |
| POST   | `/upload/cancel`   | `upload_id`, `total_chunks`                                          |
| GET    | `/download`        | `path`, `filename`                                                   |
| POST   | `/delete`          | `path`, `name`                                                       |
| POST   | `/rename`          | `path`, `oldname`, `newname`                                         |
| POST   | `/mkdir`           | `path`, `dirname`                                                    |
| POST   | `/delete_folder`   | `path`, `name`                                                       |

Paths are always resolved inside the root directory; `..` components and
leading slashes are dropped.

- `/browse` returns a list of `{"name", "type", "size"}` objects, folders
  first, each part sorted by name. `type` is `directory` or `file`, and `size`
  is given as a string (`"0"` for folders). Unless `path` is empty or `/`, the
  list starts with a `..` entry. A missing folder gives `404`.
- `/download` streams the file as `application/octet-stream` with a
  `Content-Disposition: attachment` header, or answers `404 not found`.
- `/delete` removes a file or an empty folder; `/delete_folder` removes a
  folder with everything in it.
- `/rename` replaces the target if it already exists.
- `/mkdir` answers `400` if the name already exists.

### Uploading

Send a file as numbered chunks (`chunk_index` from `0` to `total_chunks - 1`)
to `/upload`. The first request may leave `upload_id` empty; the server then
makes up a 32-character hexadecimal id and returns it. Send it back with every
later chunk. While chunks are missing the reply has `"status":"partial"`; when
every chunk is present it has `"status":"merge"`.

Then call `/upload/merge`. The merge runs in a background thread, and further
calls to `/upload/merge` with the same `upload_id` report `merge` (still
running), `completed` or `failed`. Only the five most recent merges are
remembered. If the target name is taken, the merged file gets a name such as
`name (1).ext`.

`/upload/progress` reports `uploaded_chunks`, `total_chunks` and a whole-number
`progress` percentage; `/upload/cancel` deletes the stored chunks.

## Using it as a library

```python
from webfilebrowser.server import create_app

app = create_app("./files", "./tmp")
app.run(port=8080)
```

`webfilebrowser.server` also has `parse_args`, which returns an `Options`
object with `base_dir`, `port` and `show_help`, and `main`, the command above.

`webfilebrowser.storage` holds the file operations the server uses:
`sanitize_path`, `resolve_path`, `init_storage`, `generate_upload_id`,
`chunk_path`, `count_uploaded_chunks`, `remove_chunks`, `unique_target_path`,
`merge_chunks`, `list_directory`, and `MergeTracker` with its `start`, `status`
and `wait` methods, whose states are the `MergeStatus` members `INCOMPLETE`,
`SUCCESS` and `FAILED`.

`webfilebrowser.base64codec` has `encode`, `decode` and `is_base64`. `decode`
is lenient: it stops at the first `=` or the first character outside the
base64 alphabet and decodes what came before.