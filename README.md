# databridge

databridge is a code indexing pipeline. It reads files from a local
directory, drops the ones whose content has not changed, splits the rest
into one chunk per symbol or section, embeds each chunk through an
OpenAI-compatible embeddings API and writes the results to a sink.

What gets chunked and how:

- **Go** files (`databridge.go_parser.parse_go`): one chunk per top-level
  function, method, type, var and const. Methods are named
  `Receiver.Method`; a var or const spec with several names gives one
  chunk per name.
- **Python** files (`databridge.python_parser.parse_python`): one chunk
  per undecorated top-level function (sync or async) or class.
  Decorated definitions are not chunked.
- **Markdown** files (`databridge.transforms.split_markdown`): one chunk
  per heading section; text before the first heading goes under `_intro`.
- Go or Python files that do not parse, or yield no symbols, are kept
  whole under the symbol `_file`; Markdown without any non-blank section
  is kept whole under `_doc`.

Unchanged files are recognised by the SHA-256 of their content, kept in a
`databridge.merkle.MerkleTree`. The functions in `databridge.merkle_store`
(`load_from_database`, `save_to_database`, `delete_from_database`) keep
such a tree in the `merkle_snapshots` table. The command line and the
server start every run with an empty tree and do not save it, so
unchanged files are only skipped within a single run.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Command line

Index a local directory once:

```
QDRANT_HOST=localhost codewatch --input ./my-repo --workspace my-workspace
```

Both `--input` and `--workspace` are required. `QDRANT_HOST` must be set,
since the Qdrant sink is the only sink the command writes to. A
`--source` option is accepted but has no effect: the command always reads
the local directory.

Hidden directories (such as `.git`) are skipped, and only files with the
extensions `.go`, `.py`, `.md`, `.mdx`, `.ts`, `.tsx`, `.js`, `.jsx`,
`.rs`, `.java`, `.cpp`, `.c` and `.h` are read. When the run ends it
prints a line such as:

```
Done. in=12 out=40 failed=0 duration=1.234s
```

The exit code is 0 on success and 1 on a usage, configuration or pipeline
error.

## HTTP server

```
databridge-server
```

The port is taken from `FUNCTIONS_CUSTOMHANDLER_PORT`, then `PORT`, and
defaults to `8080`. The server stops cleanly on SIGINT or SIGTERM.

If `CODEWATCH_DSN` is set to a database URL that SQLAlchemy accepts, the
server opens it, creates its tables (enabling the `vector` extension
first on PostgreSQL) and tracks indexing jobs in the `index_jobs` table.
Without it, job tracking is disabled.

| Method | Path                   | Purpose                                    |
|--------|------------------------|--------------------------------------------|
| GET    | `/v1/health`           | Liveness check                             |
| POST   | `/v1/index`            | Start an indexing job in the background    |
| GET    | `/v1/jobs/<id>`        | Status of a job                            |
| GET    | `/v1/flows`            | Names of the registered flows              |
| POST   | `/v1/flows/<name>/run` | Run a registered flow and return its stats |

A request to `/v1/index` looks like:

```json
{"source": "local", "workspace_id": "my-workspace", "config": {"input": "/srv/repo"}}
```

and is answered with `202` and `{"job_id": "..."}`. Without
`workspace_id` the answer is `400`; without a job store it is `503`. The
job moves from `queued` to `running` and then to `done` or `failed`, with
the error text in `error_msg`. The flow for a job is built by
`databridge.factory.build_flow`, which needs `QDRANT_HOST` in the
environment.

The standalone server registers no flows, so `/v1/flows` is empty unless
the application is built in code with `databridge.app.create_app` and a
`FlowRegistry` that holds flows.

## Configuration

Embedding (`databridge.embedder.create_embedder`):

| Variable                     | Meaning                                                   |
|------------------------------|-----------------------------------------------------------|
| `CODEWATCH_EMBEDDER`         | Embedder kind; only `api` (the default) is available      |
| `CODEWATCH_EMBEDDER_API_URL` | Base URL of the API (default `https://api.voyageai.com/v1`) |
| `CODEWATCH_EMBEDDER_API_KEY` | Sent as a bearer key when set                             |
| `CODEWATCH_EMBEDDER_MODEL`   | Model name (default `voyage-code-3`)                      |
| `CODEWATCH_EMBEDDER_DIM`     | Vector dimension (default `1024`)                         |

Qdrant sink (`databridge.qdrant_sink.QdrantSink.from_env`), which talks
to Qdrant's HTTP API:

| Variable            | Default     |
|---------------------|-------------|
| `QDRANT_HOST`       | `localhost` |
| `QDRANT_PORT`       | `6334`      |
| `QDRANT_COLLECTION` | `codewatch` |
| `QDRANT_USE_TLS`    | `false`     |

## Library use

```python
from databridge.go_parser import parse_go
from databridge.python_parser import parse_python
from databridge.transforms import split_markdown

for chunk in parse_go("main.go", "package main\n\nfunc Hello() {}\n"):
    print(chunk.symbol, chunk.symbol_type)

for chunk in parse_python("def greet():\n    return 1\n"):
    print(chunk.symbol, chunk.symbol_type)

for section in split_markdown("# Title\nSome text\n"):
    print(section.heading)
```

```python
from databridge.merkle import MerkleTree, hash_content

tree = MerkleTree()
digest = hash_content(b"print('hi')\n")
tree.set("app.py", digest)
assert tree.get("app.py") == digest
```

A pipeline is a `databridge.flow.Flow` with a source (`with_source`), any
number of transforms (`add_transform`) and at least one sink
(`add_sink`). `Flow.run` returns a `FlowStats`; if any stage failed it
raises `FlowError`, whose `stats` attribute holds the statistics of the
run. Flows can also be kept and run by name in a `FlowRegistry`.

Available building blocks:

- source: `databridge.local_source.LocalFileSource`
- transforms (`databridge.transforms`): `MerkleDedup`, `GoASTParser`,
  `PythonASTParser`, `MarkdownChunker`, `ChunkEmbedder`
- sinks: `databridge.qdrant_sink.QdrantSink` and
  `databridge.postgres_sink.PostgresSink`, which upserts into the
  `chunks` table through a SQLAlchemy engine (PostgreSQL or SQLite)
- database models and the job store: `databridge.store`

## What this package does not do

- It reads only local directories; there is no S3 or Azure Blob source,
  and `build_flow` rejects the source types `s3` and `azure`.
- There is no in-process embedding model; `CODEWATCH_EMBEDDER=hugot` is
  rejected, and all embeddings come from an HTTP API.
- Qdrant and the `chunks` table are the only sinks. Setting
  `SMRITEA_API_KEY` makes `build_flow` fail, since no sink for it exists.
- There is no serverless function handler; the HTTP API runs only as the
  standalone `databridge-server`.