[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "databridge"
version = "0.1.0"
description = "Code indexing pipeline: walk a directory, chunk code and docs by symbol, embed, and write to vector stores."
requires-python = ">=3.10"
keywords = ["indexing", "embeddings", "code-search", "pipeline", "chunking", "qdrant"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Indexing",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = [
    "sqlalchemy>=2.0",
    "httpx>=0.24",
    "flask>=2.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[project.scripts]
codewatch = "databridge.cli:main"
databridge-server = "databridge.serve:main"

[tool.hatch.build.targets.wheel]
packages = ["databridge"]

[tool.hatch.build.targets.sdist]
include = ["databridge", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
