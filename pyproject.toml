[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "epochdb"
version = "0.1.0"
description = "Building blocks of an epoch-based transactional database node: size encoding, checkpoint files, controller console, hash index and commit buffer"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "transactions",
    "epoch",
    "checkpoint",
    "hash index",
    "xxhash",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
epochdb-checkpoint-dump = "epochdb.checkpoint:main"

[tool.hatch.build.targets.wheel]
packages = ["epochdb"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
