[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "labnet"
version = "0.1.0"
description = "A simulated RPC network, a small protobuf-style message codec and a linearizability checker for testing distributed systems"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "simulation", "distributed-systems", "linearizability", "protobuf", "testing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["labnet*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
