[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shopcustomers"
version = "0.1.0"
description = "Customer management with an SQLite repository, a transactional outbox, customer event contracts and an event reader service."
requires-python = ">=3.10"
dependencies = []
keywords = ["customers", "repository", "outbox", "events", "sqlite", "shopping"]
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
    "Topic :: Office/Business",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["shopcustomers"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
