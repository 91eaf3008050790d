[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "retrykit"
version = "0.10.3"
description = "Validated retry options: delay strategies, jitter, attempt timeouts and configuration merging"
requires-python = ">=3.10"
dependencies = []
keywords = ["retry", "resilience", "backoff", "jitter", "fault-tolerance"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["retrykit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
