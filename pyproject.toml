[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "actorbench"
version = "0.1.0"
description = "Benchmark tooling for lock-based baseline services: request generators, retriers, timing logs, result exporters and a time-logging server"
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "latency", "throughput", "retry", "backoff", "timing"]
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
    "Topic :: System :: Benchmark",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
actorbench-timeserver = "actorbench.timeserver:main"

[tool.hatch.build.targets.wheel]
packages = ["actorbench"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
