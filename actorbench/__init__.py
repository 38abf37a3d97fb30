"""Benchmark tooling: request generators, retriers, timing logs, exporters and a time server."""

__version__ = "0.1.0"