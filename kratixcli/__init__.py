"""Tooling for Kratix Promises: workflow containers, container builds, Promise assembly and pipeline aspects."""

__version__ = "0.1.0"