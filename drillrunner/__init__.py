"""Compile, run, verify and watch small programming exercises listed in info.toml."""

__version__ = "5.5.1"
__all__ = ["__version__"]