"""PostgreSQL tuning calculator: rules, output formats, CLI, HTTP API and doc generator."""

__version__ = "0.1.0"