"""Run declarative browser action lists with Playwright and report structured JSON."""

__version__ = "0.1.0"
