"""Acceptance harness for the calculator app's BREAD lifecycle (API + UI)."""

__version__ = "1.0.0"
