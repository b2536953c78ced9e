"""Diagnostic bundler: concurrent collection of node diagnostics."""

__version__ = "0.1.0"
