"""Scan a project, ask an LLM for file changes, and validate what comes back."""

__version__ = "0.1.0"
