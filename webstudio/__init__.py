"""webstudio - multilingual content console: translation reconciliation and content integrity."""

__version__ = "0.1.0"
