"""Translation, error classification, model catalog and proxied HTTP clients for a codex relay."""

__version__ = "0.1.0"