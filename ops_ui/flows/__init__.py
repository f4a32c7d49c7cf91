"""User-facing workflows built on the UI protocols."""
