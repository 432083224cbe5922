"""FileVault: permission-gated file storage service."""

__version__ = "1.0.0"
