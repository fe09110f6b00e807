"""A small HTTP file browser with chunked uploads, downloads and file management."""

__version__ = "1.0.0"
__all__ = ["base64codec", "storage", "server"]