"""Client for the external article storage API."""

from refinery.storage.api_client import StorageClient

__all__ = ["StorageClient"]
