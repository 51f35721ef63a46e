"""Binary object storage for uploaded files."""

from .uploads import CloudinaryObjectStore, ObjectStore, ObjectStoreError, StoredObject

__all__ = ["CloudinaryObjectStore", "ObjectStore", "ObjectStoreError", "StoredObject"]
