from .photo_store import PhotoStore

__all__ = ["PhotoStore"]
