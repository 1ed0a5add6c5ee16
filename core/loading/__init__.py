# Path: core/loading/__init__.py
# Purpose: Package initializer for image loading utilities.
# Layer: core/loading.
# Details: Exposes the URL-based image loader.

from .image_loader import ImageLoader

__all__ = ["ImageLoader"]
