# Path: core/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: core/embedders.
# Details: Exposes the base interface, the callable adapter, the reference implementation, and the factory.

from .base import CallableEmbedder, Embedder
from .factory import create_embedder
from .pooled_embedder import PooledColorEmbedder

__all__ = ["CallableEmbedder", "Embedder", "PooledColorEmbedder", "create_embedder"]
