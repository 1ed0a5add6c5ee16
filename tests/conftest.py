"""Shared test fixtures for visual search tests."""

import httpx
import pytest

from tests.helpers import (
    BLUE,
    BLUE_URL,
    GARBAGE_URL,
    GREEN,
    GREEN_URL,
    QUERY_URL,
    RED,
    RED_URL,
    TIMEOUT_URL,
    ImageServer,
    LookupEmbedder,
    default_table,
)


@pytest.fixture
def server():
    """Image server with red/green/blue images, a red query, a timing-out URL, and a non-image body."""
    image_server = ImageServer()
    image_server.add_image(QUERY_URL, RED)
    image_server.add_image(RED_URL, RED)
    image_server.add_image(GREEN_URL, GREEN)
    image_server.add_image(BLUE_URL, BLUE)
    image_server.routes[TIMEOUT_URL] = httpx.ReadTimeout("upstream too slow")
    image_server.routes[GARBAGE_URL] = b"<html>not an image</html>"
    return image_server


@pytest.fixture
def embedder():
    """Embedder mapping red -> [1, 0], green -> [0, 1], blue -> [-1, 0]."""
    return LookupEmbedder(default_table())
