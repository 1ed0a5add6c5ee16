"""Shared fakes for the visual search tests: an in-memory image server and a lookup embedder."""

from __future__ import annotations

import threading
from io import BytesIO
from typing import Awaitable, Callable, Dict, List, Sequence, Tuple, Union

import httpx
import numpy as np
from PIL import Image

from core.embedders.base import Embedder
from core.models.domain import Card

RED = (220, 30, 30)
GREEN = (30, 200, 30)
BLUE = (30, 30, 220)
GRAY = (128, 128, 128)

QUERY_URL = "http://img.test/query.png"
RED_URL = "http://img.test/red.png"
GREEN_URL = "http://img.test/green.png"
BLUE_URL = "http://img.test/blue.png"
GRAY_URL = "http://img.test/gray.png"
TIMEOUT_URL = "http://img.test/timeout.png"
MISSING_URL = "http://img.test/missing.png"
GARBAGE_URL = "http://img.test/garbage.png"

Route = Union[bytes, BaseException, Callable[[httpx.Request], Awaitable[httpx.Response]]]


def png_bytes(color: Tuple[int, int, int], size: Tuple[int, int] = (32, 32)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def png_response(color: Tuple[int, int, int]) -> httpx.Response:
    return httpx.Response(200, content=png_bytes(color), headers={"content-type": "image/png"})


class ImageServer:
    """Serve canned responses through httpx.MockTransport and record what was asked for."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def add_image(self, url: str, color: Tuple[int, int, int]) -> None:
        self.routes[url] = png_bytes(color)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def hits(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, bytes):
            return httpx.Response(200, content=route, headers={"content-type": "image/png"})
        return await route(request)


class LookupEmbedder(Embedder):
    """Map an image's dominant colour to a fixed vector so distances are known in advance."""

    def __init__(self, table: Dict[Tuple[int, int, int], Sequence[float]], name: str = "lookup") -> None:
        self.table = {color: np.asarray(vector, dtype=np.float32) for color, vector in table.items()}
        self.dim = len(next(iter(self.table.values())))
        self.name = name
        self.fail_on: set = set()
        self.calls = 0
        self._lock = threading.Lock()

    def embed_image(self, image: Image.Image) -> np.ndarray:
        with self._lock:
            self.calls += 1
        pixel = image.getpixel((0, 0))
        color = min(self.table, key=lambda candidate: sum((a - b) ** 2 for a, b in zip(candidate, pixel)))
        if color in self.fail_on:
            raise RuntimeError("model exploded")
        return self.table[color].copy()


def default_table() -> Dict[Tuple[int, int, int], Sequence[float]]:
    return {RED: [1.0, 0.0], GREEN: [0.0, 1.0], BLUE: [-1.0, 0.0]}


def make_card(card_id: str, url: str, title: str = "", workflows: Sequence[str] = ()) -> Card:
    return Card(id=card_id, image_url=url, title=title or f"Page {card_id}", workflows=tuple(workflows))
