"""Shared test setup.

- Puts the project root on ``sys.path`` so ``main`` and ``crawl_engine``
  import without installation.
- Provides a scripted fetcher so engine tests never touch the network.
"""

from __future__ import annotations

import asyncio
import io
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest


project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from crawl_engine.crawler.fetcher import FetchUnit  # noqa: E402
from crawl_engine.crawler.frontier import FetchTask  # noqa: E402
from crawl_engine.storage.sink import OutputSink  # noqa: E402
from crawl_engine.utils.config import Config, CrawlerConfig  # noqa: E402


def html_page(links: List[str], size: int = 5000) -> bytes:
    """HTML body with one anchor per link, padded to roughly ``size`` bytes."""
    anchors = "".join(f'<a href="{link}">link</a>\n' for link in links)
    head = f"<html><head><title>t</title></head><body>\n{anchors}"
    tail = "</body></html>"
    padding = max(0, size - len(head) - len(tail) - len("<p></p>"))
    return (head + "<p>" + "x" * padding + "</p>" + tail).encode("utf-8")


@dataclass
class FakePage:
    """Canned response served by :class:`FakeFetcher`."""

    status: int = 200
    body: bytes = b""
    content_type: Optional[str] = "text/html; charset=utf-8"
    error: Optional[str] = None
    redirect_to: Optional[str] = None
    hang: bool = False


NOT_FOUND = FakePage(status=404, body=b"not found", content_type="text/plain")


class FakeFetcher:
    """Fetcher double that serves pages from a dict instead of the network."""

    def __init__(self, pages: Dict[str, FakePage], default: Optional[FakePage] = None,
                 on_fetch: Optional[Callable[[FetchUnit], None]] = None):
        self.pages = pages
        self.default = default or NOT_FOUND
        self.on_fetch = on_fetch
        self.fetched: List[FetchTask] = []
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def fetch(self, unit: FetchUnit) -> FetchUnit:
        self.fetched.append(unit.task)
        page = self.pages.get(unit.task.url, self.default)
        if self.on_fetch:
            self.on_fetch(unit)

        await asyncio.sleep(0)
        if page.hang:
            await asyncio.Event().wait()

        if page.error:
            unit.error = page.error
            return unit

        unit.status = page.status
        unit.content_type = page.content_type
        unit.effective_url = page.redirect_to or unit.task.url
        unit.buffer.write(page.body)
        return unit


class SequentialRandom:
    """Stand-in for ``random.Random`` whose draws walk the links in order."""

    def __init__(self):
        self.calls = 0

    def randrange(self, n: int) -> int:
        value = self.calls % n
        self.calls += 1
        return value


class FixedRandom:
    """Always draws the same index."""

    def __init__(self, index: int = 0):
        self.index = index
        self.calls = 0

    def randrange(self, n: int) -> int:
        self.calls += 1
        return min(self.index, n - 1)


@pytest.fixture
def crawler_config() -> CrawlerConfig:
    """Defaults with a short poll interval so tests do not idle."""
    return CrawlerConfig(poll_interval=0.05)


@pytest.fixture
def config(tmp_path, crawler_config) -> Config:
    cfg = Config(crawler=crawler_config)
    cfg.output.file = str(tmp_path / "datafile.txt")
    cfg.logging.file = str(tmp_path / "logs" / "crawler.log")
    return cfg


@pytest.fixture
def error_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def sink(tmp_path, error_stream):
    out = OutputSink(str(tmp_path / "datafile.txt"), error_stream=error_stream)
    out.open()
    yield out
    out.close()
