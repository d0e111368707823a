"""WebFetcher tests against a local aiohttp test server."""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as LocalServer

from crawl_engine.crawler.fetcher import FetchUnit, ResponseBuffer, WebFetcher
from crawl_engine.crawler.frontier import FetchTask
from crawl_engine.utils.config import CrawlerConfig


PAGE_HTML = "<html><body>" + "<p>filler</p>" * 50 + '<a href="/next">n</a></body></html>'


async def page(request):
    return web.Response(text=PAGE_HTML, content_type="text/html", charset="utf-8")


async def redirect(request):
    raise web.HTTPFound("/page")


async def missing(request):
    return web.Response(status=404, text="nope")


async def slow(request):
    await asyncio.sleep(1)
    return web.Response(text="too late")


async def user_agent(request):
    return web.Response(text=request.headers.get("User-Agent", ""))


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/page", page)
    app.router.add_get("/redirect", redirect)
    app.router.add_get("/missing", missing)
    app.router.add_get("/slow", slow)
    app.router.add_get("/ua", user_agent)
    return app


def unit_for(url: str) -> FetchUnit:
    return FetchUnit(FetchTask(url, 0))


class TestResponseBuffer:
    def test_grows_with_writes(self):
        buffer = ResponseBuffer()
        assert buffer.write(b"abc") == 3
        buffer.write(b"def")
        assert buffer.size == 6
        assert buffer.getvalue() == b"abcdef"

    def test_release_frees_data(self):
        buffer = ResponseBuffer()
        buffer.write(b"abc")
        buffer.release()
        assert buffer.size == 0


@pytest.mark.asyncio
async def test_fetches_html_page():
    async with LocalServer(make_app()) as server:
        async with WebFetcher(CrawlerConfig()) as fetcher:
            unit = await fetcher.fetch(unit_for(str(server.make_url("/page"))))

    assert not unit.failed
    assert unit.status == 200
    assert unit.content_type == "text/html; charset=utf-8"
    assert unit.buffer.getvalue().decode("utf-8") == PAGE_HTML
    assert unit.fetch_time >= 0


@pytest.mark.asyncio
async def test_follows_redirects_and_reports_effective_url():
    async with LocalServer(make_app()) as server:
        async with WebFetcher(CrawlerConfig()) as fetcher:
            unit = await fetcher.fetch(unit_for(str(server.make_url("/redirect"))))
        expected = str(server.make_url("/page"))

    assert unit.status == 200
    assert unit.effective_url == expected
    assert unit.task.url.endswith("/redirect")


@pytest.mark.asyncio
async def test_non_200_is_not_a_failure():
    async with LocalServer(make_app()) as server:
        async with WebFetcher(CrawlerConfig()) as fetcher:
            unit = await fetcher.fetch(unit_for(str(server.make_url("/missing"))))

    assert not unit.failed
    assert unit.status == 404


@pytest.mark.asyncio
async def test_sends_configured_user_agent():
    async with LocalServer(make_app()) as server:
        async with WebFetcher(CrawlerConfig(user_agent="Crawler Project")) as fetcher:
            unit = await fetcher.fetch(unit_for(str(server.make_url("/ua"))))

    assert unit.buffer.getvalue() == b"Crawler Project"


@pytest.mark.asyncio
async def test_timeout_is_recorded():
    config = CrawlerConfig(request_timeout=0.2, connect_timeout=0.2)
    async with LocalServer(make_app()) as server:
        async with WebFetcher(config) as fetcher:
            unit = await fetcher.fetch(unit_for(str(server.make_url("/slow"))))

    assert unit.failed
    assert fetcher.get_stats()["failed_requests"] == 1


@pytest.mark.asyncio
async def test_connection_refused_is_recorded():
    async with WebFetcher(CrawlerConfig()) as fetcher:
        unit = await fetcher.fetch(unit_for("http://127.0.0.1:1/nothing-listens-here"))

    assert unit.failed
    assert unit.status is None
    assert unit.effective_url == "http://127.0.0.1:1/nothing-listens-here"


@pytest.mark.asyncio
async def test_invalid_url_is_recorded():
    async with WebFetcher(CrawlerConfig()) as fetcher:
        unit = await fetcher.fetch(unit_for("not a url at all"))

    assert unit.failed


@pytest.mark.asyncio
async def test_fetch_requires_started_session():
    fetcher = WebFetcher(CrawlerConfig())
    with pytest.raises(RuntimeError):
        await fetcher.fetch(unit_for("http://example.com/page-one"))


@pytest.mark.asyncio
async def test_connector_limits_follow_config():
    config = CrawlerConfig(max_connections=7, max_host_connections=2)
    async with WebFetcher(config) as fetcher:
        assert fetcher.session.connector.limit == 7
        assert fetcher.session.connector.limit_per_host == 2
    assert fetcher.session is None
