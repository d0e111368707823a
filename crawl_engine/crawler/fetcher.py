"""
HTTP transport for the crawl engine: fetch units, their response buffers and
the aiohttp session that multiplexes them over a bounded connection pool.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass, field
from aiohttp import ClientSession, ClientTimeout, ClientError

from .frontier import FetchTask
from ..utils.config import CrawlerConfig


@dataclass
class ResponseBuffer:
    """Bytes delivered by the transport for one fetch, in arrival order."""
    data: bytearray = field(default_factory=bytearray)

    def write(self, chunk: bytes) -> int:
        self.data.extend(chunk)
        return len(chunk)

    @property
    def size(self) -> int:
        return len(self.data)

    def getvalue(self) -> bytes:
        return bytes(self.data)

    def release(self):
        """Drop the accumulated bytes once the unit has been processed."""
        self.data = bytearray()


class FetchUnit:
    """
    One outstanding GET for a FetchTask.

    The transport fills in ``status``, ``content_type`` and
    ``effective_url`` (after redirects) or sets ``error`` when the request
    never produced a complete response.
    """

    def __init__(self, task: FetchTask):
        self.task = task
        self.buffer = ResponseBuffer()
        self.status: Optional[int] = None
        self.content_type: Optional[str] = None
        self.effective_url: str = task.url
        self.error: Optional[str] = None
        self.fetch_time: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None

    def release(self):
        self.buffer.release()

    def __repr__(self) -> str:
        state = f"error={self.error!r}" if self.failed else f"status={self.status}"
        return f"FetchUnit({self.task.url!r}, depth={self.task.depth}, {state})"


class WebFetcher:
    """
    Fetches pages over a shared aiohttp session.

    The session's connector is the crawl's connection pool: at most
    ``max_connections`` sockets in total and ``max_host_connections`` per
    host. Requests beyond those limits wait inside the connector.
    """

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the session and its connection pool."""
        if self.session is None:
            timeout = ClientTimeout(
                total=self.config.request_timeout,
                connect=self.config.connect_timeout
            )
            headers = {'User-Agent': self.config.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.config.max_connections,
                    limit_per_host=self.config.max_host_connections,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info(
                f"WebFetcher session started (pool={self.config.max_connections}, "
                f"per_host={self.config.max_host_connections})"
            )

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, unit: FetchUnit) -> FetchUnit:
        """
        Perform the GET for ``unit``, streaming the body into its buffer.

        Transport failures are recorded on the unit rather than raised; the
        request is never retried.
        """
        if self.session is None:
            raise RuntimeError("WebFetcher.start() must be called before fetch()")

        start_time = time.time()
        self.stats['total_requests'] += 1

        try:
            async with self.session.get(
                unit.task.url,
                allow_redirects=True,
                max_redirects=self.config.max_redirects
            ) as response:
                unit.status = response.status
                unit.effective_url = str(response.url)
                unit.content_type = response.headers.get('Content-Type', '').lower() or None

                async for chunk in response.content.iter_chunked(8192):
                    unit.buffer.write(chunk)

            self.stats['successful_requests'] += 1
            self.stats['total_bytes_downloaded'] += unit.buffer.size
            self.logger.debug(f"Fetched {unit.effective_url}: {unit.status} ({unit.buffer.size} bytes)")

        except asyncio.TimeoutError:
            unit.error = "Request timeout"
        except ClientError as e:
            unit.error = f"Client error: {e}"
        except (OSError, ValueError) as e:
            # Socket-level failures and URLs the client refuses to parse
            unit.error = f"Connection error: {e}"
        finally:
            unit.fetch_time = time.time() - start_time

        if unit.failed:
            self.stats['failed_requests'] += 1
            self.logger.debug(f"Failed fetching {unit.task.url}: {unit.error}")

        return unit

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
