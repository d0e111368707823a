"""
Link extraction from fetched HTML pages.
"""

import logging
from typing import Iterator, Union
from urllib.parse import urljoin
from bs4 import BeautifulSoup


class LinkExtractor:
    """
    Yields the ``href`` of every ``<a>`` element in an HTML document.

    Parsing goes through BeautifulSoup's lxml tree builder, which recovers
    from malformed markup and never loads external DTDs or entities. The
    result is a generator: nothing is parsed until the first link is
    requested, and a second pass requires calling :meth:`extract` again.
    """

    def __init__(self, follow_relative_links: bool = False, features: str = 'lxml'):
        self.follow_relative_links = follow_relative_links
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract(self, html_content: Union[bytes, str], base_url: str) -> Iterator[str]:
        """
        Extract anchor targets from a page.

        Args:
            html_content: Raw response body
            base_url: URL the page was served from

        Yields:
            href values in document order, resolved against ``base_url``
            when relative link following is enabled
        """
        try:
            soup = BeautifulSoup(html_content, self.features)
        except Exception as e:
            self.logger.warning(f"Error parsing content from {base_url}: {e}")
            return

        for anchor in soup.find_all('a', href=True):
            href = anchor['href']
            if self.follow_relative_links:
                href = urljoin(base_url, href)
            yield href
