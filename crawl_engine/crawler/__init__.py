"""
Crawl engine core components.
"""

from .budget import BudgetState
from .classifier import Verdict, classify
from .fetcher import WebFetcher, FetchUnit, ResponseBuffer
from .frontier import FetchTask, FrontierExpander
from .parser import LinkExtractor
from .reactor import Reactor, CancellationToken
from .runner import CrawlRun, CrawlReport

__all__ = [
    'BudgetState', 'Verdict', 'classify',
    'WebFetcher', 'FetchUnit', 'ResponseBuffer',
    'FetchTask', 'FrontierExpander', 'LinkExtractor',
    'Reactor', 'CancellationToken',
    'CrawlRun', 'CrawlReport'
]
