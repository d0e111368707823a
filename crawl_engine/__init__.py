"""
Crawl Engine

A bounded, budgeted web crawler driven by a single asyncio run loop.
"""

__version__ = "1.0.0"
__description__ = "A budgeted recursive web crawler built around a single reactor loop"
