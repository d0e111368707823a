"""
Result storage for the crawl engine.
"""

from .sink import OutputSink, OutputRecord, SinkError

__all__ = ['OutputSink', 'OutputRecord', 'SinkError']
