"""
Decides whether a completed response is worth parsing for links.
"""

from enum import Enum
from typing import Optional


HTML_CONTENT_TYPE = 'text/html'
DEFAULT_MIN_BODY_SIZE = 100


class Verdict(Enum):
    """Outcome of classifying a completed fetch."""
    ELIGIBLE = 'eligible'
    FAILED = 'failed'
    BAD_STATUS = 'bad_status'
    NOT_HTML = 'not_html'
    TOO_SMALL = 'too_small'

    @property
    def eligible(self) -> bool:
        return self is Verdict.ELIGIBLE


def classify(status: Optional[int], content_type: Optional[str], size: int,
             min_body_size: int = DEFAULT_MIN_BODY_SIZE) -> Verdict:
    """
    Classify a response by status, declared content type and body size.

    Only a 200 with an HTML content type and a body larger than
    ``min_body_size`` bytes is eligible; small bodies are usually redirect
    stubs or error pages served with 200.
    """
    if status is None:
        return Verdict.FAILED
    if status != 200:
        return Verdict.BAD_STATUS
    if not content_type or HTML_CONTENT_TYPE not in content_type:
        return Verdict.NOT_HTML
    if size <= min_body_size:
        return Verdict.TOO_SMALL
    return Verdict.ELIGIBLE


def classify_unit(unit, min_body_size: int = DEFAULT_MIN_BODY_SIZE) -> Verdict:
    """Classify a processed FetchUnit."""
    if unit.failed:
        return Verdict.FAILED
    return classify(unit.status, unit.content_type, unit.buffer.size, min_body_size)
