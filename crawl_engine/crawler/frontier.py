"""
Frontier expansion: turning a page's links into new fetch tasks.
"""

import logging
import random
from typing import Iterable, List, Optional
from dataclasses import dataclass

from .budget import BudgetState


ALLOWED_PREFIXES = ('http://', 'https://')


@dataclass(frozen=True)
class FetchTask:
    """A URL to fetch and the depth it was discovered at."""
    url: str
    depth: int
    parent_url: Optional[str] = None

    def __post_init__(self):
        if self.depth < 0:
            raise ValueError("depth must be non-negative")


class FrontierExpander:
    """
    Decides which links of a completed page become new FetchTasks.

    A page at depth ``d`` only expands while ``d < max_depth``, and only if
    the budget gate is open when the page is considered. Links are then
    sampled uniformly at random *with replacement*: one draw per link found
    on the page, so the same link can be admitted more than once and some
    links are never drawn. At most ``max_link_per_page + 1`` links are
    admitted per page, further limited by the remaining global headroom.
    """

    def __init__(self, max_depth: int, max_link_per_page: int = 5,
                 min_link_length: int = 20, rng: Optional[random.Random] = None):
        if max_depth < 0:
            raise ValueError("max_depth must be non-negative")
        self.max_depth = max_depth
        self.max_link_per_page = max_link_per_page
        self.min_link_length = min_link_length
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)

    def accepts_depth(self, depth: int) -> bool:
        return depth < self.max_depth

    def is_candidate(self, link: Optional[str]) -> bool:
        """Crude validity check: absolute http(s) URL of a minimum length."""
        return (bool(link) and
                len(link) >= self.min_link_length and
                link.startswith(ALLOWED_PREFIXES))

    def expand(self, links: Iterable[str], origin_url: str, depth: int,
               budget: BudgetState) -> List[FetchTask]:
        """
        Select links to admit from a page at ``depth``.

        ``links`` may be a lazy iterator; it is only consumed once both the
        depth and budget gates pass. The caller is responsible for admitting
        the returned tasks into the budget.
        """
        if not self.accepts_depth(depth):
            return []

        if not budget.allows_expansion():
            self.logger.debug(
                f"Budget closed, not expanding {origin_url} "
                f"(pending={budget.pending}, completed={budget.completed})"
            )
            return []

        limit = min(self.max_link_per_page + 1, budget.headroom())
        if limit <= 0:
            return []

        links = list(links)
        admitted: List[FetchTask] = []
        for _ in range(len(links)):
            link = links[self.rng.randrange(len(links))]
            if not self.is_candidate(link):
                continue
            admitted.append(FetchTask(url=link, depth=depth + 1, parent_url=origin_url))
            if len(admitted) >= limit:
                break

        self.logger.debug(
            f"Admitted {len(admitted)} of {len(links)} links from {origin_url} at depth {depth + 1}"
        )
        return admitted
