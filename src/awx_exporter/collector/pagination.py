"""
Walks AWX's paginated list endpoints by following the "next" link.

The walker only yields pages; it does not keep them. Whoever consumes
the iterator decides what to do with each batch of entities.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from awx_exporter.errors import PageLimitError
from awx_exporter.models import Page

log = logging.getLogger(__name__)


def walk_pages(
    client,
    start_path: str,
    parse: Callable[[bytes, Optional[str]], Page],
    max_pages: Optional[int] = None,
) -> Iterator[Page]:
    """Yield every page reachable from `start_path`.

    `client` needs build_url() and fetch(); `parse` turns a body (and the
    URL it came from) into a Page. Stops when "next" is null, empty or "/".
    Raises PageLimitError once more than `max_pages` pages would be fetched.
    """
    url = client.build_url(start_path)
    pages = 0
    entities = 0

    while url:
        if max_pages is not None and pages >= max_pages:
            raise PageLimitError(start_path, max_pages)

        body = client.fetch(url)
        page = parse(body, url)
        pages += 1
        entities += len(page.results)
        log.debug("Page %d of %s: %d entities", pages, start_path, len(page.results))

        yield page
        url = client.build_url(page.next)

    log.info("Completed %s: %d pages, %d entities", start_path, pages, entities)
