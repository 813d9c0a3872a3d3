"""Affiliate tag rewriting for final listing links."""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

logger = logging.getLogger(__name__)

AFFILIATE_HOSTS = ("amazon.com", "amzn.to")


def is_affiliate_host(url: str) -> bool:
    """True for hosts that accept the marketplace affiliate tag."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == h or host.endswith("." + h) for h in AFFILIATE_HOSTS)


def add_affiliate_tag(url: str, tag: str) -> str:
    """Set the ``tag`` query parameter on a marketplace url.

    Other query parameters keep their order; an existing tag is replaced.
    Non-marketplace urls, empty input and unparseable urls come back
    unchanged.

    >>> add_affiliate_tag("https://www.amazon.com/dp/B0001?th=1", "kit-20")
    'https://www.amazon.com/dp/B0001?th=1&tag=kit-20'
    """
    if not url or not tag or not is_affiliate_host(url):
        return url
    try:
        parts = urlparse(url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "tag"]
        query.append(("tag", tag))
        return urlunparse(parts._replace(query=urlencode(query)))
    except ValueError:
        logger.warning("Could not add affiliate tag to url: %s", url)
        return url
