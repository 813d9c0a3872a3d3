"""Listing Search Module — raw candidate acquisition from the marketplace."""

from .client import ListingSearchClient

__all__ = ["ListingSearchClient"]
