"""
Kit Engine: listing acquisition and tiered product selection

Modules:
- tier_selector: filter, score and assign listings to essential/premium/luxury
- listing_search: marketplace search API client with pagination
- kit_builder: per-category orchestration and CLI
- common: config, HTTP client, rate limiting
"""

__version__ = "0.1.0"
