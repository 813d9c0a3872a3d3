"""Kit content: presentation-only post-processing of selected listings.

- Affiliate tag rewriting for final links
- LLM-written reason-for-inclusion text
"""

from .affiliate import add_affiliate_tag, is_affiliate_host
from .models import LLMProvider, ReasonWriterConfig
from .reason_writer import ReasonWriter

__all__ = [
    "LLMProvider",
    "ReasonWriter",
    "ReasonWriterConfig",
    "add_affiliate_tag",
    "is_affiliate_host",
]
