"""Prompts for reason-for-inclusion generation.

The reason is one short, benefit-focused line shown under each tier record.
"""

SYSTEM_PROMPT = """\
You are an expert product curator. Given a product title, its type, and an \
activity for a starter kit, provide a concise (1-2 short sentences, max 150 \
characters) reason why this product is useful for a beginner in that activity. \
Focus on the benefit. Avoid repeating the product title or type if possible. \
Output only the reason as a plain string."""


def build_reason_prompt(product_title: str, activity: str, product_type: str) -> str:
    """Build the user prompt for a single listing."""
    return (
        f'Activity: "{activity}"\n'
        f'Product Type: "{product_type}"\n'
        f'Product Title: "{product_title}"\n'
        "Reason for inclusion in a starter kit for a beginner:"
    )


def fallback_reason(activity: str, product_type: str) -> str:
    """Templated reason used when no LLM is available or the call fails."""
    return (
        f"This {product_type.lower()} is a valuable item for beginners in "
        f"{activity}, helping to get started effectively."
    )
