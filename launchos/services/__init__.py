"""Services for LaunchOS."""

from launchos.services.product_analysis import (
    ProductAnalyzer,
    analyze_into_draft,
    get_product_analyzer,
)

__all__ = [
    "ProductAnalyzer",
    "analyze_into_draft",
    "get_product_analyzer",
]
