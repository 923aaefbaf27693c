"""Reference discovery through search-engine results."""

from refinery.core.search.discovery import SearchDiscovery, parse_search_results

__all__ = ["SearchDiscovery", "parse_search_results"]
