"""
BPOM product registration search (https://cekbpom.pom.go.id/).

Exports:
- ResultRow, ResultEnvelope, SearchField: result and field types
- SearchOrchestrator: runs the searches of one session and merges the rows
- search_products: high-level function that runs a search and writes log/dump/Excel outputs
"""

__version__ = "0.1.0"

from .types import ResultEnvelope, ResultRow, SearchField
from .crawler import SearchOrchestrator
from .cli import search_products

__all__ = ["ResultEnvelope", "ResultRow", "SearchField", "SearchOrchestrator", "search_products", "__version__"]
