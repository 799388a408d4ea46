"""greenrag — knowledge retrieval engine for landscaping quotes and reports."""

__version__ = "0.1.0"
