"""Personal vocabulary trainer: categorized word store, quiz engine and LLM enrichment."""

__version__ = "0.3.0"
