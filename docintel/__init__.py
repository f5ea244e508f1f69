"""Document intelligence service: ingestion, retrieval and AI analysis of user documents."""

__version__ = "0.1.0"
