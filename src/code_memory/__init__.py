"""code-memory: multi-backend embedding and hybrid retrieval for code knowledge."""

__version__ = "0.1.0"
