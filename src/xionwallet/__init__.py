"""XION wallet service: key management, contract queries and signed execution."""

__version__ = "0.1.0"
