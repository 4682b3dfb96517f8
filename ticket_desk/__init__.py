"""Support-agent console for tickets waiting on the customer."""

__version__ = "0.1.0"
