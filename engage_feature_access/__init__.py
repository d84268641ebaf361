"""Feature access policy automation for Engage Copilot and AI summarization."""

__version__ = "0.1.0"
