"""AI News Daily - feed classification and deduplication pipeline."""

__version__ = "0.1.0"
