"""Console and log-file presentation helpers."""

from rs_sentinel.display.logging_config import secret_redaction_filter, setup_logging

__all__ = ["secret_redaction_filter", "setup_logging"]
