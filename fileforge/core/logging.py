import logging


class PrivacyFilter(logging.Filter):
    """Drop credentials and raw file contents from structured logs."""

    BLOCKED_KEYS = {"token", "access_token", "password", "raw_content", "extracted_text"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.BLOCKED_KEYS:
            if hasattr(record, key):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    root = logging.getLogger()
    root.addFilter(PrivacyFilter())
