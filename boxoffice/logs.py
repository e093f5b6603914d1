"""
Structured logging.

Entries go to Cloud Logging as structured payloads
({"severity": ..., "message": ..., **fields}) and are echoed to stdout so
they show up in function logs and script output.
"""

import google.cloud.logging


def make_cloud_logger(project_id: str, name: str):
    """Create a Cloud Logging logger for the given log name."""
    logging_client = google.cloud.logging.Client(project=project_id)
    return logging_client.logger(name)


class EventLog:
    """Thin wrapper that writes severity-tagged structured entries."""

    def __init__(self, cloud_logger=None, echo: bool = True):
        self.cloud_logger = cloud_logger
        self.echo = echo

    def _write(self, severity: str, message: str, **kwargs):
        if self.cloud_logger is not None:
            self.cloud_logger.log_struct({
                "severity": severity,
                "message": message,
                **kwargs
            })
        if self.echo:
            print(f"[{severity}] {message}")

    def info(self, message: str, **kwargs):
        """Log info-level structured event."""
        self._write("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning-level structured event."""
        self._write("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error-level structured event."""
        self._write("ERROR", message, **kwargs)
