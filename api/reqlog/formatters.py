"""
Log record formatter for access-log entries.

Produces one JSON object per line with the record's metadata merged in,
for handlers fed by LoggerBackend/QueueBackend.
"""

import json
import logging
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """JSON formatter: timestamp, level, logger, message plus record.metadata."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        metadata = getattr(record, "metadata", None)
        if isinstance(metadata, dict):
            entry.update(metadata)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
