"""
Errors raised while wiring the logging middleware.
"""


class LoggingConfigError(Exception):
    """Invalid logging middleware configuration, raised at construction time."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)
