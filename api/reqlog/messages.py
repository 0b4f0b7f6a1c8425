"""
Log message rendering.

Messages are mustache-style templates ("HTTP {{req.method}} {{req.url}}")
compiled once with Jinja2, or callables returning either a final string
or a further template.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from jinja2 import ChainableUndefined, Environment

DEFAULT_MESSAGE = "HTTP {{req.method}} {{req.url}}"
DEFAULT_ERROR_MESSAGE = "middlewareError"
EXPRESS_FORMAT = "{{req.method}} {{req.url}} {{res.status_code}} {{res.response_time}}ms"

GREY = "\x1b[90m"
GREEN = "\x1b[32m"
CYAN = "\x1b[36m"
YELLOW = "\x1b[33m"
RED = "\x1b[31m"
RESET_FG = "\x1b[39m"

COLORED_EXPRESS_FORMAT = (
    f"{GREY}{{{{req.method}}}} {{{{req.url}}}}{RESET_FG}"
    " {{res.status_code}} "
    f"{GREY}{{{{res.response_time}}}}ms{RESET_FG}"
)

_CLF_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Messages are plain text; no HTML escaping, missing paths render empty.
_env = Environment(autoescape=False, undefined=ChainableUndefined, keep_trailing_newline=True)

MessageTemplate = str | Callable[..., str]


def compile_template(template: str) -> Callable[[dict[str, Any]], str]:
    """Compile a {{ path }} template into a render(context) callable."""
    compiled = _env.from_string(template)
    return lambda context: compiled.render(**context)


def has_placeholders(text: str) -> bool:
    return "{{" in text


def status_color(status_code: int) -> str:
    if status_code >= 500:
        return RED
    if status_code >= 400:
        return YELLOW
    if status_code >= 300:
        return CYAN
    return GREEN


def colorize_status(status_code: int) -> str:
    """Wrap a status code in the ANSI color for its tier."""
    return f"{status_color(status_code)}{status_code}{RESET_FG}"


def clf_date(moment: datetime) -> str:
    """Format a datetime in common log format, e.g. 10/Oct/2000:13:55:36 +0000."""
    moment = moment.astimezone(timezone.utc) if moment.tzinfo else moment
    return (
        f"{moment.day:02d}/{_CLF_MONTHS[moment.month - 1]}/{moment.year}"
        f":{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} +0000"
    )


class MessageFormatter:
    """
    Renders the human-readable line for a log entry.

    Template strings are compiled at construction so per-request work is
    a single render.
    """

    def __init__(self, template: MessageTemplate, colorize: bool = False):
        self.template = template
        self.colorize = colorize
        self._render = None if callable(template) else compile_template(template)

    def format(self, context: dict[str, Any], request: Any = None, exc: BaseException | None = None) -> str:
        """
        Render the message.

        Args:
            context: Template context with "req", "res", "err" and "date"
            request: Object passed to a callable template
            exc: Exception passed to a callable template on the error path

        Returns:
            The rendered message
        """
        if self.colorize and context.get("res") is not None:
            context = {**context, "res": _ColoredResponse(context["res"])}

        if self._render is not None:
            return self._render(context)

        response = context.get("res")
        if isinstance(response, _ColoredResponse):
            response = response.wrapped
        message = self.template(request, response, exc) if exc is not None else self.template(request, response)
        message = "" if message is None else str(message)
        if not has_placeholders(message):
            return message
        return compile_template(message)(context)


class _ColoredResponse:
    """Read-through view of a response whose status_code renders colored."""

    def __init__(self, wrapped: Any):
        self.wrapped = wrapped

    @property
    def status_code(self) -> str:
        return colorize_status(self.wrapped.status_code)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.wrapped, name)


def build_message_formatter(
    msg: MessageTemplate | None,
    express_format: bool = False,
    colorize: bool = False,
    default: str = DEFAULT_MESSAGE,
) -> MessageFormatter:
    """Choose the template from the msg/express_format/colorize options."""
    if express_format:
        template: MessageTemplate = COLORED_EXPRESS_FORMAT if colorize else EXPRESS_FORMAT
    else:
        template = msg or default
    return MessageFormatter(template, colorize=colorize)
