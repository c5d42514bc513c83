import logging
import os

logger = logging.getLogger(__name__)


def _parse_positive_int(raw: str, default: int, name: str) -> int:
    """Parse a positive integer setting, falling back to *default* with a warning."""
    raw = raw.strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s: ignoring %r -- expected an integer", name, raw)
        return default
    if value <= 0:
        logger.warning("%s: ignoring %r -- must be positive", name, raw)
        return default
    return value


# Upper bound on flush passes before an update loop is reported as recursive.
MAX_FLUSH_PASSES = 100


def max_flush_passes() -> int:
    """Flush pass limit, overridable with ``VDOM_TESTING_MAX_FLUSH_PASSES``."""
    return _parse_positive_int(
        os.environ.get("VDOM_TESTING_MAX_FLUSH_PASSES", ""), MAX_FLUSH_PASSES, "VDOM_TESTING_MAX_FLUSH_PASSES"
    )


EVENT_PROP_PREFIX = "on_"

# Props that never become DOM attributes.
RESERVED_PROPS = {"key", "ref", "children"}

PROP_ALIASES = {
    "class_": "class",
    "class_name": "class",
    "html_for": "for",
}
