"""Report tools. Importing this package registers every tool with `tools.registry.registry`."""

from tools.insights import breakdowns, patterns, stats, trends  # noqa: F401
from tools.journal import search  # noqa: F401
from tools.review import weekly  # noqa: F401
from tools.sync import export_csv  # noqa: F401
