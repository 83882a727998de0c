"""CLI output formatters."""

from domainscope.cli.formatters.json_fmt import format_json
from domainscope.cli.formatters.table import format_result, format_view

__all__ = ["format_json", "format_result", "format_view"]
