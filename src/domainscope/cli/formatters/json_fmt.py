"""JSON formatter for CLI output."""

from typing import Any

from pydantic import BaseModel
from rich.console import Console

from domainscope.models.fetch import FetchResult


def to_dict(result: BaseModel) -> dict[str, Any]:
    """Convert a result to a JSON-safe dictionary."""
    if isinstance(result, FetchResult):
        # Bodies can be large and binary
        return result.model_dump(mode="json", exclude={"body"}) | {"size": len(result.body)}
    return result.model_dump(mode="json")


def format_json(console: Console, result: BaseModel) -> None:
    """Format and display a result as JSON."""
    if isinstance(result, FetchResult):
        console.print_json(data=to_dict(result))
    else:
        console.print_json(result.model_dump_json(indent=2))
