"""
Field mapping rules - how a log record becomes a store document.

A FieldSpec is validated once when the sink is configured. Per-record work
in materialize() only dispatches on the already-validated kind.

Record requirements:
    - timestamp: ``time_millis`` attribute, else ``created`` (seconds) as on
      logging.LogRecord
    - end of batch: truthy ``end_of_batch`` attribute, e.g. set through
      ``logger.info(..., extra={"end_of_batch": True})``
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from docsink.errors import ConfigError

logger = logging.getLogger(__name__)

Document = List[Tuple[str, Any]]


class FieldKind(Enum):
    """How a field value is derived."""
    LITERAL = "literal"
    TIMESTAMP = "timestamp"
    PATTERN = "pattern"


class PatternFormatter:
    """
    Renders a logging-style pattern against a record.

    Unlike logging.Formatter.format(), exception and stack text are never
    appended to the rendered value.
    """

    def __init__(self, pattern: str, style: str = "%", datefmt: Optional[str] = None):
        try:
            self._formatter = logging.Formatter(pattern, datefmt=datefmt, style=style)
        except (ValueError, KeyError) as e:
            raise ConfigError(f"Invalid field pattern {pattern!r}: {e}") from e
        self.pattern = pattern

    def render(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        if self._formatter.usesTime():
            record.asctime = self._formatter.formatTime(record, self._formatter.datefmt)
        return self._formatter.formatMessage(record)

    def __repr__(self) -> str:
        return f"PatternFormatter({self.pattern!r})"


@dataclass(frozen=True)
class FieldSpec:
    """
    A validated rule for one document field.

    Attributes:
        name: Field name in the destination document
        kind: Which of literal / timestamp / pattern applies
        literal: Verbatim value (LITERAL only)
        formatter: Object with render(record) -> str (PATTERN only)
    """
    name: str
    kind: FieldKind
    literal: Optional[str] = None
    formatter: Any = None

    def __str__(self) -> str:
        if self.kind == FieldKind.LITERAL:
            return f"{{ name={self.name}, literal={self.literal} }}"
        if self.kind == FieldKind.TIMESTAMP:
            return f"{{ name={self.name}, timestamp=true }}"
        return f"{{ name={self.name}, pattern={getattr(self.formatter, 'pattern', self.formatter)} }}"


def create_field_spec(
    name: str,
    pattern: Optional[str] = None,
    literal: Optional[str] = None,
    is_timestamp: bool = False,
    formatter_factory: Callable[[str], Any] = PatternFormatter,
) -> FieldSpec:
    """
    Validate one field mapping and build its FieldSpec.

    Args:
        name: Field name (non-empty)
        pattern: Pattern rendered against each record
        literal: Value inserted as-is, without quoting or escaping
        is_timestamp: Insert the record timestamp in milliseconds
        formatter_factory: Builds the formatter for a pattern

    Raises:
        ConfigError: Empty name, or not exactly one of pattern / literal /
            is_timestamp given
    """
    if not name:
        raise ConfigError("The field config is not valid because it does not contain a field name.")

    has_pattern = bool(pattern)
    has_literal = bool(literal)
    has_timestamp = bool(is_timestamp)

    chosen = sum([has_pattern, has_literal, has_timestamp])
    if chosen > 1:
        raise ConfigError(
            f"Field {name!r}: the pattern, literal, and is_timestamp attributes are mutually exclusive."
        )
    if chosen == 0:
        raise ConfigError(
            f"Field {name!r}: to configure a field you must specify a pattern or literal "
            f"or set is_timestamp to true."
        )

    if has_timestamp:
        return FieldSpec(name=name, kind=FieldKind.TIMESTAMP)
    if has_literal:
        return FieldSpec(name=name, kind=FieldKind.LITERAL, literal=literal)
    return FieldSpec(name=name, kind=FieldKind.PATTERN, formatter=formatter_factory(pattern))


def event_millis(record: Any) -> int:
    """Record timestamp in milliseconds since the epoch."""
    millis = getattr(record, "time_millis", None)
    if millis is not None:
        return int(millis)
    return int(record.created * 1000)


def is_end_of_batch(record: Any) -> bool:
    return bool(getattr(record, "end_of_batch", False))


def materialize(record: Any, specs: Sequence[FieldSpec]) -> Document:
    """
    Build the document for one record.

    Produces exactly one (name, value) pair per spec, in spec order. A
    formatter that raises degrades to an empty string for that field only.
    """
    document: Document = []
    for spec in specs:
        if spec.kind == FieldKind.LITERAL:
            value: Any = spec.literal
        elif spec.kind == FieldKind.TIMESTAMP:
            value = event_millis(record)
        else:
            try:
                value = spec.formatter.render(record)
            except Exception as e:
                logger.warning(f"Failed to render field {spec.name!r}, using empty value: {e}")
                value = ""
        document.append((spec.name, value))
    return document


__all__ = [
    "Document",
    "FieldKind",
    "FieldSpec",
    "PatternFormatter",
    "create_field_spec",
    "event_millis",
    "is_end_of_batch",
    "materialize",
]
