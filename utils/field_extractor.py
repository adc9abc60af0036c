"""
Field Extractor
===============

Pulls numeric fields out of provider JSON whose shape varies between
providers, endpoints and even calls. Callers describe where a value may live
as an ordered list of candidate paths; the extractor walks them in order.

A path is a sequence of dict keys (str) and list indices (int), e.g.
``["quoteSummary", "result", 0, "financialData", "currentRatio"]``.

Yahoo-style wrappers ``{"raw": 1.8, "fmt": "1.80"}`` are unwrapped
automatically, so paths can stop at the field name.

Zero vs. absent
---------------
A literal 0 is reported as state ZERO rather than MISSING. The walk keeps
looking for a non-zero value on later paths and only falls back to the zero
when nothing else is found, so ``extract()`` returns 0.0 for a real zero and
None for "not found".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

from utils.numeric_utils import parse_number

PathElement = Union[str, int]
Path = Sequence[PathElement]

_MISSING = object()


class ExtractionState(Enum):
    FOUND = "found"
    ZERO = "zero"
    MISSING = "missing"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class ExtractionResult:
    state: ExtractionState
    value: Optional[float] = None
    path: Optional[tuple] = None

    @property
    def number(self) -> Optional[float]:
        """The numeric value: set for FOUND and ZERO, None otherwise."""
        if self.state in (ExtractionState.FOUND, ExtractionState.ZERO):
            return self.value
        return None


def resolve_path(payload: Any, path: Path) -> Any:
    """
    Walk one path through nested dicts and lists.

    Returns the sentinel ``_MISSING`` when any step is absent or the wrong
    type. This is the only place that traverses provider payloads without
    a schema.
    """
    node = payload
    for step in path:
        if isinstance(step, int) and not isinstance(step, bool):
            if not isinstance(node, (list, tuple)) or not -len(node) <= step < len(node):
                return _MISSING
            node = node[step]
        else:
            if not isinstance(node, dict) or step not in node:
                return _MISSING
            node = node[step]
    return node


def _unwrap(node: Any) -> Any:
    # {"raw": x, "fmt": "..."} -> x ; {} from Yahoo means "no value"
    if isinstance(node, dict):
        if 'raw' in node:
            return node['raw']
        return _MISSING
    return node


def extract_field(payload: Any, candidate_paths: Sequence[Path]) -> ExtractionResult:
    """
    Walk candidate paths in order and report the first usable number.

    Args:
        payload: Raw provider JSON (dict/list) or None
        candidate_paths: Ordered list of paths to try

    Returns:
        ExtractionResult with FOUND for the first non-zero number, ZERO when
        only zeros were found, UNPARSEABLE when something was present but
        not numeric, MISSING otherwise.
    """
    zero_hit: Optional[ExtractionResult] = None
    unparseable_hit: Optional[ExtractionResult] = None

    if payload is None:
        return ExtractionResult(ExtractionState.MISSING)

    for path in candidate_paths:
        node = _unwrap(resolve_path(payload, path))
        if node is _MISSING or node is None:
            continue

        number = parse_number(node)
        if number is None:
            if unparseable_hit is None:
                unparseable_hit = ExtractionResult(ExtractionState.UNPARSEABLE, path=tuple(path))
            continue

        if number == 0:
            if zero_hit is None:
                zero_hit = ExtractionResult(ExtractionState.ZERO, 0.0, tuple(path))
            continue

        return ExtractionResult(ExtractionState.FOUND, number, tuple(path))

    if zero_hit is not None:
        return zero_hit
    if unparseable_hit is not None:
        return unparseable_hit
    return ExtractionResult(ExtractionState.MISSING)


def extract(payload: Any, candidate_paths: Sequence[Path]) -> Optional[float]:
    """
    Extract a number from the first candidate path that yields one.

    Examples:
        >>> extract({"a": {"b": "12.5%"}}, [["a", "b"]])
        12.5
        >>> extract({"a": 0}, [["a"]])
        0.0
        >>> extract({}, [["missing"]]) is None
        True
    """
    return extract_field(payload, candidate_paths).number


def extract_text(payload: Any, candidate_paths: Sequence[Path]) -> Optional[str]:
    """Return the first non-empty string found along the candidate paths."""
    if payload is None:
        return None
    for path in candidate_paths:
        node = resolve_path(payload, path)
        if isinstance(node, dict):
            node = node.get('fmt') or node.get('longFmt')
        if isinstance(node, str) and node.strip() and node.strip().lower() not in ("n/a", "none", "-"):
            return node.strip()
    return None
