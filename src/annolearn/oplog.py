"""
Line-oriented operation log for span annotations.

Each non-blank, non-comment line holds one whitespace-separated operation::

    setClosure CLOSE_BY_OPERATION
    addToType doc17 42 8 PERSON 0.87
    setSpanProperty doc17 0 -1 source gold
    closeType doc17 PERSON
    closeAllTypes doc17

Offsets are ``lo len`` in characters. ``0 -1`` is the whole document and
``lo -1`` runs from ``lo`` to the end of the document.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError, OpLogParseError
from .labels import MutableTextLabels
from .schemas import Details
from .textbase import Span, TextBase

logger = logging.getLogger(__name__)

MAX_WARNINGS = 10


class ClosurePolicy(Enum):
    CLOSE_ALL_TYPES = "CLOSE_ALL_TYPES"
    CLOSE_TYPES_IN_LABELED_DOCS = "CLOSE_TYPES_IN_LABELED_DOCS"
    DONT_CLOSE_TYPES = "DONT_CLOSE_TYPES"
    CLOSE_BY_OPERATION = "CLOSE_BY_OPERATION"

    @classmethod
    def parse(cls, value: Union["ClosurePolicy", str]) -> "ClosurePolicy":
        if isinstance(value, ClosurePolicy):
            return value
        try:
            return cls(str(value))
        except ValueError:
            names = ", ".join(p.value for p in cls)
            raise ConfigurationError(f"Unknown closure policy: {value} (expected one of {names})") from None


@dataclass(frozen=True)
class AddToType:
    doc_id: str
    lo: int
    length: int
    type_name: str
    confidence: Optional[float] = None


@dataclass(frozen=True)
class SetSpanProperty:
    doc_id: str
    lo: int
    length: int
    prop: str
    value: str


@dataclass(frozen=True)
class CloseType:
    doc_id: str
    type_name: str


@dataclass(frozen=True)
class CloseAllTypes:
    doc_id: str


@dataclass(frozen=True)
class SetClosure:
    policy: ClosurePolicy


Operation = Union[AddToType, SetSpanProperty, CloseType, CloseAllTypes, SetClosure]

# op name -> (min tokens, max tokens), counting the op itself
_ARITY = {
    "addToType": (5, 6),
    "setSpanProperty": (6, 6),
    "setSpanProp": (6, 6),
    "closeType": (3, 3),
    "closeAllTypes": (2, 2),
    "setClosure": (2, 2),
}


def parse_line(line: str, line_number: int = 0, filename: str = "<string>") -> Optional[Operation]:
    """Parse one log line; returns None for blank and comment lines."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    def fail(msg: str) -> OpLogParseError:
        return OpLogParseError(msg, filename=filename, line_number=line_number, line=line.rstrip("\n"))

    toks = stripped.split()
    op = toks[0]
    if op not in _ARITY:
        raise fail(f"unknown operation '{op}'")
    lo_n, hi_n = _ARITY[op]
    if len(toks) < lo_n:
        raise fail(f"missing argument for '{op}' (expected {lo_n - 1}, got {len(toks) - 1})")
    if len(toks) > hi_n:
        raise fail(f"too many arguments for '{op}' (expected at most {hi_n - 1}, got {len(toks) - 1})")

    def as_int(tok: str, what: str) -> int:
        try:
            return int(tok)
        except ValueError:
            raise fail(f"bad {what} '{tok}'") from None

    if op == "addToType":
        confidence = None
        if len(toks) == 6:
            try:
                confidence = float(toks[5])
            except ValueError:
                raise fail(f"bad confidence '{toks[5]}'") from None
        return AddToType(toks[1], as_int(toks[2], "offset"), as_int(toks[3], "length"), toks[4], confidence)
    if op in ("setSpanProperty", "setSpanProp"):
        return SetSpanProperty(toks[1], as_int(toks[2], "offset"), as_int(toks[3], "length"), toks[4], toks[5])
    if op == "closeType":
        return CloseType(toks[1], toks[2])
    if op == "closeAllTypes":
        return CloseAllTypes(toks[1])
    try:
        policy = ClosurePolicy.parse(toks[1])
    except ConfigurationError as e:
        raise ConfigurationError(f"{filename}:{line_number}: {e}") from None
    return SetClosure(policy)


def parse_ops(lines: Iterable[str], filename: str = "<string>") -> Iterator[Tuple[int, Operation]]:
    """Yield ``(line_number, operation)`` pairs, numbering lines from 1."""
    for i, line in enumerate(lines, start=1):
        if i == 1:
            line = line.lstrip("\ufeff")
        op = parse_line(line, line_number=i, filename=filename)
        if op is not None:
            yield i, op


def close_labels(
    labels: MutableTextLabels,
    policy: Union[ClosurePolicy, str],
    queued_docs: Sequence[str] = (),
) -> None:
    """
    Apply a closure policy to a labeling.

    ``queued_docs`` holds the ids collected from ``closeAllTypes``; it is only
    used by ``CLOSE_BY_OPERATION``. Applying a policy twice has the same
    effect as applying it once.
    """
    policy = ClosurePolicy.parse(policy)
    types = labels.get_types()
    tb = labels.textbase

    if policy is ClosurePolicy.CLOSE_ALL_TYPES:
        for doc in tb.document_spans():
            for t in types:
                labels.close_type_inside(t, doc)
    elif policy is ClosurePolicy.CLOSE_TYPES_IN_LABELED_DOCS:
        for t in types:
            doc_ids = {s.doc_id for s in labels.instance_iterator(t)}
            for doc_id in sorted(doc_ids):
                labels.close_type_inside(t, tb.document_span(doc_id))
    elif policy is ClosurePolicy.CLOSE_BY_OPERATION:
        for doc_id in queued_docs:
            doc = tb.document_span(doc_id)
            if doc is None:
                continue
            for t in types:
                labels.close_type_inside(t, doc)


class _Replay:
    """Mutable state of one pass over a log."""

    def __init__(self, labels: MutableTextLabels, policy: ClosurePolicy, filename: str, max_warnings: int):
        self.labels = labels
        self.policy = policy
        self.filename = filename
        self.max_warnings = max_warnings
        self.n_warnings = 0
        self.close_all_docs: List[str] = []

    def warn_unknown_doc(self, doc_id: str, line_number: int) -> None:
        self.n_warnings += 1
        if self.n_warnings < self.max_warnings:
            logger.warning("%s:%d: unknown document id '%s', operation skipped",
                           self.filename, line_number, doc_id)
        elif self.n_warnings == self.max_warnings:
            logger.warning("%s:%d: unknown document id '%s', operation skipped "
                           "(no more warnings of this sort will be given)",
                           self.filename, line_number, doc_id)

    def resolve_span(self, doc: Span, lo: int, length: int, line_number: int) -> Span:
        try:
            if length == -1:
                return doc if lo == 0 else doc.char_index_sub_span(lo, doc.length)
            return doc.char_index_sub_span(lo, lo + length)
        except IndexError as e:
            raise OpLogParseError(str(e), filename=self.filename, line_number=line_number) from None

    def apply(self, line_number: int, op: Operation) -> None:
        if isinstance(op, SetClosure):
            self.policy = op.policy
            return

        doc = self.labels.textbase.document_span(op.doc_id)
        if doc is None:
            self.warn_unknown_doc(op.doc_id, line_number)
            return

        if isinstance(op, AddToType):
            span = self.resolve_span(doc, op.lo, op.length, line_number)
            details = Details(op.confidence) if op.confidence is not None else None
            self.labels.add_to_type(span, op.type_name, details)
        elif isinstance(op, SetSpanProperty):
            span = self.resolve_span(doc, op.lo, op.length, line_number)
            self.labels.set_property(span, op.prop, op.value)
        elif isinstance(op, CloseType):
            self.labels.close_type_inside(op.type_name, doc)
        elif isinstance(op, CloseAllTypes):
            self.close_all_docs.append(op.doc_id)


@dataclass
class TextLabelsLoader:
    """
    Replays operation logs onto a :class:`MutableTextLabels`.

    ``closure_policy`` is the policy each replay starts with; a ``setClosure``
    line changes it for the rest of that replay only. Replay is not
    transactional: on error the labeling is left partially updated.
    """
    closure_policy: Union[ClosurePolicy, str] = ClosurePolicy.CLOSE_BY_OPERATION
    max_warnings: int = MAX_WARNINGS
    verbose: bool = False

    def __post_init__(self):
        self.closure_policy = ClosurePolicy.parse(self.closure_policy)
        if self.max_warnings < 1:
            raise ConfigurationError(f"max_warnings must be positive, got {self.max_warnings}")

    def import_ops(
        self,
        labels: MutableTextLabels,
        lines: Iterable[str],
        filename: str = "<string>",
    ) -> MutableTextLabels:
        replay = _Replay(labels, self.closure_policy, filename, self.max_warnings)
        n_ops = 0
        for line_number, op in parse_ops(lines, filename=filename):
            replay.apply(line_number, op)
            n_ops += 1

        close_labels(labels, replay.policy, replay.close_all_docs)
        if self.verbose:
            print(f"[TextLabelsLoader] Replayed {n_ops} operations from {filename} "
                  f"(closure={replay.policy.value}, skipped={replay.n_warnings})")
        return labels

    def load_ops(self, path: Union[str, Path], textbase: TextBase, encoding: str = "utf-8") -> MutableTextLabels:
        labels = MutableTextLabels(textbase)
        p = Path(path)
        with p.open("r", encoding=encoding) as f:
            return self.import_ops(labels, f, filename=str(p))
