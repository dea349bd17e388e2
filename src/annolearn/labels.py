from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Set, Tuple

from .schemas import Details
from .textbase import Span, TextBase


class MutableTextLabels:
    """
    Span-level labeling of a :class:`TextBase`.

    Holds positive instances per type, span properties, per-annotation
    :class:`Details`, and the closure set: for each type, the document spans
    over which the labeling is exhaustive. Inside a closed document any span
    that is not a positive instance is a known negative.
    """

    def __init__(self, textbase: TextBase):
        self.textbase = textbase
        self._instances: Dict[str, Set[Span]] = {}
        self._details: Dict[Tuple[Span, str], Details] = {}
        self._properties: Dict[Tuple[Span, str], str] = {}
        self._closures: Dict[str, Set[Span]] = {}

    def _check_span(self, span: Span) -> None:
        doc = self.textbase.document_span(span.doc_id)
        if doc is None or not doc.contains(span):
            raise ValueError(f"Span {span!r} is not inside a document of the text base")

    def declare_type(self, type_name: str) -> None:
        self._instances.setdefault(type_name, set())

    def add_to_type(self, span: Span, type_name: str, details: Optional[Details] = None) -> None:
        self._check_span(span)
        self._instances.setdefault(type_name, set()).add(span)
        if details is not None:
            self._details[(span, type_name)] = details

    def has_type(self, span: Span, type_name: str) -> bool:
        return span in self._instances.get(type_name, ())

    def get_details(self, span: Span, type_name: str) -> Optional[Details]:
        return self._details.get((span, type_name))

    def get_types(self) -> List[str]:
        return sorted(set(self._instances) | set(self._closures))

    def instance_iterator(self, type_name: str, doc_id: Optional[str] = None) -> Iterator[Span]:
        spans = self._instances.get(type_name, ())
        if doc_id is not None:
            spans = [s for s in spans if s.doc_id == doc_id]
        return iter(sorted(spans, key=lambda s: (s.doc_id, s.lo, -s.length)))

    def set_property(self, span: Span, prop: str, value: str) -> None:
        self._check_span(span)
        self._properties[(span, prop)] = value

    def get_property(self, span: Span, prop: str) -> Optional[str]:
        return self._properties.get((span, prop))

    def get_span_properties(self) -> List[str]:
        return sorted({prop for _, prop in self._properties})

    def property_iterator(self) -> Iterator[Tuple[Span, str, str]]:
        items = sorted(self._properties.items(), key=lambda kv: (kv[0][0].doc_id, kv[0][0].lo, kv[0][1]))
        for (span, prop), value in items:
            yield span, prop, value

    def close_type_inside(self, type_name: str, span: Span) -> None:
        self._check_span(span)
        self._closures.setdefault(type_name, set()).add(span)

    def closure_iterator(self, type_name: str) -> Iterator[Span]:
        return iter(sorted(self._closures.get(type_name, ()), key=lambda s: (s.doc_id, s.lo)))

    def is_closed(self, type_name: str, span: Span) -> bool:
        return any(c.contains(span) for c in self._closures.get(type_name, ()))

    def is_known_negative(self, span: Span, type_name: str) -> Optional[bool]:
        """True for a confirmed negative, False for a positive, None when unknown."""
        if self.has_type(span, type_name):
            return False
        if self.is_closed(type_name, span):
            return True
        return None

    def __repr__(self) -> str:
        n = sum(len(v) for v in self._instances.values())
        return f"MutableTextLabels(types={self.get_types()}, instances={n})"
