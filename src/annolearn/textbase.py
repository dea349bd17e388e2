from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

DEFAULT_TOKEN_PATTERN = r"\w+|[^\w\s]"


@dataclass(frozen=True)
class Document:
    doc_id: str
    text: str
    tokens: Tuple[Tuple[int, int], ...] = ()  # (lo, hi) char offsets


@dataclass(frozen=True)
class Span:
    """
    Contiguous character region ``[lo, lo + length)`` of one document.

    Spans compare and hash on ``(doc_id, lo, length)`` only.
    """
    doc_id: str
    lo: int
    length: int
    document: Document = field(compare=False, repr=False)

    @property
    def hi(self) -> int:
        return self.lo + self.length

    def char_index_sub_span(self, lo: int, hi: int) -> "Span":
        """Sub-span between ``lo`` and ``hi``, both relative to this span."""
        if lo < 0 or hi < lo or hi > self.length:
            raise IndexError(f"Sub-span [{lo}, {hi}) outside span of length {self.length}")
        return Span(self.doc_id, self.lo + lo, hi - lo, self.document)

    def as_string(self) -> str:
        return self.document.text[self.lo:self.hi]

    def tokens(self) -> List[Tuple[int, int]]:
        return [(a, b) for a, b in self.document.tokens if a >= self.lo and b <= self.hi]

    def is_document(self) -> bool:
        return self.lo == 0 and self.length == len(self.document.text)

    def contains(self, other: "Span") -> bool:
        return self.doc_id == other.doc_id and self.lo <= other.lo and other.hi <= self.hi

    def __str__(self) -> str:
        return f"[{self.doc_id}:{self.lo}:{self.hi} '{self.as_string()}']"


class TextBase:
    """
    Immutable collection of documents keyed by id.

    Each document is tokenized once with ``token_pattern``; token offsets are
    used when labels are written out at token granularity.
    """

    def __init__(self, documents: Mapping[str, str], token_pattern: str = DEFAULT_TOKEN_PATTERN):
        self.token_pattern = token_pattern
        token_re = re.compile(token_pattern)
        self._docs: Dict[str, Document] = {}
        for doc_id, text in documents.items():
            toks = tuple((m.start(), m.end()) for m in token_re.finditer(text))
            self._docs[doc_id] = Document(doc_id=doc_id, text=text, tokens=toks)

    @classmethod
    def from_directory(cls, path: str | Path, pattern: str = "*.txt", encoding: str = "utf-8",
                       token_pattern: str = DEFAULT_TOKEN_PATTERN) -> "TextBase":
        p = Path(path)
        if not p.is_dir():
            raise ValueError(f"Not a directory: {p}")
        docs = {f.stem: f.read_text(encoding=encoding) for f in sorted(p.glob(pattern))}
        return cls(docs, token_pattern=token_pattern)

    def document_span(self, doc_id: str) -> Optional[Span]:
        doc = self._docs.get(doc_id)
        if doc is None:
            return None
        return Span(doc_id, 0, len(doc.text), doc)

    def document_spans(self) -> Iterator[Span]:
        for doc_id in self._docs:
            yield self.document_span(doc_id)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._docs

    def __len__(self) -> int:
        return len(self._docs)
