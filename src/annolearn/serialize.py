from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import Dict, List, Optional, Tuple, Union
from xml.sax.saxutils import escape, quoteattr

from .errors import UnsupportedOperationError
from .labels import MutableTextLabels
from .textbase import Span

logger = logging.getLogger(__name__)

_XML_NAME_RE = re.compile(r"[A-Za-z_][\w.-]*")
_NEWLINE_RE = re.compile(r"\r\n|[\r\n]")


def _token_offsets(span: Span) -> Optional[Tuple[int, int]]:
    toks = span.tokens()
    if not toks:
        return None
    lo = toks[0][0]
    return lo, toks[-1][1] - lo


def print_types_as_ops(labels: MutableTextLabels) -> str:
    """
    Serialize a labeling as an operation log.

    Offsets are widened to token boundaries. Spans without tokens are
    skipped with a warning. Only whole-document closures can be written.
    """
    lines: List[str] = []
    types = labels.get_types()

    for t in types:
        for span in labels.instance_iterator(t):
            offsets = _token_offsets(span)
            if offsets is None:
                logger.warning("Can't save empty span %s of type %s", span, t)
                continue
            lo, length = offsets
            line = f"addToType {span.doc_id} {lo} {length} {t}"
            details = labels.get_details(span, t)
            if details is not None:
                line += f" {details.confidence!r}"
            lines.append(line)

    for span, prop, value in labels.property_iterator():
        offsets = _token_offsets(span)
        if offsets is None:
            logger.warning("Can't save property %s of empty span %s", prop, span)
            continue
        if not value or len(value.split()) != 1:
            raise UnsupportedOperationError(f"Property value must be a single token: {value!r}")
        lo, length = offsets
        lines.append(f"setSpanProperty {span.doc_id} {lo} {length} {prop} {value}")

    for t in types:
        for span in labels.closure_iterator(t):
            if not span.is_document():
                raise UnsupportedOperationError(f"Can't save closure of type {t} over non-document span {span}")
            lines.append(f"closeType {span.doc_id} {t}")

    return "".join(line + "\n" for line in lines)


def save_types_as_ops(labels: MutableTextLabels, path: Union[str, Path]) -> None:
    Path(path).write_text(print_types_as_ops(labels), encoding="utf-8")


def print_types_as_strings(labels: MutableTextLabels, include_offsets: bool = False) -> str:
    lines: List[str] = []
    for t in labels.get_types():
        for span in labels.instance_iterator(t):
            name = t
            if include_offsets:
                name += f":{span.doc_id}:{span.lo}:{span.hi}"
            text = _NEWLINE_RE.sub(" ", span.as_string())
            lines.append(f"{name}\t{text}")
    return "".join(line + "\n" for line in lines)


def save_types_as_strings(labels: MutableTextLabels, path: Union[str, Path], include_offsets: bool = False) -> None:
    Path(path).write_text(print_types_as_strings(labels, include_offsets=include_offsets), encoding="utf-8")


def _straddles(a: Span, b: Span) -> bool:
    overlap = a.lo < b.hi and b.lo < a.hi
    return overlap and not (a.contains(b) or b.contains(a))


def markup_document_span(labels: MutableTextLabels, doc_id: str) -> str:
    """
    Render one document as XML with its labels as elements.

    Labels are taken in order of start offset, longer first on ties. A label
    that straddles an already accepted one is dropped; nested labels nest.
    Labels sharing the same extent, and types that are not XML names, become
    ``<overlap value="A,B">``. Text is XML-escaped, so parsing the result and
    joining its text gives back the document.
    """
    doc = labels.textbase.document_span(doc_id)
    if doc is None:
        raise KeyError(f"Unknown document id: {doc_id}")

    candidates: List[Tuple[Span, str]] = []
    for t in labels.get_types():
        for span in labels.instance_iterator(t, doc_id=doc_id):
            if span.length == 0:
                logger.warning("Dropping empty span %s of type %s from markup", span, t)
                continue
            candidates.append((span, t))
    candidates.sort(key=lambda st: (st[0].lo, -st[0].length, st[1]))

    accepted: List[Span] = []
    groups: Dict[Tuple[int, int], List[str]] = {}
    for span, t in candidates:
        if any(_straddles(span, a) for a in accepted):
            logger.debug("Dropping %s label %s: straddles an accepted label", t, span)
            continue
        accepted.append(span)
        groups.setdefault((span.lo, span.hi), []).append(t)

    text = doc.as_string()
    out = ["<root>"]
    cursor = 0
    stack: List[Tuple[int, str]] = []  # (hi, closing tag)

    def close_until(pos: int) -> None:
        nonlocal cursor
        while stack and stack[-1][0] <= pos:
            hi, closing = stack.pop()
            out.append(escape(text[cursor:hi]))
            out.append(closing)
            cursor = hi

    for (lo, hi), types in sorted(groups.items(), key=lambda kv: (kv[0][0], -kv[0][1])):
        close_until(lo)
        out.append(escape(text[cursor:lo]))
        cursor = lo
        if len(types) == 1 and _XML_NAME_RE.fullmatch(types[0]):
            out.append(f"<{types[0]}>")
            stack.append((hi, f"</{types[0]}>"))
        else:
            out.append(f"<overlap value={quoteattr(','.join(sorted(types)))}>")
            stack.append((hi, "</overlap>"))
    close_until(len(text))
    out.append(escape(text[cursor:]))
    out.append("</root>")
    return "".join(out)
