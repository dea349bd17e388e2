from .hyperplane import Hyperplane
from .kernel import PolyKernel
from .perceptron import KernelVotedPerceptron, KVPClassifier, Mode
from .schemas import ClassLabel, Details, Example, SupportVector
from .textbase import Span, TextBase
from .labels import MutableTextLabels
from .oplog import ClosurePolicy, TextLabelsLoader, close_labels, parse_ops
from .serialize import (
    markup_document_span,
    print_types_as_ops,
    print_types_as_strings,
    save_types_as_ops,
    save_types_as_strings,
)
from .plot import plot_support_counts

__all__ = [
    "Hyperplane",
    "PolyKernel",
    "KernelVotedPerceptron",
    "KVPClassifier",
    "Mode",
    "ClassLabel",
    "Details",
    "Example",
    "SupportVector",
    "Span",
    "TextBase",
    "MutableTextLabels",
    "ClosurePolicy",
    "TextLabelsLoader",
    "close_labels",
    "parse_ops",
    "markup_document_span",
    "print_types_as_ops",
    "print_types_as_strings",
    "save_types_as_ops",
    "save_types_as_strings",
    "plot_support_counts",
]
