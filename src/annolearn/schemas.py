from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Mapping

from .errors import ConfigurationError
from .hyperplane import Hyperplane

Instance = Mapping[Hashable, float]  # feature -> value, read-only for learners


@dataclass(frozen=True)
class Example:
    instance: Instance
    label: int  # -1 or +1

    def __post_init__(self):
        if self.label not in (-1, 1):
            raise ConfigurationError(f"Binary label must be -1 or +1, got {self.label!r}")


@dataclass(frozen=True)
class ClassLabel:
    positive: bool
    confidence: float  # raw decision value

    @property
    def numeric_label(self) -> int:
        return 1 if self.positive else -1

    @property
    def name(self) -> str:
        return "POS" if self.positive else "NEG"


@dataclass(frozen=True)
class SupportVector:
    hyperplane: Hyperplane = field(compare=False)
    count: int  # consecutive correct predictions before displacement


@dataclass(frozen=True)
class Details:
    confidence: float = 1.0
