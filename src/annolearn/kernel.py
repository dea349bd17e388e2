from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Mapping

from .errors import ConfigurationError
from .hyperplane import Hyperplane


@dataclass(frozen=True)
class PolyKernel:
    """
    Polynomial kernel applied to an aggregated hyperplane:
    ``K(h, x) = (coef0 + gamma * <h, x>) ** degree``.

    Degree 0 means no kernel: the plain dot product is returned. The kernel
    is taken on the summed hyperplane rather than on each stored example,
    so it approximates the kernelized voted perceptron.
    """
    degree: int = 3
    gamma: float = 10.0
    coef0: float = 1.0

    def __post_init__(self):
        if self.degree < 0:
            raise ConfigurationError(f"Kernel degree must be >= 0, got {self.degree}")

    def __call__(self, h: Hyperplane, x: Mapping[Hashable, float]) -> float:
        score = h.score(x)
        if self.degree == 0:
            return score
        return (self.coef0 + self.gamma * score) ** self.degree
