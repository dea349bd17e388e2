from __future__ import annotations

from typing import Dict, Hashable, Iterator, List, Mapping, Tuple


class Hyperplane:
    """
    Sparse weight vector keyed by feature.

    Missing features weigh zero. Iteration is sorted by ``repr`` of the
    feature so that output and tests are reproducible.
    """

    def __init__(self, weights: Mapping[Hashable, float] | None = None):
        self._weights: Dict[Hashable, float] = dict(weights) if weights else {}

    def score(self, instance: Mapping[Hashable, float]) -> float:
        w = self._weights
        total = 0.0
        for f, v in instance.items():
            if f in w:
                total += w[f] * float(v)
        return total

    def increment(self, instance: Mapping[Hashable, float], scalar: float = 1.0) -> None:
        w = self._weights
        for f, v in instance.items():
            w[f] = w.get(f, 0.0) + scalar * float(v)

    def add(self, other: "Hyperplane") -> None:
        self.increment(other._weights)

    def copy(self) -> "Hyperplane":
        return Hyperplane(self._weights)

    def weight(self, feature: Hashable) -> float:
        return self._weights.get(feature, 0.0)

    def features(self) -> List[Hashable]:
        return sorted(self._weights, key=repr)

    def items(self) -> List[Tuple[Hashable, float]]:
        return [(f, self._weights[f]) for f in self.features()]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.features())

    def __len__(self) -> int:
        return len(self._weights)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hyperplane):
            return NotImplemented
        keys = set(self._weights) | set(other._weights)
        return all(self.weight(k) == other.weight(k) for k in keys)

    def __repr__(self) -> str:
        body = ", ".join(f"{f!r}: {v:g}" for f, v in self.items())
        return f"Hyperplane({{{body}}})"
