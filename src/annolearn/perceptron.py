from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Hashable, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .hyperplane import Hyperplane
from .kernel import PolyKernel
from .schemas import ClassLabel, Example, SupportVector

logger = logging.getLogger(__name__)


class Mode(Enum):
    VOTED = "voted"
    AVERAGED = "averaged"

    @classmethod
    def parse(cls, value: Union["Mode", str]) -> "Mode":
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                f"Mode ({value}) is not allowed. Please use either 'voted' or 'averaged'."
            ) from None


def _check_max_vectors(max_vectors: int) -> None:
    if max_vectors < 1:
        raise ConfigurationError(f"max_vectors must be positive, got {max_vectors}")


@dataclass
class KernelVotedPerceptron:
    """
    Online voted perceptron with an optional polynomial kernel.

    Follows Freund & Schapire, "Large Margin Classification Using the
    Perceptron Algorithm" (1998). Every mistake stores a copy of the live
    hyperplane together with the number of examples it survived; the
    classifier then votes or averages over the stored hyperplanes.

    Parameters
    ----------
    degree:
        Polynomial kernel degree. 0 disables the kernel, which makes
        ``mode="averaged"`` the plain unnormalized averaged perceptron.
    mode:
        ``"voted"`` or ``"averaged"`` (case-insensitive), or a :class:`Mode`.
    gamma, coef0:
        Kernel parameters, ``K(h, x) = (coef0 + gamma * <h, x>) ** degree``.
    speedup:
        When True, classifiers only use the last ``max_vectors`` stored
        hyperplanes. Results are approximate.
    """
    degree: int = 3
    mode: Union[Mode, str] = Mode.VOTED
    gamma: float = 10.0
    coef0: float = 1.0
    speedup: bool = False
    max_vectors: int = 300
    verbose: bool = False

    def __post_init__(self):
        self.mode = Mode.parse(self.mode)
        _check_max_vectors(self.max_vectors)
        self.kernel  # validates degree
        self.reset()

    @property
    def kernel(self) -> PolyKernel:
        """Kernel built from the current degree, gamma and coef0."""
        return PolyKernel(degree=self.degree, gamma=self.gamma, coef0=self.coef0)

    def set_kernel(self, degree: int) -> None:
        PolyKernel(degree=degree, gamma=self.gamma, coef0=self.coef0)
        self.degree = degree

    def set_poly_kernel_params(self, coef0: float, gamma: float) -> None:
        self.coef0 = coef0
        self.gamma = gamma

    def set_mode_voted(self) -> None:
        self.mode = Mode.VOTED

    def set_mode_averaged(self) -> None:
        self.mode = Mode.AVERAGED

    def set_speedup(self, max_vectors: int | None = None) -> None:
        if max_vectors is not None:
            _check_max_vectors(max_vectors)
            self.max_vectors = max_vectors
        self.speedup = True

    def reset(self) -> None:
        self._current = Hyperplane()
        self._run = 0
        self._history = []
        self._n_examples = 0

    @property
    def current(self) -> Hyperplane:
        return self._current

    @property
    def run(self) -> int:
        return self._run

    @property
    def history(self) -> Tuple[SupportVector, ...]:
        return tuple(self._history)

    @property
    def n_examples(self) -> int:
        return self._n_examples

    def add_example(self, example: Example) -> None:
        y = example.label
        if self.kernel(self._current, example.instance) * y <= 0:
            # mistake: the live hypothesis retires with its survival count
            self._history.append(SupportVector(self._current.copy(), self._run))
            self._current.increment(example.instance, y)
            self._run = 1
        else:
            self._run += 1
        self._n_examples += 1

    def train(self, examples: Iterable[Example]) -> "KernelVotedPerceptron":
        for ex in examples:
            self.add_example(ex)
        if self.verbose:
            print(f"[KernelVotedPerceptron] Trained on {self._n_examples} examples, "
                  f"{len(self._history)} mistakes")
        return self

    def get_classifier(self) -> "KVPClassifier":
        # The live hyperplane is not flushed into the history here; it only
        # enters the history on its next mistake.
        support = tuple(SupportVector(sv.hyperplane.copy(), sv.count) for sv in self._history)
        kernel = self.kernel
        clf = KVPClassifier(
            support=support,
            mode=self.mode,
            kernel=kernel,
            speedup=self.speedup,
            max_vectors=self.max_vectors,
        )
        if self.verbose:
            print(f"[KernelVotedPerceptron] number of support vectors = {len(support)} "
                  f"mode={clf.mode.value} degree={kernel.degree}")
        logger.debug("Froze classifier with %d support vectors", len(support))
        return clf

    def __str__(self) -> str:
        return "Kernel Voted Perceptron"


@dataclass(frozen=True)
class KVPClassifier:
    support: Tuple[SupportVector, ...]
    mode: Union[Mode, str] = Mode.VOTED
    kernel: PolyKernel = field(default_factory=PolyKernel)
    speedup: bool = False
    max_vectors: int = 300

    def __post_init__(self):
        object.__setattr__(self, "mode", Mode.parse(self.mode))
        object.__setattr__(self, "support", tuple(self.support))
        _check_max_vectors(self.max_vectors)

    @property
    def num_support_vectors(self) -> int:
        return len(self.support)

    def _active(self) -> Tuple[SupportVector, ...]:
        if self.speedup:
            start = max(0, len(self.support) - self.max_vectors)
            return self.support[start:]
        return self.support

    def _kernel_scores(self, instance: Mapping[Hashable, float]) -> Tuple[np.ndarray, np.ndarray]:
        active = self._active()
        k = np.array([self.kernel(sv.hyperplane, instance) for sv in active], dtype=float)
        c = np.array([sv.count for sv in active], dtype=float)
        return k, c

    def decide(self, instance: Mapping[Hashable, float]) -> float:
        k, c = self._kernel_scores(instance)
        if len(k) == 0:
            return 0.0
        if self.mode is Mode.VOTED:
            # sign(0) votes negative
            return float(np.dot(c, np.where(k > 0, 1.0, -1.0)))
        return float(np.dot(c, k))

    def classification(self, instance: Mapping[Hashable, float]) -> ClassLabel:
        dec = self.decide(instance)
        return ClassLabel(positive=dec >= 0, confidence=dec)

    def decision_function(self, instances: Sequence[Mapping[Hashable, float]]) -> np.ndarray:
        return np.array([self.decide(x) for x in instances], dtype=float)

    def predict(self, instances: Sequence[Mapping[Hashable, float]]) -> np.ndarray:
        return np.where(self.decision_function(instances) >= 0, 1, -1)

    def decide_frame(self, instances: Sequence[Mapping[Hashable, float]]) -> pd.DataFrame:
        rows = []
        for i, x in enumerate(instances):
            label = self.classification(x)
            rows.append({"idx": i, "decision": label.confidence, "label": label.numeric_label})
        return pd.DataFrame(rows, columns=["idx", "decision", "label"])

    def explain(self, instance: Mapping[Hashable, float]) -> str:
        k, c = self._kernel_scores(instance)
        lines = [f"KernelVotedPerceptron classifier (mode={self.mode.value}, degree={self.kernel.degree})"]
        for i, (ki, ci) in enumerate(zip(k.tolist(), c.tolist())):
            lines.append(f"  vector {i}: count={int(ci)} kernel={ki:g}")
        label = self.classification(instance)
        lines.append(f"decision = {label.confidence:g} -> {label.name}")
        return "\n".join(lines)
