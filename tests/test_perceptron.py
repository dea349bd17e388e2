import random

import pandas as pd
import pytest

from annolearn.errors import ConfigurationError
from annolearn.hyperplane import Hyperplane
from annolearn.kernel import PolyKernel
from annolearn.perceptron import KernelVotedPerceptron, KVPClassifier, Mode
from annolearn.schemas import Example, SupportVector


def _two_step_stream():
    return [Example({"f1": 1.0}, 1), Example({"f1": 1.0}, -1)]


def _random_stream(seed: int, n: int = 60):
    rng = random.Random(seed)
    out = []
    for _ in range(n):
        x = {f: rng.uniform(-1.0, 1.0) for f in ("a", "b", "c") if rng.random() < 0.8}
        out.append(Example(x, rng.choice([-1, 1])))
    return out


def test_averaged_two_step_stream():
    kvp = KernelVotedPerceptron(degree=0, mode="averaged")
    ex1, ex2 = _two_step_stream()

    kvp.add_example(ex1)
    assert len(kvp.history) == 1
    assert kvp.history[0].count == 0
    assert len(kvp.history[0].hyperplane) == 0
    assert kvp.current.weight("f1") == 1.0
    assert kvp.run == 1

    kvp.add_example(ex2)
    assert [sv.count for sv in kvp.history] == [0, 1]
    assert kvp.history[1].hyperplane == Hyperplane({"f1": 1.0})
    assert kvp.current.weight("f1") == 0.0
    assert kvp.run == 1

    label = kvp.get_classifier().classification({"f1": 1.0})
    assert label.confidence == 1.0
    assert label.positive


def test_voted_two_step_stream():
    kvp = KernelVotedPerceptron(degree=0, mode="voted").train(_two_step_stream())
    clf = kvp.get_classifier()
    assert clf.decide({"f1": 1.0}) == 1.0
    assert clf.classification({"f1": 1.0}).numeric_label == 1


@pytest.mark.parametrize("degree", [0, 2, 3])
def test_counts_plus_run_equal_examples_seen(degree):
    kvp = KernelVotedPerceptron(degree=degree, gamma=1.0)
    for i, ex in enumerate(_random_stream(seed=degree), start=1):
        kvp.add_example(ex)
        assert sum(sv.count for sv in kvp.history) + kvp.run == i
        assert kvp.n_examples == i


def test_snapshots_were_wrong_on_displacing_example():
    kvp = KernelVotedPerceptron(degree=0)
    for ex in _random_stream(seed=7):
        before = len(kvp.history)
        kvp.add_example(ex)
        if len(kvp.history) > before:
            assert kvp.kernel(kvp.history[-1].hyperplane, ex.instance) * ex.label <= 0


def test_averaged_degree_zero_matches_plain_averaged_perceptron():
    kvp = KernelVotedPerceptron(degree=0, mode=Mode.AVERAGED).train(_random_stream(seed=3))
    clf = kvp.get_classifier()
    for ex in _random_stream(seed=4, n=10):
        expected = sum(sv.count * sv.hyperplane.score(ex.instance) for sv in kvp.history)
        assert clf.decide(ex.instance) == pytest.approx(expected)


def test_classifier_isolated_from_later_training():
    kvp = KernelVotedPerceptron(degree=2, gamma=1.0, mode="averaged")
    kvp.train(_random_stream(seed=11, n=30))
    clf = kvp.get_classifier()
    probes = [ex.instance for ex in _random_stream(seed=12, n=8)]
    before = clf.decision_function(probes).tolist()
    n_support = clf.num_support_vectors

    kvp.train(_random_stream(seed=13, n=30))
    assert clf.decision_function(probes).tolist() == before
    assert clf.num_support_vectors == n_support


def test_get_classifier_does_not_flush_live_hyperplane():
    kvp = KernelVotedPerceptron(degree=0, mode="averaged")
    kvp.train([Example({"f1": 1.0}, 1)] * 3)
    assert kvp.run == 3
    clf = kvp.get_classifier()
    assert clf.num_support_vectors == 1
    # only the empty initial snapshot is stored, so everything scores 0
    assert clf.decide({"f1": 1.0}) == 0.0


def test_zero_decision_is_positive():
    clf = KVPClassifier(support=(), mode="voted")
    label = clf.classification({"f1": 1.0})
    assert label.confidence == 0.0
    assert label.positive


def test_voted_sign_of_zero_votes_negative():
    kvp = KernelVotedPerceptron(degree=0, mode="voted")
    kvp.train(_two_step_stream() + [Example({"f1": 1.0}, -1)])
    # vectors: (empty, 0), (f1:1, 1), (f1:0, 1)
    assert kvp.get_classifier().decide({"f1": 1.0}) == 0.0


def test_speedup_uses_last_vectors_only():
    stream = _two_step_stream() + [Example({"f1": 1.0}, -1)]
    kvp = KernelVotedPerceptron(degree=0, mode="voted", speedup=True, max_vectors=1).train(stream)
    label = kvp.get_classifier().classification({"f1": 1.0})
    assert label.confidence == -1.0
    assert not label.positive


def test_mode_is_case_insensitive():
    assert KernelVotedPerceptron(mode="AVERAGED").mode is Mode.AVERAGED


def test_unknown_mode_rejected_at_construction():
    with pytest.raises(ConfigurationError):
        KernelVotedPerceptron(mode="majority")
    with pytest.raises(ConfigurationError):
        KVPClassifier(support=(), mode="majority")


def test_bad_hyperparameters_rejected():
    with pytest.raises(ConfigurationError):
        KernelVotedPerceptron(degree=-2)
    with pytest.raises(ConfigurationError):
        KernelVotedPerceptron(max_vectors=0)
    kvp = KernelVotedPerceptron()
    with pytest.raises(ConfigurationError):
        kvp.set_kernel(-1)
    assert kvp.degree == 3


def test_example_label_must_be_binary():
    with pytest.raises(ConfigurationError):
        Example({"f1": 1.0}, 0)


def test_reset_clears_state():
    kvp = KernelVotedPerceptron(degree=0).train(_two_step_stream())
    kvp.reset()
    assert kvp.history == ()
    assert kvp.run == 0
    assert len(kvp.current) == 0


def test_decide_frame_and_predict():
    kvp = KernelVotedPerceptron(degree=0, mode="averaged").train(_two_step_stream())
    clf = kvp.get_classifier()
    df = clf.decide_frame([{"f1": 1.0}, {"f1": -1.0}])
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["idx", "decision", "label"]
    assert df["label"].tolist() == [1, -1]
    assert clf.predict([{"f1": 1.0}, {"f1": -1.0}]).tolist() == [1, -1]
    assert "decision = 1" in clf.explain({"f1": 1.0})


def _two_vector_classifier(degree, mode="voted"):
    support = (
        SupportVector(Hyperplane({"f1": 1.0}), 2),
        SupportVector(Hyperplane({"f1": 3.0}), 1),
    )
    return KVPClassifier(support=support, mode=mode, kernel=PolyKernel(degree=degree, gamma=1.0, coef0=-1.0))


def test_voted_with_polynomial_kernel():
    # degree 2: kernels (1-1)^2 = 0 and (3-1)^2 = 4, votes -2 and +1
    assert _two_vector_classifier(2).decide({"f1": 1.0}) == -1.0
    # degree 3 at f1=0.5: (-0.5)^3 < 0 and (0.5)^3 > 0
    assert _two_vector_classifier(3).decide({"f1": 0.5}) == -1.0
    # degree 3 at f1=2: 1 and 125, both positive
    assert _two_vector_classifier(3).decide({"f1": 2.0}) == 3.0
    assert _two_vector_classifier(3, mode="averaged").decide({"f1": 2.0}) == pytest.approx(127.0)


def test_kernel_follows_field_assignment():
    kvp = KernelVotedPerceptron(degree=1, gamma=1.0, coef0=1.0)
    kvp.coef0 = -5.0
    assert kvp.kernel.coef0 == -5.0
    # (-5 + 0) * -1 > 0, so no mistake under the new coef0
    kvp.add_example(Example({"f1": 1.0}, -1))
    assert kvp.history == ()
    assert kvp.run == 1
    assert kvp.get_classifier().kernel == PolyKernel(degree=1, gamma=1.0, coef0=-5.0)

    kvp.degree = -1
    with pytest.raises(ConfigurationError):
        kvp.add_example(Example({"f1": 1.0}, 1))
