from __future__ import annotations

from typing import Optional, Tuple

from .perceptron import KVPClassifier


def plot_support_counts(
    classifier: KVPClassifier,
    *,
    title: str = "Support vector survival counts",
    subtitle: Optional[str] = None,
    xlabel: str = "Support vector (training order)",
    ylabel: str = "Count",
    figure_size: Tuple[float, float] = (8.0, 4.5),
    bar_color: str = "#2E6F9E",
    active_color: str = "#D98C2B",
    save_path: Optional[str] = None,
    show: bool = False,
):
    """Bar chart of the survival count of each stored hyperplane.

    Parameters
    ----------
    classifier:
        Classifier from :meth:`KernelVotedPerceptron.get_classifier`.
    title, subtitle:
        Title text displayed at the top of the chart.
    bar_color, active_color:
        Colors for all vectors, and for those used at inference when the
        classifier runs with ``speedup``.
    save_path:
        When provided, save the plot to this path.
    show:
        Whether to display the plot interactively.

    Returns
    -------
    (fig, ax)
        Matplotlib figure and axes.
    """
    import matplotlib.pyplot as plt

    counts = [sv.count for sv in classifier.support]
    n = len(counts)
    start = max(0, n - classifier.max_vectors) if classifier.speedup else 0
    colors = [active_color if classifier.speedup and i >= start else bar_color for i in range(n)]

    fig, ax = plt.subplots(figsize=figure_size)
    ax.bar(range(n), counts, color=colors, width=1.0)

    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(title, loc="left", fontweight="bold")

    if subtitle:
        ax.text(
            0.0,
            1.02,
            subtitle,
            transform=ax.transAxes,
            ha="left",
            va="bottom",
            fontsize=10,
            color="#4D4D4D",
        )

    ax.grid(axis="y", alpha=0.25, linestyle="-")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, bbox_inches="tight")
    if show:
        plt.show()

    return fig, ax
