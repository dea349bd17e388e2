from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import AnnolearnError
from .oplog import ClosurePolicy, TextLabelsLoader
from .perceptron import KernelVotedPerceptron
from .schemas import Example
from .serialize import markup_document_span, print_types_as_ops, print_types_as_strings
from .textbase import TextBase


def _read_lines(input_path: str, encoding: str = "utf-8") -> List[str]:
    if input_path == "-":
        return sys.stdin.read().splitlines()
    return Path(input_path).read_text(encoding=encoding).splitlines()


def _write_text(output_path: str, content: str) -> None:
    if output_path == "-":
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
        return
    Path(output_path).write_text(content, encoding="utf-8")


def _df_to_json_records(df: pd.DataFrame) -> str:
    return json.dumps(df.to_dict(orient="records"), ensure_ascii=False)


def _df_to_jsonl(df: pd.DataFrame) -> str:
    lines = [json.dumps(d, ensure_ascii=False) for d in df.to_dict(orient="records")]
    return "\n".join(lines) + "\n"


def _read_examples(input_path: str, encoding: str = "utf-8") -> Tuple[List[Dict[str, float]], List[Optional[int]]]:
    """
    Read JSONL rows of the form ``{"features": {"f1": 1.0}, "label": 1}``.

    The label is optional for rows that are only scored.
    """
    instances: List[Dict[str, float]] = []
    labels: List[Optional[int]] = []
    for i, line in enumerate(_read_lines(input_path, encoding=encoding), start=1):
        if not line.strip():
            continue
        try:
            row = json.loads(line)
            features = {str(k): float(v) for k, v in row["features"].items()}
        except (ValueError, KeyError, AttributeError) as e:
            raise ValueError(f"{input_path}:{i}: bad example row ({e})") from e
        label = row.get("label")
        instances.append(features)
        labels.append(None if label is None else (1 if float(label) > 0 else -1))
    return instances, labels


def cmd_train(args: argparse.Namespace) -> int:
    instances, labels = _read_examples(args.input, encoding=args.encoding)
    examples = [Example(x, y) for x, y in zip(instances, labels) if y is not None]
    if not examples:
        raise ValueError("No labeled examples to train on.")

    learner = KernelVotedPerceptron(
        degree=args.degree,
        mode=args.mode,
        gamma=args.gamma,
        coef0=args.coef0,
        speedup=args.speedup,
        max_vectors=args.max_vectors,
        verbose=args.verbose,
    )
    for _ in range(args.epochs):
        learner.train(examples)
    clf = learner.get_classifier()

    if args.test is not None:
        instances, labels = _read_examples(args.test, encoding=args.encoding)
    df = clf.decide_frame(instances)
    if any(y is not None for y in labels):
        df["gold"] = labels

    fmt = args.format.lower()
    if fmt == "csv":
        content = df.to_csv(index=False)
    elif fmt == "json":
        content = _df_to_json_records(df)
    elif fmt == "jsonl":
        content = _df_to_jsonl(df)
    else:
        raise ValueError(f"Unsupported format: {args.format}")

    _write_text(args.output, content)

    if args.plot is not None:
        try:
            from .plot import plot_support_counts
            import matplotlib  # noqa: F401
        except ImportError as e:
            raise ImportError("Plotting requires matplotlib (pip install annolearn[plot]).") from e
        plot_support_counts(
            clf,
            subtitle=f"mode={clf.mode.value} degree={clf.kernel.degree}",
            save_path=None if args.plot == "-" else args.plot,
            show=args.plot == "-",
        )
    return 0


def _load_labels(args: argparse.Namespace):
    textbase = TextBase.from_directory(args.docs, pattern=args.doc_pattern, encoding=args.encoding)
    loader = TextLabelsLoader(closure_policy=args.closure, verbose=args.verbose)
    return loader.load_ops(args.ops, textbase, encoding=args.encoding)


def cmd_ops(args: argparse.Namespace) -> int:
    labels = _load_labels(args)
    _write_text(args.output, print_types_as_ops(labels))
    return 0


def cmd_strings(args: argparse.Namespace) -> int:
    labels = _load_labels(args)
    _write_text(args.output, print_types_as_strings(labels, include_offsets=args.offsets))
    return 0


def cmd_markup(args: argparse.Namespace) -> int:
    labels = _load_labels(args)
    _write_text(args.output, markup_document_span(labels, args.doc))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="annolearn",
                                description="Kernel voted perceptron and span-annotation operation logs.")
    p.add_argument("-v", "--verbose", action="store_true", help="Print progress and INFO logging.")
    sub = p.add_subparsers(dest="command", required=True)

    def add_io(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("-o", "--output", default="-", help="Output path, or '-' for stdout. (default: '-')")
        sp.add_argument("--encoding", default="utf-8", help="Input file encoding. (default: utf-8)")

    sp_train = sub.add_parser("train", help="Train a kernel voted perceptron on JSONL examples and score instances.")
    sp_train.add_argument("input", help="Training JSONL ({\"features\": {...}, \"label\": 1}), or '-' for stdin.")
    add_io(sp_train)
    sp_train.add_argument("--test", default=None, help="JSONL instances to score (default: the training data).")
    sp_train.add_argument("--format", choices=["csv", "json", "jsonl"], default="csv", help="Output format.")
    sp_train.add_argument("--degree", type=int, default=3, help="Polynomial kernel degree, 0 for none (default: 3).")
    sp_train.add_argument("--mode", choices=["voted", "averaged"], default="voted",
                          help="Aggregation over stored hyperplanes (default: voted).")
    sp_train.add_argument("--gamma", type=float, default=10.0, help="Kernel gamma (default: 10).")
    sp_train.add_argument("--coef0", type=float, default=1.0, help="Kernel coef0 (default: 1).")
    sp_train.add_argument("--speedup", action="store_true", help="Only use the last --max-vectors at inference.")
    sp_train.add_argument("--max-vectors", type=int, default=300, help="Vectors kept with --speedup (default: 300).")
    sp_train.add_argument("--epochs", type=int, default=1, help="Passes over the training data (default: 1).")
    sp_train.add_argument("--plot", default=None,
                          help="Plot support counts to a file or '-' to display interactively (requires matplotlib).")
    sp_train.set_defaults(func=cmd_train)

    def add_labels(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("docs", help="Directory holding one text file per document (id = file stem).")
        sp.add_argument("ops", help="Operation log to replay.")
        add_io(sp)
        sp.add_argument("--doc-pattern", default="*.txt", help="Glob for document files (default: *.txt).")
        sp.add_argument("--closure", choices=[c.value for c in ClosurePolicy],
                        default=ClosurePolicy.CLOSE_BY_OPERATION.value,
                        help="Initial closure policy (default: CLOSE_BY_OPERATION).")

    sp_ops = sub.add_parser("ops", help="Replay an operation log and write it back out normalized.")
    add_labels(sp_ops)
    sp_ops.set_defaults(func=cmd_ops)

    sp_strings = sub.add_parser("strings", help="Write each labeled span as 'type<TAB>text'.")
    add_labels(sp_strings)
    sp_strings.add_argument("--offsets", action="store_true", help="Append :docId:lo:hi to the type.")
    sp_strings.set_defaults(func=cmd_strings)

    sp_markup = sub.add_parser("markup", help="Write one document as XML markup.")
    add_labels(sp_markup)
    sp_markup.add_argument("--doc", required=True, help="Document id to mark up.")
    sp_markup.set_defaults(func=cmd_markup)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        return int(args.func(args))
    except BrokenPipeError:
        return 0
    except (AnnolearnError, ValueError, KeyError, OSError) as e:
        print(f"annolearn: error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
