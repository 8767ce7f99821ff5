"""
Run k-means clustering and model-selection diagnostics from CLI.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from app.config import get_clustering_settings
from clustering.dataset import read_csv_records
from clustering.errors import ClusteringError, InvalidInputError
from clustering.kmeans import KMeansEngine
from clustering.orchestrator import ClusteringOrchestrator


def _parse_floats(raw: str) -> list[float]:
    try:
        return [float(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected comma-separated numbers, got {raw!r}") from exc


def _parse_names(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--csv", dest="csv_path", required=True, help="Headered CSV dataset.")
    common.add_argument(
        "--label-column",
        dest="label_column",
        default=None,
        help="Column holding row labels; excluded from features.",
    )
    common.add_argument(
        "--features",
        dest="features",
        type=_parse_names,
        default=None,
        help="Comma-separated feature columns (default: all but the label column).",
    )
    common.add_argument("--scale", action="store_true", help="Standard-scale features first.")
    common.add_argument("--seed", type=int, default=None, help="Random seed for centroid sampling.")
    common.add_argument(
        "--max-iterations",
        dest="max_iterations",
        type=int,
        default=None,
        help="Optional safety cap on iterations (default: unbounded).",
    )
    common.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Convergence tolerance on the summed centroid shift (default: exact).",
    )
    common.add_argument("--verbose", action="store_true", help="Log at INFO level.")

    parser = argparse.ArgumentParser(description="k-means clustering with elbow and silhouette diagnostics.")
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("cluster", parents=[common], help="Cluster and label the dataset.")
    run.add_argument("--k", dest="k", type=int, required=True, help="Number of clusters.")
    run.add_argument(
        "--query",
        type=_parse_floats,
        default=None,
        help="Comma-separated point to classify against the converged centroids.",
    )

    elbow = commands.add_parser("elbow", parents=[common], help="Error sums for k = 1..max-k.")
    elbow.add_argument("--max-k", dest="max_k", type=int, required=True, help="Largest k to evaluate.")

    sil = commands.add_parser("silhouette", parents=[common], help="Mean silhouette coefficient.")
    sil.add_argument("--k", dest="k", type=int, required=True, help="Number of clusters.")

    return parser


def _build_orchestrator(args: argparse.Namespace) -> ClusteringOrchestrator:
    overrides = {}
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations if args.max_iterations > 0 else None
    if args.tolerance is not None:
        overrides["convergence_tolerance"] = max(0.0, args.tolerance)

    settings = dataclasses.replace(get_clustering_settings(), **overrides)
    return ClusteringOrchestrator(engine=KMeansEngine(settings=settings), settings=settings)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        orchestrator = _build_orchestrator(args)
        records = read_csv_records(args.csv_path)
        if args.command == "cluster":
            payload = orchestrator.run_clustering(
                records,
                args.k,
                feature_keys=args.features,
                label_key=args.label_column,
                query=args.query,
                scale=args.scale,
            )
        elif args.command == "elbow":
            payload = orchestrator.run_elbow(
                records,
                args.max_k,
                feature_keys=args.features,
                label_key=args.label_column,
                scale=args.scale,
            )
        else:
            payload = orchestrator.run_silhouette(
                records,
                args.k,
                feature_keys=args.features,
                label_key=args.label_column,
                scale=args.scale,
            )
    except InvalidInputError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 2
    except (ClusteringError, FileNotFoundError) as exc:
        print(json.dumps({"message": str(exc), "errors": []}, indent=2), file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
