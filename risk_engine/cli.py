"""
Command-line interface for the transaction risk engine.

Provides subcommands for exporting the synthetic training set,
training the classifier, and scoring a single transaction.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from risk_engine.classifier import ClassifierService
from risk_engine.config import DEFAULT_CLASSIFIER_CONFIG, DEFAULT_DATASET_CONFIG
from risk_engine.dataset import generate_training_frame
from risk_engine.exceptions import RiskEngineError
from risk_engine.scorer import FraudScorer
from risk_engine.store import trailing_activity
from risk_engine.transaction import CATEGORIES, Transaction, as_utc

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ["timestamp", "amount", "merchant", "category"]


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="risk-engine",
        description="Transaction fraud risk-scoring engine",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    gen_parser = subparsers.add_parser(
        "generate", help="Export the synthetic training set as CSV"
    )
    gen_parser.add_argument("--legit", type=int, default=DEFAULT_DATASET_CONFIG.n_legit)
    gen_parser.add_argument("--fraud", type=int, default=DEFAULT_DATASET_CONFIG.n_fraud)
    gen_parser.add_argument("--seed", type=int, default=DEFAULT_DATASET_CONFIG.seed)
    gen_parser.add_argument(
        "--output",
        type=str,
        default="data/training_set.csv",
        help="Output CSV path (default: data/training_set.csv)",
    )

    # --- train ---
    train_parser = subparsers.add_parser(
        "train", help="Train the classifier and print validation metrics"
    )
    _add_training_args(train_parser)

    # --- score ---
    score_parser = subparsers.add_parser("score", help="Score a single transaction")
    _add_training_args(score_parser)
    score_parser.add_argument("--amount", type=float, required=True)
    score_parser.add_argument("--merchant", type=str, required=True)
    score_parser.add_argument(
        "--category",
        type=str,
        default="Other",
        help=f"One of: {', '.join(CATEGORIES)}",
    )
    score_parser.add_argument(
        "--timestamp",
        type=str,
        default=None,
        help="ISO-8601 time of the transaction, converted to UTC (default: now)",
    )
    score_parser.add_argument("--device", type=str, default="")
    score_parser.add_argument("--location", type=str, default="Unknown")
    score_parser.add_argument("--user", type=str, default="")
    score_parser.add_argument(
        "--history",
        type=str,
        default=None,
        help="CSV of the user's previous transactions "
        f"(columns: {', '.join(HISTORY_COLUMNS)}, optional device_id, location)",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "generate":
            return _cmd_generate(args)
        elif args.command == "train":
            return _cmd_train(args)
        elif args.command == "score":
            return _cmd_score(args)
    except (RiskEngineError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


def _add_training_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--epochs",
        type=int,
        default=DEFAULT_CLASSIFIER_CONFIG.epochs,
        help=f"Training passes (default: {DEFAULT_CLASSIFIER_CONFIG.epochs})",
    )
    parser.add_argument("--seed", type=int, default=DEFAULT_DATASET_CONFIG.seed)


def _build_classifier(args: argparse.Namespace) -> ClassifierService:
    config = replace(
        DEFAULT_CLASSIFIER_CONFIG, epochs=args.epochs, random_state=args.seed
    )
    dataset = replace(DEFAULT_DATASET_CONFIG, seed=args.seed)
    return ClassifierService(config=config, dataset=dataset)


def _cmd_generate(args: argparse.Namespace) -> int:
    """Write the synthetic training set to CSV."""
    df = generate_training_frame(n_legit=args.legit, n_fraud=args.fraud, seed=args.seed)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    print(f"Saved to {output_path}")
    if len(df):
        print(
            f"  Total: {len(df):,} | Fraud: {df['is_fraud'].sum():,} "
            f"({df['is_fraud'].mean():.1%})"
        )
    return 0


def _cmd_train(args: argparse.Namespace) -> int:
    """Train the classifier and report validation metrics."""
    classifier = _build_classifier(args)
    try:
        print(f"Training classifier ({args.epochs} epochs)...")
        classifier.initialize()
        print("\n" + classifier.metrics.summary())
    finally:
        classifier.close()
    return 0


def _cmd_score(args: argparse.Namespace) -> int:
    """Score one transaction and print the decision as JSON."""
    if args.timestamp:
        # Same clock as the UTC history timestamps
        ts = as_utc(datetime.fromisoformat(args.timestamp)).astimezone(timezone.utc)
    else:
        ts = datetime.now(timezone.utc)

    history = _load_history(args.history, args.user) if args.history else []
    velocity, total_24h = trailing_activity(history, ts)

    transaction = Transaction.at(
        ts,
        amount=args.amount,
        merchant=args.merchant,
        category=args.category,
        device_id=args.device,
        location=args.location,
        user_id=args.user,
        velocity=velocity,
        total_amount_24h=total_24h,
    )

    classifier = _build_classifier(args)
    try:
        scorer = FraudScorer(classifier)
        scorer.initialize()
        decision = scorer.score(transaction, history)
    finally:
        classifier.close()

    print(json.dumps(decision.to_dict(), indent=2))
    return 0


def _load_history(path: str, user_id: str) -> list[Transaction]:
    """Read a history CSV into chronological ``Transaction`` records."""
    df = pd.read_csv(path)
    missing = [c for c in HISTORY_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"History file is missing columns: {', '.join(missing)}")

    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.sort_values("timestamp", kind="stable")
    df["device_id"] = df["device_id"].fillna("") if "device_id" in df.columns else ""
    df["location"] = (
        df["location"].fillna("Unknown") if "location" in df.columns else "Unknown"
    )

    history = [
        Transaction.at(
            row.timestamp.to_pydatetime(),
            amount=float(row.amount),
            merchant=str(row.merchant),
            category=str(row.category),
            device_id=str(row.device_id),
            location=str(row.location),
            user_id=user_id,
        )
        for row in df.itertuples(index=False)
    ]
    logger.info("Loaded %d history records from %s", len(history), path)
    return history


if __name__ == "__main__":
    sys.exit(main())
