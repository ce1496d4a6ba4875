"""Command-line interface for the score -> batch -> calibrate workflow."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List
from uuid import uuid4

from calibration import CalibrationStore
from opportunity_engine import load_config, render_signal_brief
from pipeline import (
    configure_logging,
    load_requests,
    parse_now,
    run_batch,
    score_request,
    write_outputs,
)


def cmd_score(args: argparse.Namespace) -> None:
    logger = configure_logging()
    requests = load_requests(args.path)
    if len(requests) != 1:
        raise ValueError(f"{args.path} holds {len(requests)} requests; use the batch command")

    result = score_request(requests[0], parse_now(args.now))
    logger.info("Scored %s: %s/100", " + ".join(result.request.terms), result.signal.demand_score)
    payload = json.dumps(result.signal.to_dict(), indent=2)

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload, encoding="utf-8")
        print(f"Saved: {out_path}")
    else:
        print(payload)

    if args.brief:
        print("\n".join(render_signal_brief(result.signal, result.request.terms)))


def cmd_batch(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    batch_id = str(uuid4())
    logger = configure_logging(batch_id, level=config["logging"]["level"])
    requests = load_requests(args.path)
    now = parse_now(args.now)

    calibration = None
    if args.use_calibration:
        settings = config["calibration"]
        store = CalibrationStore(args.database_url or settings.get("database_url"))
        cache = store.cache(ttl_seconds=settings["ttl_seconds"], min_outcomes=settings["min_outcomes"])
        cache.refresh_if_stale()
        calibration = cache.snapshot()
        logger.info("Loaded %d calibration buckets", len(calibration))

    workers = args.workers or config["batch"]["workers"]
    results = run_batch(requests, workers=workers, now=now, calibration=calibration, show_progress=not args.no_progress)

    output_dir = Path(args.output_dir or f"data/signals/{batch_id}")
    top_k = args.top_k or config["briefs"]["top_k"]
    meta = {"source_path": str(args.path), "now": now.isoformat(), "workers": workers}
    write_outputs(output_dir, results, top_k=top_k, batch_id=batch_id, meta=meta)
    logger.info("Wrote outputs to %s", output_dir)
    print(f"Batch ID: {batch_id}\nWrote {len(results)} signals to {output_dir}")


def cmd_calibrate(args: argparse.Namespace) -> None:
    logger = configure_logging()
    if not 0.0 <= args.success_rate <= 1.0:
        raise ValueError("--success-rate must be between 0 and 1")
    if args.total_outcomes < 0:
        raise ValueError("--total-outcomes must not be negative")

    config = load_config(args.config)
    store = CalibrationStore(args.database_url or config["calibration"].get("database_url"))
    store.upsert(args.band, args.tier, args.success_rate, args.total_outcomes)
    logger.info("Calibration bucket %s/%s updated", args.band, args.tier)
    print(f"Stored {args.band}/{args.tier}: success rate {args.success_rate:.2f} over {args.total_outcomes} outcomes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Content demand scoring CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p_score = sub.add_parser("score", help="Score one request file and print the demand signal")
    p_score.add_argument("path", type=str, help="Path to a request JSON with terms and items")
    p_score.add_argument("--now", type=str, help="Evaluation time (ISO 8601), defaults to now")
    p_score.add_argument("--out", type=str, help="Path to write the signal JSON")
    p_score.add_argument("--brief", action="store_true", help="Also print a markdown brief")
    p_score.set_defaults(func=cmd_score)

    p_batch = sub.add_parser("batch", help="Score a JSON list or JSONL of requests and write outputs")
    p_batch.add_argument("path", type=str, help="Path to requests (JSON list or JSON lines)")
    p_batch.add_argument("--workers", type=int, help="Parallel scoring workers")
    p_batch.add_argument("--output-dir", type=str, help="Directory for output files")
    p_batch.add_argument("--top-k", type=int, help="Number of briefs to render")
    p_batch.add_argument("--config", type=str, help="Path to config JSON")
    p_batch.add_argument("--now", type=str, help="Evaluation time (ISO 8601) shared by the batch")
    p_batch.add_argument("--use-calibration", action="store_true", help="Adjust confidence from calibration data")
    p_batch.add_argument("--database-url", type=str, help="Calibration database URL")
    p_batch.add_argument("--no-progress", action="store_true")
    p_batch.set_defaults(func=cmd_batch)

    p_calibrate = sub.add_parser("calibrate", help="Record the observed success rate for a band/tier bucket")
    p_calibrate.add_argument("--band", required=True, choices=["hot", "growing", "stable", "niche", "unknown"])
    p_calibrate.add_argument("--tier", required=True, choices=["high", "medium", "low"])
    p_calibrate.add_argument("--success-rate", required=True, type=float)
    p_calibrate.add_argument("--total-outcomes", required=True, type=int)
    p_calibrate.add_argument("--database-url", type=str, help="Calibration database URL")
    p_calibrate.add_argument("--config", type=str, help="Path to config JSON")
    p_calibrate.set_defaults(func=cmd_calibrate)

    return parser


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
