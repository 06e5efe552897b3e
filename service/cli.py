# service/cli.py
"""
User-facing command-line entrypoints for the container.

Subcommands
-----------
run [--kwargs k=v ...]
    - Executes one ingest run via modules.ats_ingest.main.run(...)
    - Prints a summary; exit 1 when any delivery batch failed

detect DOMAIN [DOMAIN ...]
    - Finds each domain's careers page and guesses its ATS
    - Prints a table, or seed entries as JSON with --json

shard --master FILE --index N --size S [--out FILE]
    - Writes shard N of a master seed file and prints SHARD_OUT=<path>

validate-seed FILE
    - Returns nonzero unless FILE is a JSON array with a usable company
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
import uuid
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from modules.ats_ingest import main as _ingest
from modules.ats_ingest.lib import detect as _detect
from modules.ats_ingest.lib import seeds as _seeds
from modules.ats_ingest.lib.config import ConfigError
from modules.ats_ingest.lib.http_client import HttpClient
from modules.ats_ingest.lib.models import AtsType
from service import logging_utils as L

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except ValueError:
            out[k] = v
    return out


def _print_table(rows: Iterable[tuple[str, ...]], headers: tuple[str, ...]) -> None:
    """Very simple fixed-width table printer."""
    rows = list(rows)
    widths = [max([len(h)] + [len(r[i]) for r in rows]) for i, h in enumerate(headers)]
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    print(sep)
    print("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    print(sep)
    for row in rows:
        print("| " + " | ".join(c.ljust(w) for c, w in zip(row, widths)) + " |")
    print(sep)


def _now_iso():
    return datetime.now().astimezone().isoformat()


# ------------------------------ Subcommands ----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    run_id = uuid.uuid4().hex
    start_time = time.monotonic()

    kwargs = _parse_kv_pairs(args.kwargs or [])
    LOG.debug("Run ingest with kwargs=%s", list(kwargs))

    try:
        report = _ingest.run(**kwargs)
    except KeyboardInterrupt:
        return 130
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "run_id": run_id,
            "error": str(e),
        })
        return 1
    except Exception as e:
        duration_s = time.monotonic() - start_time
        LOG.exception("Ingest run crashed: %s", e)
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "run_id": run_id,
            "error": repr(e),
            "duration_ms": int(duration_s * 1000),
        })
        return 1

    duration_ms = int((time.monotonic() - start_time) * 1000)
    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_run",
        "run_id": run_id,
        "trigger_type": "adhoc",
        "duration_ms": duration_ms,
        **report.as_dict(),
    })

    print(
        f"Companies: {report.companies}  fetched: {report.fetched}  kept: {report.kept}  "
        f"unique: {report.unique}  company errors: {report.company_errors}"
    )
    print(
        f"Sent: {report.sent}  batches: {report.delivery.batches}  "
        f"failed batches: {report.failed_batches} ({report.delivery.failed_jobs} jobs)"
    )
    if not report.ok:
        print("FAILURE: some batches were not delivered.", file=sys.stderr)
        return 1
    print("DONE: ingest run completed.")
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    client = HttpClient(timeout=args.timeout, max_attempts=1)
    entries: list[dict[str, Any]] = []
    rows: list[tuple[str, str, str]] = []
    try:
        for domain in args.domains:
            entry = _detect.discover(domain, client, timeout=args.timeout)
            if entry is None:
                rows.append((domain, "-", "-"))
                continue
            entries.append(entry)
            rows.append((domain, entry["careers_url"], entry["ats"]))
    except KeyboardInterrupt:
        return 130
    finally:
        client.close()

    if args.json:
        print(json.dumps(entries, indent=2))
    else:
        _print_table(rows, headers=("DOMAIN", "CAREERS URL", "ATS"))
    return 0


def cmd_shard(args: argparse.Namespace) -> int:
    try:
        entries = _seeds.read_seed_file(args.master)
        shard = _seeds.shard_entries(entries, args.index, args.size)
        out = args.out or str(Path(args.master).with_name(f"{Path(args.master).stem}.shard-{args.index}.json"))
        path = _seeds.write_seed_file(out, shard)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    total = _seeds.shard_count(len(entries), args.size)
    LOG.info("shard %d/%d: %d companies -> %s", args.index, total, len(shard), path)
    print(f"SHARD_OUT={path}")
    return 0


def cmd_validate_seed(args: argparse.Namespace) -> int:
    default_ats = AtsType.parse(args.default_ats) if args.default_ats else None
    try:
        companies = _seeds.validate_seed(args.file, default_ats)
    except ConfigError as e:
        print(f"ERROR: seed invalid: {e}", file=sys.stderr)
        return 1

    by_ats: dict[str, int] = {}
    for c in companies:
        by_ats[c.ats.value] = by_ats.get(c.ats.value, 0) + 1
    summary = ", ".join(f"{k}={v}" for k, v in sorted(by_ats.items()))
    print(f"OK: {len(companies)} companies ({summary}).")
    return 0


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="ATS job ingest command-line tools",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # run
    sp = sub.add_parser("run", help="Run one ingest cycle (extract, dedupe, deliver).")
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Settings overrides, e.g. hours_back=0 batch_size=200 (JSON values supported).",
    )
    sp.set_defaults(func=cmd_run)

    # detect
    sp = sub.add_parser("detect", help="Find careers pages for company domains.")
    sp.add_argument("domains", nargs="+", metavar="DOMAIN")
    sp.add_argument("--timeout", type=float, default=15.0, help="Per-request timeout in seconds.")
    sp.add_argument("--json", action="store_true", help="Print seed entries as JSON.")
    sp.set_defaults(func=cmd_detect)

    # shard
    sp = sub.add_parser("shard", help="Write one fixed-size shard of a master seed file.")
    sp.add_argument("--master", required=True, help="Master seed file (JSON array).")
    sp.add_argument("--index", type=int, required=True, help="Zero-based shard index.")
    sp.add_argument("--size", type=int, required=True, help="Companies per shard.")
    sp.add_argument("--out", help="Output path (default: <master>.shard-<index>.json).")
    sp.set_defaults(func=cmd_shard)

    # validate-seed
    sp = sub.add_parser("validate-seed", help="Verify a seed file has usable companies.")
    sp.add_argument("file")
    sp.add_argument("--default-ats", help="ATS for entries that declare none (like SEED_ATS).")
    sp.set_defaults(func=cmd_validate_seed)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
