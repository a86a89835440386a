from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_LOCUS, load_config
from .errors import LocusPlotError
from .pipeline import run_walkthrough
from .synth import synth_dataset

logger = logging.getLogger(__name__)


def _add_logging_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress (INFO)")
    p.add_argument("--debug", action="store_true", help="Log everything (DEBUG)")
    p.add_argument("-q", "--quiet", action="store_true", help="Only print errors")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="locusplot")
    sub = p.add_subparsers(dest="cmd", required=True)

    ps = sub.add_parser("synth", help="Write a small synthetic GTF/BED/bedGraph/BEDPE dataset plus config.json")
    ps.add_argument("--out_dir", type=str, default="data/synthetic")
    ps.add_argument("--locus", type=str, default=DEFAULT_LOCUS)
    ps.add_argument("--seed", type=int, default=0)
    _add_logging_flags(ps)

    pr = sub.add_parser("render", help="Run the slide walkthrough described by a JSON config")
    pr.add_argument("--config", type=str, required=True)
    pr.add_argument("--out_dir", type=str, default="outputs/walkthrough")
    _add_logging_flags(pr)

    pdemo = sub.add_parser("demo", help="Generate the synthetic dataset and render the walkthrough from it (offline)")
    pdemo.add_argument("--data_dir", type=str, default="data/synthetic")
    pdemo.add_argument("--out_dir", type=str, default="outputs/demo")
    pdemo.add_argument("--seed", type=int, default=0)
    _add_logging_flags(pdemo)

    return p


def configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "debug", False):
        level = logging.DEBUG
        fmt = "%(asctime)s %(levelname)-8s %(message)-60s (%(funcName)s in %(filename)s:%(lineno)d)"
    elif getattr(args, "verbose", False):
        level = logging.INFO
        fmt = "%(asctime)s %(levelname)-8s %(message)s"
    else:
        level = logging.ERROR if getattr(args, "quiet", False) else logging.WARNING
        fmt = "%(asctime)s %(levelname)-8s %(message)s"
    logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%d %H:%M:%S")


def _print_outputs(out) -> None:
    print("Wrote:")
    for s in out.slides:
        print(f"  {s.name}: {s.path.as_posix()} ({s.locus})")
    print("  manifest:", out.manifest_path.as_posix())


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    configure_logging(args)

    try:
        if args.cmd == "synth":
            paths = synth_dataset(args.out_dir, locus=args.locus, seed=int(args.seed))
            if not args.quiet:
                print("Wrote:")
                for k, v in paths.items():
                    print(f"  {k}: {Path(v).as_posix()}")
            return

        if args.cmd == "render":
            out = run_walkthrough(load_config(args.config), args.out_dir)
            if not args.quiet:
                _print_outputs(out)
            return

        if args.cmd == "demo":
            paths = synth_dataset(args.data_dir, seed=int(args.seed))
            out = run_walkthrough(load_config(paths["config"]), args.out_dir)
            if not args.quiet:
                print("Demo data:", Path(args.data_dir).as_posix())
                _print_outputs(out)
            return
    except LocusPlotError as e:
        logger.debug("command failed", exc_info=True)
        print(f"locusplot: error: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    raise SystemExit(f"Unknown command: {args.cmd}")


if __name__ == "__main__":
    main()
