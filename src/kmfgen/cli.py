"""Command line interface for KMFGen."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .logging import configure_logging, get_logger, step
from .reporting import (
    set_reporter,
    get_reporter,
    PlainReporter,
    JsonLinesReporter,
    SilentReporter,
    RichReporter,
    set_verbosity,
)
from .api import (
    BuildOptions,
    build_kmf,
    diff_kmf_deep,
    inspect_kmf,
    plan_dry_run,
    validate_kmf,
)
from .packing.constants import MAX_SCALE_FACTOR
from .packing.errors import KmfError


def _clamp_scale_factor(value: int) -> int:
    clamped = min(max(value, 0), MAX_SCALE_FACTOR)
    if clamped != value:
        get_logger().warning(
            "Scale factor %d clamped to %d (allowed 0..%d)",
            value,
            clamped,
            MAX_SCALE_FACTOR,
        )
    return clamped


def _build_cmd(args: argparse.Namespace) -> int:
    opts = BuildOptions(
        source=args.source,
        output=args.output,
        scale_factor=_clamp_scale_factor(args.scale_factor),
        manifest_path=args.emit_manifest,
        force=args.force,
        workers=args.workers,
    )
    build_kmf(opts)
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    step(f"inspecting {args.kmf.name}")
    info = inspect_kmf(args.kmf)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
    else:
        header = info.get("header", {})
        rep.status(
            "Decode summary: "
            + f"result={info['result']} models={header.get('model_count', 0)} "
            + f"bytes={info['file_size']}"
        )
        for i, b in enumerate(info.get("blocks", [])):
            path = f"{b['node_path']}/" if b["node_path"] else ""
            rep.status(
                f"  [{i}] {path}{b['node_name']} mesh={b['mesh_name']} "
                f"vertices={b['vertex_count']} indices={b['index_count']}"
            )
    if info["result"] != "RESULT_SUCCESS":
        rep.error(f"{info['result']}: {info['message']}")
        return 1
    return 0


def _validate_cmd(args: argparse.Namespace) -> int:
    step(f"validating {args.kmf.name}")
    issues = validate_kmf(args.kmf)
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    if not issues:
        rep.status(f"{args.kmf.name}: OK")
    return 1 if issues else 0


def _diff_cmd(args: argparse.Namespace) -> int:
    step("diffing kmf files")
    result = diff_kmf_deep(args.left, args.right)
    rep = get_reporter()
    rep.section("Diff results")
    diff_count = result.get("summary", {}).get("count")
    rep.status(
        "Diff summary: count="
        + f"{diff_count} left={args.left.name} right={args.right.name}",
    )
    # machine-readable diff on stdout
    print(json.dumps(result, indent=2, sort_keys=True))
    return 1 if diff_count else 0


def _plan_cmd(args: argparse.Namespace) -> int:
    plan, plan_dict = plan_dry_run(
        args.source,
        scale_factor=_clamp_scale_factor(args.scale_factor),
        workers=args.workers,
    )
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(plan_dict, indent=2, sort_keys=True))
    else:
        regions_summary = ",".join(
            f"{r.name}@{r.offset}+{r.size}" for r in plan.regions if r.size
        )
        rep.status(
            f"Plan summary: file_size={plan.file_size} regions={regions_summary}",
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="kmfgen", description="KMF model file generation tool"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    b = sub.add_parser("build", help="Build a .kmf file from a scene")
    b.add_argument("source", type=Path, help=".gltf, .glb, .yaml or .json scene")
    b.add_argument("output", type=Path)
    b.add_argument(
        "-s",
        "--scale-factor",
        dest="scale_factor",
        type=int,
        default=0,
        help=f"Scale factor stored in the header (0..{MAX_SCALE_FACTOR})",
    )
    b.add_argument(
        "--emit-manifest",
        dest="emit_manifest",
        type=Path,
        help="Optional path to write manifest JSON (opt-in)",
    )
    b.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite the output file if it exists",
    )
    b.add_argument(
        "-j",
        "--workers",
        type=int,
        default=None,
        help="Threads used for tangent generation",
    )
    b.set_defaults(func=_build_cmd)

    i = sub.add_parser("inspect", help="Inspect a .kmf file")
    i.add_argument("kmf", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON summary")
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Validate a .kmf file")
    v.add_argument("kmf", type=Path)
    v.set_defaults(func=_validate_cmd)

    d = sub.add_parser("diff", help="Diff two .kmf files")
    d.add_argument("left", type=Path)
    d.add_argument("right", type=Path)
    d.set_defaults(func=_diff_cmd)

    pl = sub.add_parser("plan", help="Compute layout plan (dry run, no write)")
    pl.add_argument("source", type=Path)
    pl.add_argument("--json", action="store_true", help="Emit JSON plan")
    pl.add_argument(
        "-s",
        "--scale-factor",
        dest="scale_factor",
        type=int,
        default=0,
    )
    pl.add_argument("-j", "--workers", type=int, default=None)
    pl.set_defaults(func=_plan_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich":
        if sys.stderr.isatty():
            set_reporter(RichReporter())
        else:
            # no TTY: plain output
            set_reporter(PlainReporter())
    else:
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except KmfError as exc:
        get_reporter().error(str(exc))
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
