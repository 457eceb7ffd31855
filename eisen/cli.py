"""Command-line front end.

Run:
  eisen build script.es objects.json --seed 123
  eisen validate script.es
  eisen --help
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections import Counter
from typing import Any

from .engine import BuildStatus, Structure, compile
from .errors import BuildError, ScriptError

# -------------------------
# Files
# -------------------------


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def load_script(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        try:
            return f.read()
        except UnicodeDecodeError as e:
            raise ScriptError(f"Script {path} is not valid UTF-8: {e}") from e


def dump_json(obj: dict[str, Any], path: str) -> None:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
        f.write("\n")


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
SCRIPT SYNTAX

A script is a list of statements.  Top-level statements run once when the
structure is built; rules are only entered when referenced.

  set <key> <value>          also: @<key> <value>
      maxdepth (or @<n>)     recursion limit per rule name   (default 10000)
      maxobjects | mo        stop after this many objects    (default 100000)
      minsize | min          drop objects with volume <= minsize^3   (0)
      maxsize | max          drop objects with volume >= maxsize^3   (10000)
      seed | s               random seed (default: the --seed option)
      background | bg, floor, sky      colours
      colorpool | cp         randomrgb, randomhue, grayscale,
                             randomhue:<n>, grayscale:<n>, [c1,c2,...]
      any other key is kept verbatim for the application

  rule <Name> [options] { <body> }      also: #<Name> [options] { ... }
      weight <f> | w <f> | @w <f>       relative chance among same-named rules
      maxdepth <n> | md <n> | @ <n>     recursion limit for this rule
      > <Other>                         build <Other> once when too deep

  <N> * { <ops> }  or  { <ops> }
      Apply <ops> to the next reference, N times over, each repetition
      compounding on the last.

  <Name>[<param>]  or  <Name>:<option>[<param>]
      Build the rule <Name>; if no rule has that name, emit an object.

  #define <name> <value>      also: $<name> <value>
      Variable usable as $<name> inside { ... }.

  ( A w 2 | {x 1} B | C )
      Inside a rule body: split the rule into one alternative per branch.

  // line comments and /* block comments */ are ignored.

OPERATORS

  x/y/z <d>        translate            rx/ry/rz <deg>   rotate
  s <f>            scale uniformly      s <x> <y> <z>    scale per axis
  fx/fy/fz         mirror               m <9 values>     3x3 matrix, row major
  hue|h <deg>      shift hue            sat <f>          scale saturation
  brightness|b <f> scale brightness     alpha|a <f>      scale alpha
  <name> | #hex    set colour           random | #?      colour from the pool
  blend <c> <f>    blend toward <c>     *<c> <f>         same as blend
  *h|*s|*b <v> <f> blend one channel

OUTPUT (build)

  {
    "criteria": { "maxdepth": ..., "maxobjects": ..., ... },
    "objects": [
      {"label": "box", "option": null, "param": null,
       "color": [r, g, b, a], "matrix": [16 floats, row major]},
      ...
    ]
  }

Example

  set maxdepth 20
  R
  rule R { box { x 1 s 0.9 rz 15 hue 12 } R }
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="eisen",
        description="Compile recursive structure scripts into placed, coloured objects.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "-v", "--verbose", action="store_true", help="Log compile and build details."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pb = sub.add_parser(
        "build",
        help="Build a script and write the emitted objects as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pb.add_argument("script", help="Path to the input script.")
    pb.add_argument("output", help="Path to write the JSON output.")
    pb.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )

    pv = sub.add_parser(
        "validate",
        help="Compile a script, run a bounded build and print a summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pv.add_argument("script", help="Path to the input script.")
    pv.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )

    return p


# -------------------------
# Commands
# -------------------------


def cmd_build(script_path: str, output_path: str, seed: int | None) -> None:
    structure = compile(load_script(script_path), seed=seed)
    events = structure.build()
    dump_json(
        {
            "criteria": structure.criteria.to_dict(),
            "objects": [event.to_dict() for event in events],
        },
        output_path,
    )


_VALIDATE_OBJECT_LIMIT = 10_000


def cmd_validate(script_path: str, seed: int | None) -> None:
    structure: Structure = compile(load_script(script_path), seed=seed)
    crit = structure.criteria

    print(f"rules: {structure.rule_count}")
    print(f"variables: {len(structure.variables)}")
    print(
        "criteria: "
        f"maxdepth={crit.maxdepth} maxobjects={crit.maxobjects} "
        f"minsize={crit.minsize:g} maxsize={crit.maxsize:g} "
        f"colorpool={crit.colorpool}"
    )

    labels: Counter[str] = Counter()

    def count(status: BuildStatus) -> None:
        labels[status.label or ""] += 1
        status.skip_color()
        if status.object_count >= _VALIDATE_OBJECT_LIMIT:
            status.stop_building()

    structure.build(count)
    total = sum(labels.values())
    truncated = total >= _VALIDATE_OBJECT_LIMIT
    print(f"objects (sampled): {total}+" if truncated else f"objects: {total}")
    for label, n in sorted(labels.items()):
        print(f"  {label}: {n}")
    if truncated:
        print(
            f"warning: build exceeds {_VALIDATE_OBJECT_LIMIT} objects; "
            "counts are based on the first portion only"
        )
    if not total:
        raise ScriptError("Script produces no objects")


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "build":
            cmd_build(args.script, args.output, args.seed)
        elif args.cmd == "validate":
            cmd_validate(args.script, args.seed)
        else:
            raise AssertionError("unreachable")
    except (ScriptError, BuildError) as e:
        print(f"Script error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
