"""The `tagged` command: list photos matching a tag expression.

Bare arguments are turned into one expression before lexing, so that
`tagged max boots` finds photos tagged both "max" and "boots" and
`tagged "max boots"` finds photos with the single tag "max boots".
"""

from __future__ import annotations

import argparse
import re
import sys

from loguru import logger

from app.commands.common import AppContext, emit, unique_directories
from app.viewmodels.photo_vm import PhotoVM
from core.query.errors import QueryError
from core.query.parser import evaluate

_RATING_ARG_RE = re.compile(r"r:[1-5]*$")


def normalize_arg(arg: str) -> str:
    """Return the expression text for one command-line argument.

    Comparisons and ratings pass through, `-x` negates the normalised `x`,
    and anything else becomes an exact tag in double quotes.
    """
    if arg and arg[0] in "<>=":
        return arg
    if len(arg) > 1 and arg.startswith("-"):
        return "-" + normalize_arg(arg[1:])
    if _RATING_ARG_RE.match(arg):
        return arg
    if '"' in arg:
        raise QueryError(f"cannot quote tag containing a double quote: {arg}")
    return f'"{arg}"'


def normalize_args(args: list[str]) -> str:
    """Join command-line arguments into a single expression."""
    return " ".join(normalize_arg(arg) for arg in args)


def shell_quote(text: str) -> str:
    """Double-quote `text` for a POSIX shell."""
    escaped = re.sub(r'([\\"$`])', r"\\\1", text)
    return f'"{escaped}"'


def format_tags_line(vm: PhotoVM) -> str:
    return f"{vm.filename}: {', '.join(vm.tag_names)}"


def format_tag_args_line(vm: PhotoVM) -> str:
    """Render `vm` as ` -a "tag" ... "path"` for feeding back to `tag`."""
    parts = [f" -a {shell_quote(t)}" for t in vm.tag_names]
    parts.append(f" {shell_quote(vm.filename)}")
    return "".join(parts)


def add_parser(subparsers) -> None:
    p = subparsers.add_parser(
        "tagged",
        help="List photos matching a tag expression",
        usage="%(prog)s [options] [-]tag...",
        allow_abbrev=False,
        add_help=False,
    )
    # No `-h`: terms such as `-holiday` must reach the expression.
    p.add_argument("--help", action="help", help="Show this help message and exit")
    p.add_argument("--nul", "--null", dest="nul", action="store_true",
                   help="Nul-terminate output filenames")
    p.add_argument("--tags", action="store_true", help="Show files' tags")
    p.add_argument("--ugly", action="store_true", help="Show files' tags in tag -a ... format")
    p.add_argument("--directories", action="store_true",
                   help="List only directories containing the files")
    p.add_argument("--expr", help="Expression to search for")
    p.add_argument("terms", nargs=argparse.REMAINDER, help="Tags, -tags, r:N, <date, =date, >date")
    p.set_defaults(run=run, parser=p)


def run(args: argparse.Namespace, ctx: AppContext) -> int:
    if (args.nul or args.directories) and (args.tags or args.ugly):
        args.parser.error("--nul and --directories conflict with --tags and --ugly")

    try:
        expression = args.expr if args.expr is not None else normalize_args(args.terms)
        photos = evaluate(expression, ctx.repo)
    except QueryError as ex:
        logger.error("Query failed: {}", ex)
        print(f"tagged: {ex}", file=sys.stderr)
        return 1

    logger.info("Expression {!r} matched {} photos", expression, len(photos))
    vms = ctx.sorter.sort(PhotoVM(p) for p in photos)

    if args.tags or args.ugly:
        for vm in vms:
            emit(format_tag_args_line(vm) if args.ugly else format_tags_line(vm))
    elif args.directories:
        for directory in unique_directories(vm.filename for vm in vms):
            emit(directory)
    else:
        terminator = "\0" if args.nul else "\n"
        for vm in vms:
            emit(vm.filename, end=terminator)
    return 0
