#!/usr/bin/env python3
"""
qcd - quickly change directories

Command-line front end of the bookmark store and the directory stack.
A shell function wraps this program: it changes into the printed directory
when the exit code is 0 and shows the output otherwise. That is why every
action except changing directory, pop and swap exits with 1, even on success.
"""
import sys
import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from rich.console import Console

from qcd.config import init_config, QcdConfig
from qcd.constants import MAIN_TABLE_NAME, MIN_IDX_WIDTH
from qcd.db import get_db
from qcd.errors import QcdError, InvalidIdx, NotFound
from qcd.paths import clean_path, get_cwd
from qcd.resolver import Alias, Idx, parse_idx, resolve
from qcd.stack import DirectoryStack

logger = logging.getLogger(__name__)


console = Console()
err_console = Console(stderr=True)

# Exit codes understood by the shell wrapper
EXIT_CHDIR = 0
EXIT_NO_CHDIR = 1


def format_rows(rows) -> List[str]:
    """Format bookmark rows, idx right-aligned and alias left-aligned."""
    idx_width = max([MIN_IDX_WIDTH] + [len(str(row.idx)) for row in rows])
    alias_width = max([0] + [len(row.alias or "") for row in rows])
    return [
        f"{row.idx:>{idx_width}} {row.alias or '':<{alias_width}} {row.directory}"
        for row in rows
    ]


def new_session_id() -> str:
    """Timestamp based session id, long enough to enable the stack."""
    now = datetime.now(timezone.utc)
    return f"{now:%Y%m%d%H%M%S}{now.microsecond * 1000:09d}"


def idx_type(value: str) -> int:
    """argparse type for idx values."""
    try:
        return parse_idx(value)
    except InvalidIdx as e:
        raise argparse.ArgumentTypeError(e.message)


def get_stack(config: QcdConfig) -> DirectoryStack:
    """Open the directory stack of the configured database."""
    return DirectoryStack(get_db(), expire_days=config.stack_expire_days)


def cmd_chdir(args, config: QcdConfig) -> int:
    """Print directory of ENTRY, push the work dir onto the stack."""
    db = get_db()
    row = resolve(db, args.entry, MAIN_TABLE_NAME)

    if config.has_session() and not args.no_push:
        try:
            DirectoryStack(db, expire_days=config.stack_expire_days).push(config.sessionid, get_cwd())
        except QcdError as e:
            logger.debug("Could not push work dir: %s", e)

    print(row.directory)
    return EXIT_CHDIR


def cmd_list_paths(args, config: QcdConfig) -> int:
    """Print all entries sorted by idx."""
    db = get_db()
    for line in format_rows(db.list(MAIN_TABLE_NAME)):
        print(line)
    return EXIT_NO_CHDIR


def cmd_add(args, config: QcdConfig) -> int:
    """Add PATH or the work dir to the database."""
    db = get_db()

    directory = clean_path(args.add) if args.add is not None else get_cwd()
    idx = args.idx if args.idx is not None else db.next_idx(MAIN_TABLE_NAME)
    alias = args.alias or ""

    new_idx = db.insert(MAIN_TABLE_NAME, idx, directory, alias)
    console.print(f"Path added with index {new_idx}", highlight=False)
    return EXIT_NO_CHDIR


def cmd_echo(args, config: QcdConfig) -> int:
    """Print directory of ENTRY."""
    row = resolve(get_db(), args.echo, MAIN_TABLE_NAME)
    print(row.directory)
    return EXIT_NO_CHDIR


def cmd_remove(args, config: QcdConfig) -> int:
    """Remove the row of ENTRY."""
    db = get_db()
    row = resolve(db, args.remove, MAIN_TABLE_NAME)
    db.remove(MAIN_TABLE_NAME, row.id)
    return EXIT_NO_CHDIR


def cmd_set_alias(args, config: QcdConfig) -> int:
    """Set alias of row IDX."""
    idx_text, alias = args.set_alias
    idx = parse_idx(idx_text)
    get_db().update(MAIN_TABLE_NAME, idx, Alias(alias))
    return EXIT_NO_CHDIR


def cmd_set_index(args, config: QcdConfig) -> int:
    """Change idx OLDIDX to NEWIDX."""
    old_idx, new_idx = args.set_index
    get_db().update(MAIN_TABLE_NAME, old_idx, Idx(new_idx))
    return EXIT_NO_CHDIR


def cmd_query(args, config: QcdConfig) -> int:
    """Print idx of PATH, -1 if PATH is not in the database."""
    directory = clean_path(args.query)
    try:
        row = get_db().search_dir(MAIN_TABLE_NAME, directory)
        print(row.idx)
    except NotFound:
        print(-1)
    return EXIT_NO_CHDIR


def cmd_list_stack(args, config: QcdConfig) -> int:
    """Print stack entries, top to bottom."""
    for entry in get_stack(config).entries(config.sessionid):
        print(entry.directory)
    return EXIT_NO_CHDIR


def cmd_push(args, config: QcdConfig) -> int:
    """Push the work dir onto the stack."""
    get_stack(config).push(config.sessionid, get_cwd())
    return EXIT_NO_CHDIR


def cmd_pop(args, config: QcdConfig) -> int:
    """Print top of stack and remove it."""
    directory = get_stack(config).pop(config.sessionid)
    print(directory)
    return EXIT_CHDIR


def cmd_drop(args, config: QcdConfig) -> int:
    """Remove top of stack."""
    get_stack(config).drop(config.sessionid)
    return EXIT_NO_CHDIR


def cmd_swap(args, config: QcdConfig) -> int:
    """Exchange top of stack with the work dir, print former top."""
    cwd = get_cwd()
    directory = get_stack(config).swap(config.sessionid, cwd)
    print(directory)
    return EXIT_CHDIR


def cmd_pid(args, config: QcdConfig) -> int:
    """Print the session id, or a new one if none is set."""
    print(config.sessionid or new_session_id())
    return EXIT_NO_CHDIR


# Action dest -> (handler, needs a session id)
ACTIONS = [
    ("entry", cmd_chdir, False),
    ("list_paths", cmd_list_paths, False),
    ("add", cmd_add, False),
    ("add_current", cmd_add, False),
    ("remove", cmd_remove, False),
    ("set_alias", cmd_set_alias, False),
    ("set_index", cmd_set_index, False),
    ("list_stack", cmd_list_stack, True),
    ("push", cmd_push, True),
    ("pop", cmd_pop, True),
    ("drop", cmd_drop, True),
    ("swap", cmd_swap, True),
    ("query", cmd_query, False),
    ("echo", cmd_echo, False),
    ("pid", cmd_pid, False),
]


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qcd",
        description="qcd - Quickly change directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables:
  QCD_RS_DBNAME     Name of database. Default: '.qcd_rs.sqlite'
  QCD_RS_DBPATH     Path to database. Default: home directory
  QCD_RS_SESSIONID  Session id of the shell, enables the stack

Change directory:
  qcd ENTRY [-n]                    Chdir to path with idx or alias ENTRY (w/o -n: adds work dir to stack)
  qcd -o                            (pop)  Chdir to top of stack, remove that entry from stack

Add or remove an entry:
  qcd -a PATH [-i IDX] [-s ALIAS]   Add PATH to database
  qcd -p [-i IDX] [-s ALIAS]        Add current working directory to database
  qcd -r ENTRY                      Remove row with idx or alias ENTRY
  qcd -u                            (push) Add current working directory to (top of) stack

Queries:
  qcd -l                            List all indexes, aliases and paths
  qcd -q PATH                       Query index of PATH
  ls `qcd -e 4`                     List directory contents of path with idx 4

Alias matching:
  Abbreviating an alias will match if the string equals the beginning of an alias in a unique
  way. For instance, with aliases 'pets' and 'people' in the database 'qcd peo' will match the
  second one while 'qcd pe' will match none.
        """
    )

    # Global options
    parser.add_argument("--db", help="Database file (default: ~/.qcd_rs.sqlite)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser.add_argument("-n", "--no-push", action="store_true",
                        help="Do not add current path to stack when changing directory")
    parser.add_argument("-i", "--idx", type=idx_type, help="Specify idx value when adding path")
    parser.add_argument("-s", "--alias", help="Specify alias when adding path")

    methods = parser.add_mutually_exclusive_group(required=True)
    methods.add_argument("entry", nargs="?", help="Index or alias of path")
    methods.add_argument("-l", "--list-paths", action="store_true",
                         help="List all path-names and id's")
    methods.add_argument("-a", "--add", metavar="PATH", help="Add PATH to database")
    methods.add_argument("-p", "--add-current", action="store_true",
                         help="Add current work dir to database")
    methods.add_argument("-r", "--remove", metavar="ENTRY",
                         help="Remove path with index or alias equal to ENTRY")
    methods.add_argument("-b", "--set-alias", nargs=2, metavar=("IDX", "ALIAS"),
                         help="Set alias for entry IDX")
    methods.add_argument("-x", "--set-index", nargs=2, type=idx_type, metavar=("OLDIDX", "NEWIDX"),
                         help="Change IDX")
    methods.add_argument("-c", "--list-stack", action="store_true",
                         help="List entries on stack (top to bottom)")
    methods.add_argument("-u", "--push", action="store_true", help="Add current work dir to stack")
    methods.add_argument("-o", "--pop", action="store_true",
                         help="Chdir to top of stack and remove path from stack")
    methods.add_argument("-d", "--drop", action="store_true", help="Remove entry on top of stack")
    methods.add_argument("-w", "--swap", action="store_true",
                         help="Chdir to top of stack and exchange top of stack by current work dir")
    methods.add_argument("-q", "--query", metavar="PATH",
                         help="Query index of PATH. Returns -1 if path not in table.")
    methods.add_argument("-e", "--echo", metavar="ENTRY",
                         help="Print path with index or alias equal to ENTRY")
    methods.add_argument("--pid", action="store_true", help=argparse.SUPPRESS)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse and cross-check arguments.

    Help output and usage errors exit with 1 so the shell wrapper never
    tries to change into them.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.no_push and args.entry is None:
            parser.error("argument -n/--no-push requires ENTRY")
        if (args.idx is not None or args.alias is not None) and not (args.add is not None or args.add_current):
            parser.error("arguments -i/--idx and -s/--alias require -a/--add or -p/--add-current")
    except SystemExit:
        sys.exit(EXIT_NO_CHDIR)
    return args


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_args(argv)

    config_file = Path(args.config) if args.config else None
    config = init_config(database=args.db, config_file=config_file)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format="%(levelname)s: %(message)s"
    )

    for dest, handler, needs_session in ACTIONS:
        value = getattr(args, dest)
        if value is None or value is False:
            continue

        if needs_session and not config.has_session():
            err_console.print("Missing or wrong session-id!", markup=False, highlight=False)
            sys.exit(EXIT_NO_CHDIR)

        try:
            sys.exit(handler(args, config))
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted[/yellow]")
            sys.exit(130)
        except QcdError as e:
            console.print(f"ERROR: {e.message}", style="red", markup=False, highlight=False)
            sys.exit(EXIT_NO_CHDIR)

    sys.exit(EXIT_NO_CHDIR)


if __name__ == "__main__":
    main()
