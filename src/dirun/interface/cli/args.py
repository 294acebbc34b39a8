from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema, splits the trailing '-- COMMAND' part off
before argparse sees it, and translates the parsed namespace into
configuration overrides.
"""

import argparse
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dirun.utils.i18n import i18n

COMMAND_SEPARATOR = "--"

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the dirun CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="dirun",
        usage="%(prog)s [DIR] [FILES] [options] -- COMMAND",
        description=i18n.t("app.description"),
        epilog=i18n.t("app.epilog"),
    )

    # --- Targets ---
    p.add_argument("dir", nargs="?", default=None, metavar="DIR", help=i18n.t("cli.args.dir"))
    p.add_argument("files", nargs="?", default=None, metavar="FILES", help=i18n.t("cli.args.files"))

    # --- Execution ---
    p.add_argument(
        "--working",
        dest="working_directory",
        metavar="DIR",
        default=None,
        help=i18n.t("cli.args.working"),
    )
    p.add_argument(
        "--pass",
        dest="pass_code",
        metavar="NUM",
        type=int,
        default=None,
        help=i18n.t("cli.args.pass"),
    )
    p.add_argument(
        "--norecurse",
        action="store_true",
        help=i18n.t("cli.args.norecurse"),
    )

    # --- Reporting ---
    p.add_argument(
        "--repfile",
        action="store_true",
        help=i18n.t("cli.args.repfile"),
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help=i18n.t("cli.args.verbose"),
    )

    # --- Configuration and Diagnostic Tools ---
    p.add_argument(
        "--config",
        dest="config_file",
        metavar="FILE",
        default=None,
        help=i18n.t("cli.args.config"),
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help=i18n.t("cli.args.dump"),
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        metavar="FILE",
        default=None,
        help=i18n.t("cli.args.log_file"),
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help=i18n.t("cli.args.debug"),
    )

    return p


def split_command(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split the raw argument list at the first '--'.

    Returns:
        Tuple[List[str], List[str]]: (dirun options, command tokens).
    """
    args = list(argv)
    if COMMAND_SEPARATOR in args:
        i = args.index(COMMAND_SEPARATOR)
        return args[:i], args[i + 1:]
    return args, []

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def resolve_targets(args: argparse.Namespace) -> Tuple[Optional[str], Optional[str]]:
    """
    Assign the positional arguments to DIR and FILES.

    A first positional that is not an existing directory is taken as FILES.

    Returns:
        Tuple[Optional[str], Optional[str]]: (root directory, file pattern).

    Raises:
        ValueError: Two positionals were given but the first is not a directory.
    """
    first, second = args.dir, args.files
    if first is None:
        return None, None
    if os.path.isdir(first):
        return first, second
    if second is not None:
        raise ValueError(i18n.t("cli.errors.not_a_directory", arg=second, files=first))
    return None, first


def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into configuration overrides.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.

    Raises:
        ValueError: See resolve_targets.
    """
    overrides: Dict[str, Any] = {}

    root_path, file_pattern = resolve_targets(args)
    overrides["root_path"] = root_path
    overrides["file_pattern"] = file_pattern
    overrides["working_directory"] = args.working_directory
    overrides["pass_code"] = args.pass_code

    if args.norecurse:
        overrides["recurse"] = False
    if args.repfile:
        overrides["report_file_name"] = True
    if args.verbose:
        overrides["verbose"] = True
    if args.debug:
        overrides["log_level"] = "DEBUG"

    return overrides
