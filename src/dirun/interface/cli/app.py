from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: initialization of logging, loading and
merging of configuration sources (defaults, config file and CLI overrides),
command parsing, the run itself, and result rendering.
"""

import json
import os
import sys
import threading
from typing import Any, Dict, List, Optional

from dirun.core.parsing.command_parser import parse_command
from dirun.core.pipeline.engine import run_dirun
from dirun.core.pipeline.validator import validate_config
from dirun.core.processing.variables import contains_variables
from dirun.domain.command_models import CommandChain
from dirun.domain.config import load_config
from dirun.infra.logging import LoggingConfig, configure_logging, get_logger, shutdown_logging
from dirun.interface.cli import args as cli_args
from dirun.interface.cli.report import ResultReporter
from dirun.utils.i18n import i18n

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130
# Exit status is the number of failed files, saturated at the largest status
EXIT_MAX_FAILED = 255

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: The number of failed files (0 if every file passed, at most
             255), 1 on a fatal traversal error, 2 on usage errors,
             130 when interrupted.
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8")

    # 1. Argument parsing phase
    raw_args = sys.argv[1:] if argv is None else list(argv)
    parser = cli_args.build_parser()
    if not raw_args:
        parser.print_usage()
        return EXIT_USAGE

    own_args, command_tokens = cli_args.split_command(raw_args)
    args = parser.parse_intermixed_args(own_args)

    # 2. Logging bootstrap
    log_level = "DEBUG" if args.debug else "WARNING"
    configure_logging(LoggingConfig(level=log_level, console=True, log_file=args.log_file))
    try:
        return _run(args, command_tokens)
    finally:
        shutdown_logging()


def _run(args: Any, command_tokens: List[str]) -> int:
    logger.debug("CLI execution initiated. Resolving configuration hierarchy...")

    # 3. Map and merge command-line overrides
    try:
        overrides = cli_args.args_to_overrides(args)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE

    working = overrides.get("working_directory")
    if working and not contains_variables(working) and not os.path.isdir(working):
        print(i18n.t("cli.errors.invalid_working", path=working), file=sys.stderr)
        return EXIT_USAGE

    raw_conf = _merge_config(load_config(args.config_file), overrides)

    # 4. Schema validation and normalization
    clean_conf, warnings = validate_config(raw_conf, strict=False)
    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if not args.debug and clean_conf["log_level"] != "WARNING":
        configure_logging(
            LoggingConfig(level=clean_conf["log_level"], console=True, log_file=args.log_file),
            force=True,
        )

    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return EXIT_OK

    # 5. Command parsing
    chain = parse_command(command_tokens) if command_tokens else CommandChain()

    reporter = ResultReporter(clean_conf, chain)
    if clean_conf["verbose"]:
        reporter.print_settings()
    if not chain and clean_conf["working_directory"]:
        reporter.warn(i18n.t("cli.warnings.working_unused"))

    # 6. Run phase
    cancel_event = threading.Event()
    try:
        result = run_dirun(
            clean_conf,
            chain,
            on_file_completed=reporter.report_file if chain else None,
            cancel_event=cancel_event,
        )
    except KeyboardInterrupt:
        cancel_event.set()
        msg = i18n.t("cli.status.interrupted")
        logger.warning(msg)
        print(msg, file=sys.stderr)
        return EXIT_INTERRUPTED

    if not result.ok:
        reporter.error(i18n.t("cli.errors.run_failed", error=result.error))
        return EXIT_FATAL

    # 7. Output rendering phase
    reporter.print_result(result)
    return min(result.num_failed, EXIT_MAX_FAILED)

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow-merge the non-empty override values into the base configuration.

    Args:
        base: The primary configuration dictionary.
        overrides: New values to inject.

    Returns:
        Dict[str, Any]: The merged configuration.
    """
    out = dict(base)
    for k, v in overrides.items():
        if v is not None:
            out[k] = v
    return out

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
