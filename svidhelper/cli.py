#!/usr/bin/env python3
"""
svid-helper command line entry point.

Usage:
    svid-helper -config /etc/svid-helper/helper.yaml
    svid-helper --config helper.yaml --log-level debug
"""

import argparse
import sys

import svidhelper
from svidhelper.app import Sidecar
from svidhelper.config import DEFAULT_CONFIG_FILENAME, load_config
from svidhelper.exceptions import ConfigError, HelperError
from svidhelper.log import InvalidLogLevelError, LogConfig, LoggerFactory


class DefaultsHelpFormatter(argparse.HelpFormatter):
    """Help formatter that appends default values to help text."""

    def _get_help_string(self, action: argparse.Action) -> str:
        help_text = action.help or ""
        if action.default is not argparse.SUPPRESS and action.default is not None:
            return help_text + f" (default: {action.default})"
        return help_text


def version_string() -> str:
    """Version, plus the commit when the package was built from git."""
    try:
        from svidhelper import _build_info  # type: ignore[attr-defined]
    except ImportError:
        return f"svid-helper {svidhelper.__version__}"
    return f"svid-helper {svidhelper.__version__} ({_build_info.COMMIT_SHORT})"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svid-helper",
        description="Keep a child process supplied with rotating X.509 SVIDs",
        formatter_class=DefaultsHelpFormatter,
    )
    parser.add_argument(
        "-config",
        "--config",
        dest="config",
        default=DEFAULT_CONFIG_FILENAME,
        help="configuration file path",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        help="override the configured log level",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=version_string(),
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for svid-helper."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        log_section = config.logging.model_dump()
        if args.log_level:
            log_section["level"] = args.log_level
        lg = LoggerFactory.create_root(LogConfig.from_mapping(log_section))
    except (ConfigError, InvalidLogLevelError) as e:
        sys.stderr.write(f"error parsing configuration file: {args.config}: {e}\n")
        return 1

    lg.info("using configuration file", extra={"file": args.config})

    try:
        sidecar = Sidecar.from_config(config, lg)
    except HelperError as e:
        lg.error("failed to create sidecar", extra={"exception": e})
        return 1

    try:
        sidecar.run()
    except Exception as e:
        lg.error("sidecar stopped with error", extra={"exception": e})
        return 1

    lg.info("sidecar stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
