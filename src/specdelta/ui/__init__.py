"""User-facing surfaces: argparse router and plain-text renderer."""

from specdelta.ui.cli import CLIError, build_parser, run_cli
from specdelta.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "create_renderer", "run_cli"]
