# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Output formatting for CLI commands.

Command results go to stdout; warnings and errors go to stderr so that
piped output (``trustweb graph filter``) stays clean.
"""

from __future__ import annotations

import json
import sys
from typing import Any


def output_json(data: Any) -> None:
    """Pretty-print data as JSON on stdout."""
    print(json.dumps(data, indent=2, default=str))


def output_warning(message: str) -> None:
    """Print a warning to stderr."""
    print(f"Warning: {message}", file=sys.stderr)


def output_error(message: str) -> None:
    """Print a single-line error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)
