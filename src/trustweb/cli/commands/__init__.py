# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""CLI command modules for trustweb.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import graph, social
from .graph import (
    cmd_graph_clear,
    cmd_graph_distance,
    cmd_graph_filter,
    cmd_graph_stats,
    cmd_graph_sync,
)
from .social import (
    cmd_contacts,
    cmd_follow,
    cmd_mute,
    cmd_mutes,
    cmd_unfollow,
    cmd_unmute,
)

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [
    social,
    graph,
]

__all__ = [
    "COMMAND_MODULES",
    "cmd_follow",
    "cmd_unfollow",
    "cmd_mute",
    "cmd_unmute",
    "cmd_contacts",
    "cmd_mutes",
    "cmd_graph_sync",
    "cmd_graph_filter",
    "cmd_graph_stats",
    "cmd_graph_distance",
    "cmd_graph_clear",
]
