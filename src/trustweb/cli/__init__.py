# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""trustweb CLI - follow/mute management, graph sync and trust filtering."""

from .main import app, main

__all__ = ["main", "app"]
