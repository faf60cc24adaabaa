# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""DivTrack: dividend portfolio tracking core."""

__version__ = "0.1.0"
