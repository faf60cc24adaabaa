# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolio valuation, goal tracking and compound-growth projection."""
