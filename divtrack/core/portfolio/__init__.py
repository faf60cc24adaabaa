# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolios and positions: models, SQLite store, valuation and service functions."""
