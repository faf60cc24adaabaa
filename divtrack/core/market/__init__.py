# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Stock-data acquisition: rate limiting, provider clients, fallback."""
