# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
