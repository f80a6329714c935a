# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""HEVA onboarding: identity verification, trust scoring and approval/appeal workflow."""

__version__ = "0.1.0"
