"""Learner Progress Engine.

Progress analytics and gamification for learners: derived activity
metrics, achievement unlocking and daily diagnostic reports.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
