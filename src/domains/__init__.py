# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the learner progress engine.

This package contains domain services that encapsulate business logic.
Domains depend on the activity store interface only; the PostgreSQL
adapter lives in src.infrastructure.

Domains:
    analytics: Learner metrics, daily reports and the service facade.
    gamification: Achievement rules, rule registry and unlock engine.
"""
