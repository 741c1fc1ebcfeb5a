# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared fixtures for domain tests."""

import pytest

from fakes import InMemoryActivityStore, make_topics
from src.domains.analytics.models import LessonCatalogEntry, SubjectCatalogEntry


@pytest.fixture
def store() -> InMemoryActivityStore:
    """Provide an empty in-memory store."""
    return InMemoryActivityStore()


@pytest.fixture
def subjects() -> list[SubjectCatalogEntry]:
    return [
        SubjectCatalogEntry(id="math", name="Mathematics"),
        SubjectCatalogEntry(id="science", name="Science"),
    ]


@pytest.fixture
def catalog_store(store: InMemoryActivityStore, subjects: list[SubjectCatalogEntry]) -> InMemoryActivityStore:
    """Provide a store with two subjects, three topics each and two lessons per topic."""
    store.subjects = subjects
    store.topics = make_topics(3, "math", grade=8) + make_topics(3, "science", grade=9)
    store.lessons = [
        LessonCatalogEntry(id=f"{topic.id}-lesson-{n}", topic_id=topic.id)
        for topic in store.topics
        for n in (1, 2)
    ]
    return store
