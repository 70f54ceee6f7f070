"""Shared test fixtures for notevault tests"""

import os
import random

import pytest
from faker import Faker

from notevault.hierarchy.manager import HierarchyManager
from notevault.storage.factories import FileRecordFactory, FolderRecordFactory
from notevault.storage.manager import StorageManager


@pytest.fixture(scope="session", autouse=True)
def setup_factory_seed():
    """Configure factory_boy/Faker to use a deterministic seed for reproducibility.

    The seed can be set via FACTORY_SEED environment variable, or will be
    randomly generated. The seed is printed to stdout for reproducibility.
    """
    seed = os.environ.get("FACTORY_SEED")
    if seed:
        seed = int(seed)
    else:
        seed = random.randint(0, 2**32 - 1)

    print(f"\n{'=' * 70}")
    print(f"Factory seed: {seed}")
    print(f"To reproduce this test run, set: FACTORY_SEED={seed}")
    print(f"{'=' * 70}\n")

    Faker.seed(seed)
    random.seed(seed)

    return seed


@pytest.fixture
def storage_manager(tmp_path):
    """Create a StorageManager backed by a temporary notevault.db."""
    storage = StorageManager(database_path=tmp_path)
    yield storage
    storage.close()


@pytest.fixture
def hierarchy(storage_manager):
    return HierarchyManager(storage_manager)


@pytest.fixture
def selection(hierarchy):
    return hierarchy.selection


@pytest.fixture
def storage_session(storage_manager):
    """Session with the row factories bound to it."""
    with storage_manager.get_session() as session:
        FolderRecordFactory._meta.sqlalchemy_session = session  # type: ignore[misc]
        FileRecordFactory._meta.sqlalchemy_session = session  # type: ignore[misc]
        yield session


@pytest.fixture
def sample_tree(hierarchy):
    """A small tree:

    root
    ├── Projects
    │   ├── Alpha
    │   │   └── plan.md
    │   └── notes.md
    └── Journal
        └── today.md
    """
    projects = hierarchy.create_folder("Projects", "root")
    alpha = hierarchy.create_folder("Alpha", projects)
    journal = hierarchy.create_folder("Journal", "root")
    plan = hierarchy.create_file("plan.md", alpha, "# Plan")
    notes = hierarchy.create_file("notes.md", projects, "some notes")
    today = hierarchy.create_file("today.md", journal, "dear diary")
    return {
        "projects": projects,
        "alpha": alpha,
        "journal": journal,
        "plan": plan,
        "notes": notes,
        "today": today,
    }
