"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import pytest

from fragments.storage import set_store
from fragments.storage.local import LocalStore
from fragments.storage.memory import MemoryStore
from fragments.storage.s3 import S3Store
from tests.utils_s3 import FakeS3Client


@pytest.fixture
def memory_store():
    """
    Fresh in-memory store, also installed as the process-wide store.

    Returns:
        MemoryStore instance
    """
    store = MemoryStore()
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture
def local_store(tmp_path):
    """
    Filesystem store rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        LocalStore instance
    """
    return LocalStore(tmp_path / "fragments")


@pytest.fixture(params=["memory", "local", "s3"])
def any_store(request, tmp_path):
    """Each interchangeable backend; S3 runs against an in-process fake client."""
    if request.param == "memory":
        return MemoryStore()
    if request.param == "local":
        return LocalStore(tmp_path / "fragments")
    return S3Store("fragments-bucket", prefix="fragments", client=FakeS3Client())


@pytest.fixture
def owner_id():
    return "11d4c22e42c8f61feaba154683dea407b101cfd90987dda9e342843263ca420a"


@pytest.fixture
def other_owner_id():
    return "6e2e7a4c5b1f4e4a8c3d2b1a0f9e8d7c6b5a4f3e2d1c0b9a8f7e6d5c4b3a2f1e"
