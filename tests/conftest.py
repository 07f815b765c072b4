"""Pytest fixtures for docsink tests."""

import logging
import os
import threading
import time
from typing import Any, List, Optional

import pytest

from docsink.connection import ConnectionProvider, Handle
from docsink.fields import create_field_spec


class FakeHandle(Handle):
    """Handle that records every call on its provider."""

    def __init__(self, provider: "FakeProvider"):
        self.provider = provider
        self.released = False

    def submit(self, document) -> None:
        p = self.provider
        with p.guard:
            p.active += 1
            if p.active > 1:
                p.overlaps += 1
            p.submit_count += 1
            number = p.submit_count
        try:
            p.calls.append("submit")
            if p.gate is not None:
                p.gate.wait(timeout=5)
            if p.submit_delay:
                time.sleep(p.submit_delay)
            error = p.submit_errors.get(number)
            if error is not None:
                raise error
            p.documents.append(document)
        finally:
            with p.guard:
                p.active -= 1

    def commit(self) -> None:
        self.provider.calls.append("commit")
        if self.provider.commit_error is not None:
            raise self.provider.commit_error

    def release(self) -> None:
        if not self.released:
            self.provider.calls.append("release")
        self.released = True


class FakeProvider(ConnectionProvider):
    """
    In-memory stand-in for a document store.

    Attributes:
        calls: "acquire" / "submit" / "commit" / "release" in call order
        documents: Documents successfully submitted
        submit_errors: 1-based submit number -> exception to raise
        overlaps: Times two submits were in flight at once
    """

    def __init__(self):
        self.calls: List[str] = []
        self.documents: List[Any] = []
        self.submit_errors = {}
        self.commit_error: Optional[Exception] = None
        self.acquire_error: Optional[Exception] = None
        self.submit_delay = 0.0
        self.gate: Optional[threading.Event] = None
        self.guard = threading.Lock()
        self.active = 0
        self.overlaps = 0
        self.submit_count = 0
        self.closed = False

    def acquire(self) -> FakeHandle:
        self.calls.append("acquire")
        if self.acquire_error is not None:
            raise self.acquire_error
        return FakeHandle(self)

    def close(self) -> None:
        self.closed = True

    def messages(self) -> List[str]:
        return [dict(doc)["message"] for doc in self.documents]

    def __str__(self) -> str:
        return "FakeProvider"


def build_record(
    msg: str = "hello",
    args=None,
    level: int = logging.INFO,
    end_of_batch: bool = False,
    **extra,
) -> logging.LogRecord:
    record = logging.LogRecord("app", level, __file__, 10, msg, args, None)
    if end_of_batch:
        record.end_of_batch = True
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def provider():
    """A fresh in-memory provider."""
    return FakeProvider()


@pytest.fixture
def make_record():
    """Factory for logging.LogRecord instances."""
    return build_record


@pytest.fixture
def field_specs():
    """literal / timestamp / pattern specs, in that order."""
    return [
        create_field_spec("application", literal="billing"),
        create_field_spec("timestamp", is_timestamp=True),
        create_field_spec("message", pattern="%(message)s"),
    ]


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def make_provider():
    """Factory for additional providers."""
    return FakeProvider
