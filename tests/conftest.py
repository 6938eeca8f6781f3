from __future__ import annotations

import pytest

from archviz.models import RepositoryDigest
from tests._fixtures.digests import DigestBuilder


@pytest.fixture
def digest_builder() -> DigestBuilder:
    """Provide a fresh digest builder for each test."""
    return DigestBuilder()


@pytest.fixture
def sample_digest(digest_builder: DigestBuilder) -> RepositoryDigest:
    """A small repository with three files, two directories and a short README."""
    return (
        digest_builder.directories("src/", "web/")
        .files("src/api.py", "web/index.ts", "config/settings.yml")
        .with_readme("# Sample\n\nA web app with a Python API.")
        .build()
    )
