"""
Repository Resolver Test Suite.

This module contains tests for repository resolution, covering:
- owner/name parsing
- Mirror branch and ledger preparation
- Idempotence of the preparation
- Configuration and not-found errors
"""

import pytest

from errors import ConfigurationError, NotFoundError
from mirroring.resolver import RepositoryResolver, parse_repository_slug


@pytest.fixture
def resolver(fake_client):
    return RepositoryResolver(fake_client)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("me/origin", ("me", "origin")),
        (" me/origin ", ("me", "origin")),
    ],
)
def test_parse_repository_slug(value, expected):
    assert parse_repository_slug(value) == expected


@pytest.mark.parametrize(
    "value", [None, "", "origin", "me/", "/origin", "me/origin/extra", "me/ "]
)
def test_parse_repository_slug_invalid(value):
    with pytest.raises(ConfigurationError):
        parse_repository_slug(value, "OriginRepo")


def test_resolve_prepares_origin(resolver, fake_client, origin_repo, upstream_repo):
    """Test that resolution creates the mirror branch and an empty ledger."""
    context = resolver.resolve("me/origin", "them/upstream")

    assert context.origin == origin_repo.handle
    assert context.upstream == upstream_repo.handle
    assert origin_repo.refs["heads/MirrorCollapse"] == origin_repo.refs["heads/main"]
    assert fake_client.ledger_numbers(origin_repo) == []
    assert context.ledger.read() == []


def test_resolve_is_idempotent(resolver, fake_client, origin_repo, upstream_repo):
    """Test that a second resolution does not create anything."""
    resolver.resolve("me/origin", "them/upstream")
    context = resolver.resolve("me/origin", "them/upstream")
    context.ledger.add(5)

    fake_client.calls.clear()
    resolver.resolve("me/origin", "them/upstream")

    assert "create_branch" not in fake_client.calls
    assert "create_file" not in fake_client.calls
    assert fake_client.ledger_numbers(origin_repo) == [5]


def test_resolve_keeps_existing_branch(resolver, origin_repo, upstream_repo):
    """Test that an existing mirror branch is not moved."""
    origin_repo.refs["heads/MirrorCollapse"] = "ledger-tip"

    resolver.resolve("me/origin", "them/upstream")

    assert origin_repo.refs["heads/MirrorCollapse"] == "ledger-tip"


def test_resolve_rejects_configuration_before_remote_calls(
    resolver, fake_client, origin_repo, upstream_repo
):
    """Test that malformed settings fail without touching the host."""
    with pytest.raises(ConfigurationError):
        resolver.resolve("me/origin", "upstream-without-owner")
    with pytest.raises(ConfigurationError):
        resolver.resolve(None, "them/upstream")

    assert fake_client.calls == []


def test_resolve_missing_repository(resolver, origin_repo):
    """Test that a missing upstream repository is reported as not found."""
    with pytest.raises(NotFoundError):
        resolver.resolve("me/origin", "them/upstream")


def test_resolve_with_custom_branch_and_path(fake_client, origin_repo, upstream_repo):
    resolver = RepositoryResolver(fake_client, "mirror-state", "state/ledger.json")

    context = resolver.resolve("me/origin", "them/upstream")

    assert "heads/mirror-state" in origin_repo.refs
    assert ("mirror-state", "state/ledger.json") in origin_repo.files
    assert context.ledger.path == "state/ledger.json"
