"""
Shared fixtures: an in-memory source-control host with an origin and an
upstream repository.
"""

import itertools
import json
from typing import Dict, List, Optional

import pytest

from errors import NotFoundError, ValidationError
from hosting.base import SourceControlClient
from hosting.models import (
    BranchInfo,
    CommitInfo,
    FileContent,
    PullRequestSnapshot,
    ReferenceInfo,
    RepositoryHandle,
)
from mirroring.models import MirrorContext
from storage.mirror_ledger import MirrorLedger


class FakeRepository:
    """State of one hosted repository."""

    def __init__(self, repo_id: int, owner: str, name: str, default_branch: str = "main"):
        self.handle = RepositoryHandle(
            id=repo_id, owner=owner, name=name, default_branch=default_branch
        )
        self.refs: Dict[str, str] = {f"heads/{default_branch}": f"{name}-base"}
        self.files: Dict[tuple, FileContent] = {}
        self.pulls: Dict[int, PullRequestSnapshot] = {}
        # sha -> id of the repository the commit is reachable in
        self.commits: Dict[str, Optional[int]] = {}
        self.created_pulls: List[dict] = []

    def add_pull(
        self,
        number: int,
        merged: bool = True,
        sha: Optional[str] = None,
        title: Optional[str] = None,
        body: Optional[str] = "Upstream description",
    ) -> PullRequestSnapshot:
        pull = PullRequestSnapshot(
            id=10_000 + number,
            number=number,
            title=title or f"Upstream change {number}",
            body=body,
            merge_commit_sha=(sha or f"sha{number}") if merged else None,
            merged=merged,
        )
        self.pulls[number] = pull
        return pull


class FakeSourceControlClient(SourceControlClient):
    """In-memory implementation of the hosting capability interface."""

    def __init__(self):
        self.repositories: Dict[int, FakeRepository] = {}
        self.calls: List[str] = []
        self.failures: Dict[str, Exception] = {}
        self._blob_ids = itertools.count(1)
        self._pull_ids = itertools.count(500)

    def add_repository(self, repo: FakeRepository) -> FakeRepository:
        self.repositories[repo.handle.id] = repo
        return repo

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def _by_name(self, owner: str, name: str) -> FakeRepository:
        for repo in self.repositories.values():
            if repo.handle.owner == owner and repo.handle.name == name:
                return repo
        raise NotFoundError(f"{owner}/{name} not found")

    def _by_id(self, repo_id: int) -> FakeRepository:
        if repo_id not in self.repositories:
            raise NotFoundError(f"repository {repo_id} not found")
        return self.repositories[repo_id]

    def get_repository(self, owner, name):
        self._record("get_repository")
        return self._by_name(owner, name).handle

    def get_branch(self, repo_id, name):
        self._record("get_branch")
        repo = self._by_id(repo_id)
        if f"heads/{name}" not in repo.refs:
            raise NotFoundError(f"branch {name} not found")
        return BranchInfo(name=name, sha=repo.refs[f"heads/{name}"])

    def create_branch(self, owner, name, branch_name):
        self._record("create_branch")
        repo = self._by_name(owner, name)
        sha = repo.refs[f"heads/{repo.handle.default_branch}"]
        repo.refs[f"heads/{branch_name}"] = sha
        return BranchInfo(name=branch_name, sha=sha)

    def get_file_content(self, repo_id, path, ref):
        self._record("get_file_content")
        repo = self._by_id(repo_id)
        if (ref, path) not in repo.files:
            raise NotFoundError(f"{path}@{ref} not found")
        return repo.files[(ref, path)]

    def create_file(self, repo_id, path, branch, content, message):
        self._record("create_file")
        repo = self._by_id(repo_id)
        if (branch, path) in repo.files:
            raise ValidationError(f"{path} already exists")
        repo.files[(branch, path)] = FileContent(
            path=path, sha=f"blob{next(self._blob_ids)}", content=content
        )

    def update_file(self, repo_id, path, branch, content, previous_sha, message):
        self._record("update_file")
        repo = self._by_id(repo_id)
        current = repo.files.get((branch, path))
        if current is None:
            raise NotFoundError(f"{path}@{branch} not found")
        if current.sha != previous_sha:
            raise ValidationError(f"{path} does not match {previous_sha}")
        repo.files[(branch, path)] = FileContent(
            path=path, sha=f"blob{next(self._blob_ids)}", content=content
        )

    def list_closed_pull_request_numbers(self, owner, name):
        self._record("list_closed_pull_request_numbers")
        repo = self._by_name(owner, name)
        return sorted(repo.pulls, reverse=True)[:30]

    def get_pull_request(self, repo_id, number):
        self._record("get_pull_request")
        repo = self._by_id(repo_id)
        if number not in repo.pulls:
            raise NotFoundError(f"pull request #{number} not found")
        return repo.pulls[number]

    def get_commit(self, repo_id, sha):
        self._record("get_commit")
        repo = self._by_id(repo_id)
        if sha not in repo.commits:
            raise NotFoundError(f"commit {sha} not found")
        return CommitInfo(sha=sha, repository_id=repo.commits[sha])

    def get_reference(self, repo_id, ref):
        self._record("get_reference")
        repo = self._by_id(repo_id)
        if ref not in repo.refs:
            raise NotFoundError(f"reference {ref} not found")
        return ReferenceInfo(ref=f"refs/{ref}", sha=repo.refs[ref])

    def create_reference(self, repo_id, ref, sha):
        self._record("create_reference")
        repo = self._by_id(repo_id)
        if ref in repo.refs:
            raise ValidationError("Reference already exists")
        repo.refs[ref] = sha
        return ReferenceInfo(ref=f"refs/{ref}", sha=sha)

    def update_reference(self, repo_id, ref, sha, force):
        self._record("update_reference")
        repo = self._by_id(repo_id)
        if ref not in repo.refs:
            raise NotFoundError(f"reference {ref} not found")
        repo.refs[ref] = sha
        return ReferenceInfo(ref=f"refs/{ref}", sha=sha)

    def create_pull_request(self, repo_id, title, head, base, body):
        self._record("create_pull_request")
        repo = self._by_id(repo_id)
        head_sha = repo.refs.get(f"heads/{head}")
        if head_sha is None:
            raise ValidationError(f"Validation Failed: head {head} is invalid")
        if repo.commits.get(head_sha) == repo.handle.id:
            raise ValidationError(
                f"Validation Failed: No commits between {base} and {head}"
            )
        if any(pr["head"] == head for pr in repo.created_pulls):
            raise ValidationError(
                f"Validation Failed: A pull request already exists for {head}."
            )
        number = next(self._pull_ids)
        repo.created_pulls.append(
            {"number": number, "title": title, "head": head, "base": base, "body": body}
        )
        return PullRequestSnapshot(id=number * 10, number=number, title=title, body=body)

    def ledger_numbers(self, repo: FakeRepository, branch: str = "MirrorCollapse") -> list:
        return json.loads(repo.files[(branch, "mirrored.json")].content)


@pytest.fixture
def fake_client():
    return FakeSourceControlClient()


@pytest.fixture
def origin_repo(fake_client):
    return fake_client.add_repository(FakeRepository(1, "me", "origin", "main"))


@pytest.fixture
def upstream_repo(fake_client):
    return fake_client.add_repository(FakeRepository(2, "them", "upstream", "master"))


@pytest.fixture
def context(fake_client, origin_repo, upstream_repo):
    """A resolved context with an empty ledger already in place."""
    origin_repo.refs["heads/MirrorCollapse"] = "origin-base"
    ledger = MirrorLedger(fake_client, origin_repo.handle, "MirrorCollapse")
    ledger.ensure_exists()
    fake_client.calls.clear()
    return MirrorContext(
        client=fake_client,
        origin=origin_repo.handle,
        upstream=upstream_repo.handle,
        ledger=ledger,
    )
