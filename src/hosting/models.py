"""
Source-Control Hosting Data Models.

Read-only snapshots returned by hosting clients. Uses Pydantic for
validation; every model is frozen because snapshots are never mutated
locally.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class RepositoryHandle(BaseModel):
    """A resolved repository."""

    model_config = ConfigDict(frozen=True)

    id: int
    owner: str
    name: str
    default_branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class PullRequestSnapshot(BaseModel):
    """Pull request data fetched from a repository."""

    model_config = ConfigDict(frozen=True)

    id: int
    number: int
    title: str
    body: Optional[str] = None
    merge_commit_sha: Optional[str] = None
    merged: bool = False


class BranchInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sha: str


class FileContent(BaseModel):
    """Decoded file content at a ref, with the blob sha needed for updates."""

    model_config = ConfigDict(frozen=True)

    path: str
    sha: str
    content: str


class CommitInfo(BaseModel):
    """A commit and the repository it is reachable in (None when unknown)."""

    model_config = ConfigDict(frozen=True)

    sha: str
    repository_id: Optional[int] = None


class ReferenceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    ref: str
    sha: str
