"""
Abstract Base Class for Source-Control Hosting Clients.

Defines the narrow capability interface the mirroring stages consume.
Implementations (GitHub, test fakes) translate their native failures into
the exceptions from ``errors``:

- ``NotFoundError`` when the requested object does not exist
- ``ValidationError`` when the service rejects a request
- ``TransportError`` for every other remote failure
"""

from abc import ABC, abstractmethod
from typing import List

from hosting.models import (
    BranchInfo,
    CommitInfo,
    FileContent,
    PullRequestSnapshot,
    ReferenceInfo,
    RepositoryHandle,
)


class SourceControlClient(ABC):
    """
    Abstract base class for source-control hosting clients.

    References (``ref``) are given without the ``refs/`` prefix, e.g.
    ``heads/mirror-42``.
    """

    @abstractmethod
    def get_repository(self, owner: str, name: str) -> RepositoryHandle:
        """
        Resolve a repository.

        Raises:
            NotFoundError: If the repository does not exist.
        """

    @abstractmethod
    def get_branch(self, repo_id: int, name: str) -> BranchInfo:
        """Raises NotFoundError if the branch does not exist."""

    @abstractmethod
    def create_branch(self, owner: str, name: str, branch_name: str) -> BranchInfo:
        """Create a branch from the tip of the repository's default branch."""

    @abstractmethod
    def get_file_content(self, repo_id: int, path: str, ref: str) -> FileContent:
        """Raises NotFoundError if the file does not exist at ``ref``."""

    @abstractmethod
    def create_file(
        self, repo_id: int, path: str, branch: str, content: str, message: str
    ) -> None:
        """Create a file on ``branch`` with the given commit message."""

    @abstractmethod
    def update_file(
        self,
        repo_id: int,
        path: str,
        branch: str,
        content: str,
        previous_sha: str,
        message: str,
    ) -> None:
        """Replace a file whose current blob sha is ``previous_sha``."""

    @abstractmethod
    def list_closed_pull_request_numbers(self, owner: str, name: str) -> List[int]:
        """Numbers of the most recent closed pull requests (one listing page)."""

    @abstractmethod
    def get_pull_request(self, repo_id: int, number: int) -> PullRequestSnapshot:
        """
        Fetch a pull request by number.

        Raises:
            NotFoundError: If no pull request has this number (e.g. it is an issue).
        """

    @abstractmethod
    def get_commit(self, repo_id: int, sha: str) -> CommitInfo:
        """Raises NotFoundError if the commit is unknown to the repository."""

    @abstractmethod
    def get_reference(self, repo_id: int, ref: str) -> ReferenceInfo:
        """Raises NotFoundError if the reference does not exist."""

    @abstractmethod
    def create_reference(self, repo_id: int, ref: str, sha: str) -> ReferenceInfo:
        """Create ``ref`` pointing at ``sha``."""

    @abstractmethod
    def update_reference(
        self, repo_id: int, ref: str, sha: str, force: bool
    ) -> ReferenceInfo:
        """Point ``ref`` at ``sha``, discarding history when ``force`` is set."""

    @abstractmethod
    def create_pull_request(
        self, repo_id: int, title: str, head: str, base: str, body: str
    ) -> PullRequestSnapshot:
        """
        Open a pull request.

        Raises:
            ValidationError: If the service rejects the pull request.
        """

    def check_rate_limit(self, check_name: str = None) -> None:
        """Log API quota status. Clients without quotas do nothing."""
