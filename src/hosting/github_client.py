"""
GitHub Source-Control Client.

Implements the hosting capability interface on top of PyGithub. Every call
translates PyGithub and transport exceptions into the mirroring error
taxonomy so that the mirroring stages never see library-specific errors.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

import requests
from github import Auth, Github, GithubException, UnknownObjectException
from github.PullRequest import PullRequest
from github.Repository import Repository

from config import PRODUCT_NAME, PRODUCT_VERSION, Settings, logger
from errors import NotFoundError, TransportError, ValidationError
from hosting.base import SourceControlClient
from hosting.models import (
    BranchInfo,
    CommitInfo,
    FileContent,
    PullRequestSnapshot,
    ReferenceInfo,
    RepositoryHandle,
)

# Compare statuses meaning the commit is an ancestor of (or equal to) the base
REACHABLE_COMPARE_STATUSES = ("behind", "identical")


def _describe_github_exception(e: GithubException) -> str:
    """Join the top-level message and every nested error message of a GitHub error."""
    data = e.data if isinstance(e.data, dict) else {}
    parts = []
    if data.get("message"):
        parts.append(str(data["message"]))
    for error in data.get("errors") or []:
        if isinstance(error, dict) and error.get("message"):
            parts.append(str(error["message"]))
        elif isinstance(error, str):
            parts.append(error)
    if not parts:
        parts.append(str(e))
    return ": ".join(parts)


@contextmanager
def github_errors(operation: str) -> Iterator[None]:
    """
    Translate PyGithub exceptions raised inside the block.

    Args:
        operation (str): Description used in the translated error message.

    Raises:
        NotFoundError: For HTTP 404.
        ValidationError: For HTTP 422.
        TransportError: For any other GitHub or transport failure.
    """
    try:
        yield
    except UnknownObjectException as e:
        raise NotFoundError(f"{operation}: {_describe_github_exception(e)}") from e
    except GithubException as e:
        message = f"{operation}: {_describe_github_exception(e)}"
        if e.status == 404:
            raise NotFoundError(message) from e
        if e.status == 422:
            raise ValidationError(message) from e
        raise TransportError(f"{message} (status {e.status})") from e
    except requests.RequestException as e:
        raise TransportError(f"{operation}: {e}") from e


class GitHubSourceControlClient(SourceControlClient):
    """
    GitHubSourceControlClient talks to the GitHub REST API through PyGithub.
    Resolved repositories are cached by id for the lifetime of the client.
    """

    def __init__(self, github: Github):
        """Initialize the client.

        Args:
            github (Github): An authenticated PyGithub instance.
        """
        self.github = github
        self._repositories: Dict[int, Repository] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubSourceControlClient":
        """
        Build a client authenticated with the configured credentials.

        Raises:
            ConfigurationError: If the credentials for the active mode are missing.
        """
        login, password = settings.credentials()
        if settings.github_oauth:
            auth = Auth.Token(login)
        else:
            auth = Auth.Login(login, password)
        github = Github(auth=auth, user_agent=f"{PRODUCT_NAME}/{PRODUCT_VERSION}")
        return cls(github)

    def _repo(self, repo_id: int) -> Repository:
        repo = self._repositories.get(repo_id)
        if repo is None:
            with github_errors(f"get repository {repo_id}"):
                repo = self.github.get_repo(repo_id)
            self._repositories[repo_id] = repo
        return repo

    @staticmethod
    def _handle(repo: Repository) -> RepositoryHandle:
        return RepositoryHandle(
            id=repo.id,
            owner=repo.owner.login,
            name=repo.name,
            default_branch=repo.default_branch,
        )

    @staticmethod
    def _snapshot(pr: PullRequest) -> PullRequestSnapshot:
        return PullRequestSnapshot(
            id=pr.id,
            number=pr.number,
            title=pr.title,
            body=pr.body,
            merge_commit_sha=pr.merge_commit_sha,
            merged=bool(pr.merged),
        )

    def check_rate_limit(self, check_name: str = None) -> None:
        """
        Check and log the GitHub API rate limit status.

        Args:
            check_name (Optional[str]): Identifier for the rate limit check point.

        Raises:
            TransportError: When the rate limit is exhausted.
        """
        with github_errors("get rate limit"):
            remaining, limit = self.github.rate_limiting
            reset_time = datetime.fromtimestamp(
                self.github.rate_limiting_resettime, timezone.utc
            )
        now = datetime.now(timezone.utc)

        logger.debug(
            {
                "message": f"{check_name} API rate limit status",
                "remaining_points": remaining,
                "total_points": limit,
                "reset_time": reset_time.isoformat(),
                "minutes_to_reset": (reset_time - now).total_seconds() / 60,
            }
        )

        # If less than 10% of rate limit remains, log a warning
        if remaining < (limit * 0.1) and remaining > 0:
            logger.warning(
                {
                    "message": "GitHub API rate limit running low",
                    "remaining_points": remaining,
                    "reset_time": reset_time.isoformat(),
                }
            )

        if remaining == 0:
            wait_time = (reset_time - now).total_seconds()
            logger.critical(
                {
                    "message": "GitHub API rate limit exhausted",
                    "reset_time": reset_time.isoformat(),
                    "wait_time_seconds": wait_time,
                }
            )
            raise TransportError(
                f"GitHub API rate limit exhausted. Resets in {wait_time/60:.1f} minutes"
            )

    def get_repository(self, owner: str, name: str) -> RepositoryHandle:
        with github_errors(f"get repository {owner}/{name}"):
            repo = self.github.get_repo(f"{owner}/{name}")
            handle = self._handle(repo)
        self._repositories[handle.id] = repo
        return handle

    def get_branch(self, repo_id: int, name: str) -> BranchInfo:
        repo = self._repo(repo_id)
        with github_errors(f"get branch {name}"):
            branch = repo.get_branch(name)
            return BranchInfo(name=branch.name, sha=branch.commit.sha)

    def create_branch(self, owner: str, name: str, branch_name: str) -> BranchInfo:
        with github_errors(f"create branch {branch_name} in {owner}/{name}"):
            repo = self.github.get_repo(f"{owner}/{name}")
            base = repo.get_branch(repo.default_branch)
            repo.create_git_ref(f"refs/heads/{branch_name}", base.commit.sha)
        return BranchInfo(name=branch_name, sha=base.commit.sha)

    def get_file_content(self, repo_id: int, path: str, ref: str) -> FileContent:
        repo = self._repo(repo_id)
        with github_errors(f"get {path}@{ref}"):
            contents = repo.get_contents(path, ref=ref)
            if isinstance(contents, list):
                raise NotFoundError(f"get {path}@{ref}: path is a directory")
            return FileContent(
                path=contents.path,
                sha=contents.sha,
                content=contents.decoded_content.decode("utf-8"),
            )

    def create_file(
        self, repo_id: int, path: str, branch: str, content: str, message: str
    ) -> None:
        repo = self._repo(repo_id)
        with github_errors(f"create {path}@{branch}"):
            repo.create_file(path, message, content, branch=branch)

    def update_file(
        self,
        repo_id: int,
        path: str,
        branch: str,
        content: str,
        previous_sha: str,
        message: str,
    ) -> None:
        repo = self._repo(repo_id)
        with github_errors(f"update {path}@{branch}"):
            repo.update_file(path, message, content, previous_sha, branch=branch)

    def list_closed_pull_request_numbers(self, owner: str, name: str) -> List[int]:
        with github_errors(f"list closed pull requests of {owner}/{name}"):
            repo = self.github.get_repo(f"{owner}/{name}")
            return [pr.number for pr in repo.get_pulls(state="closed").get_page(0)]

    def get_pull_request(self, repo_id: int, number: int) -> PullRequestSnapshot:
        repo = self._repo(repo_id)
        with github_errors(f"get pull request #{number}"):
            return self._snapshot(repo.get_pull(number))

    def get_commit(self, repo_id: int, sha: str) -> CommitInfo:
        """
        Fetch a commit and report whether it is reachable in the repository.

        GitHub serves commits from anywhere in a fork network, so a commit
        counts as owned by the repository only when it is an ancestor of
        the default branch.
        """
        repo = self._repo(repo_id)
        try:
            with github_errors(f"get commit {sha}"):
                commit = repo.get_commit(sha)
        except ValidationError as e:
            # GitHub answers 422 for shas it has never seen
            raise NotFoundError(str(e)) from e

        owner_id: Optional[int] = None
        try:
            with github_errors(f"compare {repo.default_branch}...{sha}"):
                comparison = repo.compare(repo.default_branch, commit.sha)
            if comparison.status in REACHABLE_COMPARE_STATUSES:
                owner_id = repo.id
        except (NotFoundError, ValidationError):
            owner_id = None

        return CommitInfo(sha=commit.sha, repository_id=owner_id)

    def get_reference(self, repo_id: int, ref: str) -> ReferenceInfo:
        repo = self._repo(repo_id)
        with github_errors(f"get reference {ref}"):
            git_ref = repo.get_git_ref(ref)
            return ReferenceInfo(ref=git_ref.ref, sha=git_ref.object.sha)

    def create_reference(self, repo_id: int, ref: str, sha: str) -> ReferenceInfo:
        repo = self._repo(repo_id)
        with github_errors(f"create reference {ref}"):
            git_ref = repo.create_git_ref(f"refs/{ref}", sha)
            return ReferenceInfo(ref=git_ref.ref, sha=git_ref.object.sha)

    def update_reference(
        self, repo_id: int, ref: str, sha: str, force: bool
    ) -> ReferenceInfo:
        repo = self._repo(repo_id)
        with github_errors(f"update reference {ref}"):
            git_ref = repo.get_git_ref(ref)
            git_ref.edit(sha, force=force)
            return ReferenceInfo(ref=git_ref.ref, sha=sha)

    def create_pull_request(
        self, repo_id: int, title: str, head: str, base: str, body: str
    ) -> PullRequestSnapshot:
        repo = self._repo(repo_id)
        with github_errors(f"create pull request {head} -> {base}"):
            pr = repo.create_pull(base=base, head=head, title=title, body=body)
            return self._snapshot(pr)
