"""
Mirror Pull Request Executor.

Mirrors one upstream pull request into the origin:

1. Point branch ``mirror-<number>`` at the merge commit, creating it or
   force-updating a stale pointer left by an earlier run.
2. Open a pull request from that branch into origin's default branch.
3. Record the number in the ledger.

Each step is safe to repeat, so a run interrupted between steps is finished
by the next one.
"""

from typing import Optional

from config import logger
from errors import NotFoundError, ValidationError
from hosting.base import SourceControlClient
from hosting.models import PullRequestSnapshot, ReferenceInfo
from mirroring.models import MirrorContext, MirrorOutcome

MIRROR_BANNER = "-- Mirror Pull Request - MirrorCollapse -- "
NO_COMMITS_MESSAGE = "no commits between"


def mirror_branch_name(number: int) -> str:
    return f"mirror-{number}"


class MirrorExecutor:
    """
    Creates mirror branches and pull requests in the origin.

    Attributes:
        client (SourceControlClient): Hosting client.
        title_prefix (str): Inserted after ``[MIRROR]`` in the title.
        body_prefix (str): Inserted between the banner and the upstream body.
    """

    def __init__(
        self,
        client: SourceControlClient,
        title_prefix: Optional[str] = None,
        body_prefix: Optional[str] = None,
    ):
        self.client = client
        self.title_prefix = title_prefix or ""
        self.body_prefix = body_prefix or ""

    def mirror_title(self, pull: PullRequestSnapshot) -> str:
        return f"[MIRROR]{self.title_prefix} {pull.title}"

    def mirror_body(self, pull: PullRequestSnapshot) -> str:
        return f"{MIRROR_BANNER}\n{self.body_prefix}\n" + (pull.body or "")

    def ensure_branch(
        self, context: MirrorContext, pull: PullRequestSnapshot
    ) -> ReferenceInfo:
        """
        Point the mirror branch at the pull request's merge commit.

        Returns:
            ReferenceInfo: The created or updated reference.
        """
        ref = f"heads/{mirror_branch_name(pull.number)}"
        try:
            self.client.get_reference(context.origin.id, ref)
        except NotFoundError:
            logger.debug({"message": "Creating mirror branch", "ref": ref})
            return self.client.create_reference(
                context.origin.id, ref, pull.merge_commit_sha
            )

        logger.debug({"message": "Refreshing mirror branch", "ref": ref})
        return self.client.update_reference(
            context.origin.id, ref, pull.merge_commit_sha, force=True
        )

    async def mirror(
        self, context: MirrorContext, pull: PullRequestSnapshot
    ) -> MirrorOutcome:
        """
        Mirror one pull request and record it in the ledger.

        Args:
            context (MirrorContext): Run context.
            pull (PullRequestSnapshot): Verified-missing upstream pull request.

        Returns:
            MirrorOutcome: CREATED, or IDENTICAL when origin has nothing to merge.

        Raises:
            ValidationError: If the pull request is rejected for another reason.
                The ledger is left unchanged so the next run retries.
            TransportError: If a remote call fails.
        """
        logger.info({"message": f"Mirroring Pull {pull.number}", "title": pull.title})
        self.ensure_branch(context, pull)

        head = mirror_branch_name(pull.number)
        try:
            created = self.client.create_pull_request(
                context.origin.id,
                self.mirror_title(pull),
                head,
                context.origin.default_branch,
                self.mirror_body(pull),
            )
        except ValidationError as e:
            if NO_COMMITS_MESSAGE not in str(e).lower():
                raise
            logger.info(
                {
                    "message": "Origin already contains the changes, nothing to mirror",
                    "pr_number": pull.number,
                    "head": head,
                    "base": context.origin.default_branch,
                }
            )
            context.ledger.add(pull.number)
            return MirrorOutcome.IDENTICAL

        logger.info(
            {
                "message": "Opened mirror pull request",
                "pr_number": pull.number,
                "mirror_number": created.number,
            }
        )
        context.ledger.add(pull.number)
        return MirrorOutcome.CREATED
