"""
Missing Pull Request Verification.

Checks scan candidates against ground truth: if a candidate's merge commit
is already reachable in the origin, it was mirrored before without being
recorded. Such candidates are added to the ledger and dropped.
"""

from typing import List

from config import logger
from errors import NotFoundError
from hosting.base import SourceControlClient
from hosting.models import PullRequestSnapshot
from mirroring.models import MirrorContext


class MirrorVerifier:
    """Partitions candidates into truly missing and already present."""

    def __init__(self, client: SourceControlClient):
        self.client = client

    def is_present_in_origin(
        self, context: MirrorContext, pull: PullRequestSnapshot
    ) -> bool:
        try:
            commit = self.client.get_commit(context.origin.id, pull.merge_commit_sha)
        except NotFoundError:
            return False
        # No repository, or not the origin = missing
        return commit.repository_id == context.origin.id

    async def verify(
        self, context: MirrorContext, pulls: List[PullRequestSnapshot]
    ) -> List[PullRequestSnapshot]:
        """
        Drop candidates whose merge commit is already in origin.

        Args:
            context (MirrorContext): Run context.
            pulls (List[PullRequestSnapshot]): Scan candidates.

        Returns:
            List[PullRequestSnapshot]: Candidates that still need a mirror.

        Raises:
            TransportError: If a commit lookup fails for any reason but absence.
            LedgerError: If the ledger cannot be updated.
        """
        missing = []
        for pull in pulls:
            logger.debug({"message": "Verifying pull", "pr_number": pull.number})
            if not self.is_present_in_origin(context, pull):
                missing.append(pull)
                continue

            context.ledger.add(pull.number)
            logger.info(
                {
                    "message": "Merge commit already in origin, recorded in ledger",
                    "pr_number": pull.number,
                    "sha": pull.merge_commit_sha,
                }
            )

        logger.info({"message": f" Of which {len(missing)} are actually missing."})
        return missing
