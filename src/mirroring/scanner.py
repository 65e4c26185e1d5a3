"""
Missing Pull Request Scanner.

Finds upstream merged pull requests that are not yet in the mirror ledger.

GitHub cannot list pull requests filtered by merge state, so the scanner
takes the highest closed pull request number and fetches a fixed window of
numbers below it one by one. Numbers shared with issues come back as not
found and are skipped. Very old backlog outside the window is not seen.
"""

from typing import List

from config import logger
from errors import NotFoundError
from hosting.base import SourceControlClient
from hosting.models import PullRequestSnapshot
from mirroring.models import MirrorContext

DEFAULT_SCAN_WINDOW = 100


class MissingPullScanner:
    """
    Scans a window of recent upstream pull requests for unmirrored merges.

    Attributes:
        client (SourceControlClient): Hosting client.
        scan_window (int): How many pull request numbers to walk back.
    """

    def __init__(
        self, client: SourceControlClient, scan_window: int = DEFAULT_SCAN_WINDOW
    ):
        self.client = client
        self.scan_window = scan_window

    def newest_pull_number(self, context: MirrorContext) -> int:
        """Get the highest closed pull request number upstream, 0 if there is none."""
        numbers = self.client.list_closed_pull_request_numbers(
            context.upstream.owner, context.upstream.name
        )
        return max(numbers, default=0)

    def fetch_window(
        self, context: MirrorContext, newest: int
    ) -> List[PullRequestSnapshot]:
        """
        Fetch every pull request in the window ending at ``newest``.

        Args:
            context (MirrorContext): Run context.
            newest (int): Highest pull request number.

        Returns:
            List[PullRequestSnapshot]: Pull requests found, descending by number.
        """
        pulls = []
        lowest = max(newest - self.scan_window, 0)
        for number in range(newest, lowest, -1):
            try:
                pulls.append(self.client.get_pull_request(context.upstream.id, number))
            except NotFoundError:
                logger.debug(
                    {"message": "No pull request for number", "number": number}
                )
        return pulls

    async def scan(self, context: MirrorContext) -> List[PullRequestSnapshot]:
        """
        Produce upstream merged pull requests missing from the ledger.

        Args:
            context (MirrorContext): Run context.

        Returns:
            List[PullRequestSnapshot]: Candidates, descending by number.

        Raises:
            TransportError: If an upstream call fails.
            LedgerError: If the ledger cannot be read.
        """
        newest = self.newest_pull_number(context)
        if newest == 0:
            logger.info(
                {
                    "message": "Upstream has no closed pull requests",
                    "upstream": context.upstream.full_name,
                }
            )
            return []

        pulls = self.fetch_window(context, newest)
        logger.info({"message": f"Fetched {len(pulls)} pulls.", "newest": newest})

        merged = []
        for pull in pulls:
            if not pull.merged:
                continue
            if not pull.merge_commit_sha:
                logger.warning(
                    {
                        "message": "Merged pull request has no merge commit, skipping",
                        "pr_number": pull.number,
                    }
                )
                continue
            merged.append(pull)
        logger.info({"message": f" Of which {len(merged)} are merged."})

        mirrored = set(context.ledger.read())
        new_pulls = [pull for pull in merged if pull.number not in mirrored]
        logger.info({"message": f" Of which {len(new_pulls)} are new and not cached."})

        return new_pulls
