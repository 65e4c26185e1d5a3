"""
Repository Resolution Module.

Resolves the configured origin and upstream repositories and prepares the
origin for mirroring: the dedicated mirror branch and the ledger file on it
are created when missing. Running the resolver again against prepared state
changes nothing.
"""

from typing import Optional, Tuple

from config import logger
from errors import ConfigurationError, NotFoundError
from hosting.base import SourceControlClient
from hosting.models import RepositoryHandle
from mirroring.models import MirrorContext
from storage.mirror_ledger import MirrorLedger


def parse_repository_slug(
    value: Optional[str], setting_name: str = "repository"
) -> Tuple[str, str]:
    """
    Split an ``owner/name`` string.

    Args:
        value (Optional[str]): The configured value.
        setting_name (str): Setting name used in error messages.

    Returns:
        Tuple[str, str]: Owner and repository name.

    Raises:
        ConfigurationError: If the value is missing or not exactly two
            non-empty segments.
    """
    if value is None or not value.strip():
        raise ConfigurationError(f"{setting_name} is not set.")

    parts = value.strip().split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise ConfigurationError(
            f"{setting_name} '{value}' is invalid, expected 'owner/name'."
        )
    return parts[0].strip(), parts[1].strip()


class RepositoryResolver:
    """
    Resolves repositories and ensures the origin is ready for mirroring.

    Attributes:
        client (SourceControlClient): Hosting client.
        mirror_branch (str): Name of the branch holding the ledger.
        ledger_path (str): Path of the ledger file on that branch.
    """

    def __init__(
        self,
        client: SourceControlClient,
        mirror_branch: str = "MirrorCollapse",
        ledger_path: str = "mirrored.json",
    ):
        self.client = client
        self.mirror_branch = mirror_branch
        self.ledger_path = ledger_path

    def ensure_mirror_branch(self, origin: RepositoryHandle) -> bool:
        """Create the mirror branch from origin's default branch tip if absent.

        Returns:
            bool: True if the branch was created.
        """
        try:
            self.client.get_branch(origin.id, self.mirror_branch)
            return False
        except NotFoundError:
            branch = self.client.create_branch(
                origin.owner, origin.name, self.mirror_branch
            )
            logger.info(
                {
                    "message": "Created mirror branch",
                    "repository": origin.full_name,
                    "branch": branch.name,
                    "sha": branch.sha,
                }
            )
            return True

    def resolve(
        self, origin_slug: Optional[str], upstream_slug: Optional[str]
    ) -> MirrorContext:
        """
        Resolve both repositories and prepare the origin.

        Args:
            origin_slug (Optional[str]): Origin repository as ``owner/name``.
            upstream_slug (Optional[str]): Upstream repository as ``owner/name``.

        Returns:
            MirrorContext: The context for this run.

        Raises:
            ConfigurationError: If either slug is missing or malformed.
            NotFoundError: If either repository does not exist.
        """
        origin_owner, origin_name = parse_repository_slug(origin_slug, "OriginRepo")
        upstream_owner, upstream_name = parse_repository_slug(
            upstream_slug, "UpstreamRepo"
        )

        origin = self.client.get_repository(origin_owner, origin_name)
        upstream = self.client.get_repository(upstream_owner, upstream_name)
        logger.info(
            {
                "message": "Resolved repositories",
                "origin": origin.full_name,
                "upstream": upstream.full_name,
                "default_branch": origin.default_branch,
            }
        )

        self.ensure_mirror_branch(origin)
        ledger = MirrorLedger(self.client, origin, self.mirror_branch, self.ledger_path)
        ledger.ensure_exists()

        return MirrorContext(
            client=self.client, origin=origin, upstream=upstream, ledger=ledger
        )
