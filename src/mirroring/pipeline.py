"""
Mirroring Pipeline Module.

Runs one reconciliation pass end to end:

- Repository resolution and origin preparation
- Missing pull request scan
- Verification against commits already in origin
- Mirroring of every pull request still missing

Pull requests are handled one at a time. A rejected pull request, or one
whose objects vanish mid-run, is logged and the pass moves on; resolution,
ledger and transport failures end the pass early without a summary.
"""

from typing import Optional

from config import logger
from errors import (
    ConfigurationError,
    LedgerError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from mirroring.executor import MirrorExecutor
from mirroring.models import MirrorRunSummary
from mirroring.resolver import RepositoryResolver
from mirroring.scanner import MissingPullScanner
from mirroring.verifier import MirrorVerifier


class MirrorPipeline:
    """
    Coordinates the mirroring stages for one origin/upstream pair.

    Attributes:
        resolver (RepositoryResolver): Resolves repositories, prepares origin.
        scanner (MissingPullScanner): Finds unmirrored merged pull requests.
        verifier (MirrorVerifier): Drops candidates already present in origin.
        executor (MirrorExecutor): Mirrors the remaining candidates.
    """

    def __init__(
        self,
        resolver: RepositoryResolver,
        scanner: MissingPullScanner,
        verifier: MirrorVerifier,
        executor: MirrorExecutor,
    ):
        self.resolver = resolver
        self.scanner = scanner
        self.verifier = verifier
        self.executor = executor

    async def run(
        self, origin_slug: Optional[str], upstream_slug: Optional[str]
    ) -> Optional[MirrorRunSummary]:
        """
        Execute one mirroring pass.

        Args:
            origin_slug (Optional[str]): Origin repository as ``owner/name``.
            upstream_slug (Optional[str]): Upstream repository as ``owner/name``.

        Returns:
            Optional[MirrorRunSummary]: Run counts, or None if the pass ended early.
        """
        try:
            context = self.resolver.resolve(origin_slug, upstream_slug)
        except ConfigurationError as e:
            logger.critical(
                {"message": "Critical: invalid configuration", "error": str(e)}
            )
            return None
        except NotFoundError as e:
            logger.error(
                {
                    "message": "Critical: failed to populate repositories",
                    "error": str(e),
                }
            )
            return None
        except (TransportError, LedgerError, ValidationError) as e:
            logger.error(
                {"message": "Critical: failed to prepare origin", "error": str(e)}
            )
            return None

        summary = MirrorRunSummary()
        try:
            context.client.check_rate_limit("Repository resolution")
            candidates = await self.scanner.scan(context)
            summary.candidates = len(candidates)
            logger.info({"message": f"Found {len(candidates)} missing PRs."})

            context.client.check_rate_limit("Missing pull scan")
            missing = await self.verifier.verify(context, candidates)
            summary.verified_missing = len(missing)

            context.client.check_rate_limit("Verification")
            for pull in missing:
                try:
                    await self.executor.mirror(context, pull)
                    summary.mirrored.append(pull.number)
                except (ValidationError, NotFoundError) as e:
                    logger.error(
                        {
                            "message": "Mirror pull request rejected",
                            "pr_number": pull.number,
                            "error": str(e),
                        }
                    )
                    summary.failed.append(pull.number)

        except (TransportError, LedgerError, NotFoundError) as e:
            logger.error(
                {
                    "message": "Critical: mirroring pass aborted",
                    "origin": context.origin.full_name,
                    "upstream": context.upstream.full_name,
                    "error": str(e),
                }
            )
            return None

        logger.info(
            {
                "message": "Mirroring pass finished",
                "candidates": summary.candidates,
                "verified_missing": summary.verified_missing,
                "mirrored": len(summary.mirrored),
                "failed": len(summary.failed),
            }
        )
        return summary
