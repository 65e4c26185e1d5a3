"""
Main Application Entry Point.

Runs a single mirroring pass and exits:
- Settings directory creation, settings load and re-save
- GitHub client initialization
- Pipeline execution
- Error handling and logging

Failures are logged and end the run early; no exit codes are defined.
"""

import asyncio
from typing import Optional

from config import SettingsFile, configure_logging, logger
from errors import ConfigurationError
from hosting.github_client import GitHubSourceControlClient
from mirroring.executor import MirrorExecutor
from mirroring.models import MirrorRunSummary
from mirroring.pipeline import MirrorPipeline
from mirroring.resolver import RepositoryResolver
from mirroring.scanner import MissingPullScanner
from mirroring.verifier import MirrorVerifier


async def main(
    settings_file: Optional[SettingsFile] = None,
) -> Optional[MirrorRunSummary]:
    """
    Execute the main application workflow.

    Performs the following steps:
    1. Loads settings and saves them back, so a template file exists
    2. Initializes the GitHub client with the configured credentials
    3. Runs one mirroring pass

    Returns:
        Optional[MirrorRunSummary]: Run counts, or None if the run ended early.
    """
    settings_file = settings_file or SettingsFile()
    logger.info(f"Data Directory: {settings_file.data_dir}")

    try:
        settings = settings_file.load()
    except ConfigurationError as e:
        logger.critical(
            {"message": "Critical: settings could not be loaded", "error": str(e)}
        )
        return None
    settings_file.save(settings)
    configure_logging(settings)

    logger.debug("initializing github client...")
    try:
        client = GitHubSourceControlClient.from_settings(settings)
    except ConfigurationError as e:
        logger.critical(
            {"message": "Critical: Github Client failed to populate.", "error": str(e)}
        )
        return None

    pipeline = MirrorPipeline(
        RepositoryResolver(client, settings.mirror_branch, settings.ledger_path),
        MissingPullScanner(client, settings.scan_window),
        MirrorVerifier(client),
        MirrorExecutor(client, settings.pr_title_prefix, settings.pr_body_prefix),
    )

    logger.info("mirroring pull requests...")
    summary = await pipeline.run(settings.origin_repo, settings.upstream_repo)
    logger.info("application finished")
    return summary


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    logger.info("Starting application ...")
    run()
