"""
Mirroring Data Models.

Defines the run context passed between mirroring stages and the results
they produce.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from hosting.base import SourceControlClient
from hosting.models import RepositoryHandle
from storage.mirror_ledger import MirrorLedger


@dataclass(frozen=True)
class MirrorContext:
    """
    Everything a mirroring stage needs for one run.

    Attributes:
        client (SourceControlClient): Hosting client for both repositories.
        origin (RepositoryHandle): Downstream repository receiving mirrors.
        upstream (RepositoryHandle): Repository whose merged PRs are mirrored.
        ledger (MirrorLedger): Persisted list of mirrored PR numbers in origin.
    """

    client: SourceControlClient
    origin: RepositoryHandle
    upstream: RepositoryHandle
    ledger: MirrorLedger


class MirrorOutcome(Enum):
    """
    Result of mirroring one pull request.

    Attributes:
        CREATED: A mirror pull request was opened
        IDENTICAL: Origin already has the content, nothing to open
    """

    CREATED = "created"
    IDENTICAL = "identical"


class MirrorRunSummary(BaseModel):
    """Counts for a completed mirroring run."""

    candidates: int = 0
    verified_missing: int = 0
    mirrored: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)
