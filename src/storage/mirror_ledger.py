"""
Mirror Ledger Storage Module.

Persists the numbers of upstream pull requests that have already been
mirrored. The ledger is a JSON array stored in a file on a dedicated branch
of the origin repository, so it survives process restarts and is shared by
every run against that origin.

The ledger is never cached: every read fetches the file again, and every
write is a read-modify-write of the whole list.
"""

import json
from typing import List, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from config import logger
from errors import LedgerError, NotFoundError, ValidationError
from hosting.base import SourceControlClient
from hosting.models import RepositoryHandle

_LEDGER_ADAPTER = TypeAdapter(List[int])


class MirrorLedger:
    """
    Manages the persisted list of mirrored pull request numbers.

    Attributes:
        client (SourceControlClient): Client used to read and write the file.
        repository (RepositoryHandle): Origin repository holding the ledger.
        branch (str): Branch the ledger file lives on.
        path (str): Path of the ledger file.
    """

    def __init__(
        self,
        client: SourceControlClient,
        repository: RepositoryHandle,
        branch: str,
        path: str = "mirrored.json",
    ):
        self.client = client
        self.repository = repository
        self.branch = branch
        self.path = path

    def ensure_exists(self) -> bool:
        """Create the ledger file as an empty list if it is absent.

        Returns:
            bool: True if the file was created, False if it already existed.
        """
        try:
            self.client.get_file_content(self.repository.id, self.path, self.branch)
            return False
        except NotFoundError:
            self.client.create_file(
                self.repository.id,
                self.path,
                self.branch,
                json.dumps([]),
                f"create {self.path}",
            )
            logger.info(
                {
                    "message": "Created mirror ledger",
                    "repository": self.repository.full_name,
                    "branch": self.branch,
                    "file": self.path,
                }
            )
            return True

    def _fetch(self) -> Tuple[List[int], str]:
        try:
            file = self.client.get_file_content(
                self.repository.id, self.path, self.branch
            )
        except NotFoundError as e:
            raise LedgerError(
                f"Mirror ledger {self.path}@{self.branch} is missing"
            ) from e

        try:
            numbers = _LEDGER_ADAPTER.validate_python(json.loads(file.content))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(
                {
                    "message": "Corrupted mirror ledger",
                    "repository": self.repository.full_name,
                    "file": self.path,
                    "error": str(e),
                }
            )
            raise LedgerError(
                f"Mirror ledger {self.path} is not a JSON list of integers"
            ) from e

        return numbers, file.sha

    def read(self) -> List[int]:
        """Fetch the current list of mirrored pull request numbers.

        Raises:
            LedgerError: If the ledger file is missing or corrupted.
        """
        numbers, _ = self._fetch()
        return numbers

    def add(self, number: int) -> bool:
        """Record a pull request number as mirrored.

        Args:
            number (int): Upstream pull request number.

        Returns:
            bool: True if the number was written, False if it was already recorded.

        Raises:
            LedgerError: If the ledger file is missing, corrupted or cannot be
                written.
        """
        numbers, sha = self._fetch()
        if number in numbers:
            logger.debug(
                {
                    "message": "Pull request already in mirror ledger",
                    "pr_number": number,
                }
            )
            return False

        numbers.append(number)
        try:
            self.client.update_file(
                self.repository.id,
                self.path,
                self.branch,
                json.dumps(numbers),
                sha,
                f"update {self.path}",
            )
        except (ValidationError, NotFoundError) as e:
            raise LedgerError(f"Mirror ledger {self.path} update rejected: {e}") from e
        logger.info(
            {
                "message": "Recorded pull request in mirror ledger",
                "pr_number": number,
                "ledger_size": len(numbers),
            }
        )
        return True
