"""
Staleness Service for snowproxy.

Compares an object's current remote DDL with a previously synced local
file by SHA-256 digest.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import ObjectCatalog, qualified_name
from snowproxy.services.errors import ErrorKind, ToolError, excluded_error
from snowproxy.services.sync_models import StalenessCheck, StalenessReason

logger = logging.getLogger(__name__)


def compute_content_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class StalenessService:
    """Service for detecting drift between remote DDL and local files."""

    def __init__(self, catalog: ObjectCatalog, checker: ExclusionChecker):
        self._catalog = catalog
        self._checker = checker

    async def check_staleness(
        self,
        object_name: str,
        object_type: str,
        local_path: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> StalenessCheck:
        """
        Check whether a local DDL file still matches the remote object.

        Args:
            object_name: Object name, unqualified or qualified
            object_type: Object type used for SHOW CREATE
            local_path: Path of the local DDL file
            database: Optional database qualifier
            schema: Optional schema qualifier
            execution: Connection options for the DDL fetch

        Returns:
            StalenessCheck; a missing local file is stale with reason ``missing``.

        Raises:
            ToolError: EXCLUDED_OBJECT for excluded names (never fetched),
                OBJECT_NOT_FOUND when the remote DDL is empty,
                STALENESS_CHECK_ERROR when the local file cannot be read.
        """
        full_name = qualified_name(database, schema, object_name)

        exclusion = self._checker.check_reference(full_name)
        if exclusion.is_excluded:
            logger.info(
                f"Rejected staleness check for excluded object {full_name}",
                extra={"matched_pattern": exclusion.matched_pattern},
            )
            raise excluded_error(full_name, exclusion.matched_pattern, "E5001")

        current_ddl = await self._catalog.fetch_ddl(object_type, full_name, execution)
        if not current_ddl:
            raise ToolError(
                ErrorKind.OBJECT_NOT_FOUND,
                f"Could not retrieve DDL for {object_type} {full_name}",
                "E5002",
            )

        path = Path(local_path)
        if not path.exists():
            return StalenessCheck(
                is_stale=True,
                object_name=full_name,
                object_type=object_type,
                local_path=local_path,
                reason=StalenessReason.MISSING,
                current_hash=compute_content_hash(current_ddl),
            )

        try:
            local_ddl = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read local DDL file {local_path}: {e}")
            raise ToolError(ErrorKind.STALENESS_CHECK_ERROR, str(e), "E5003") from e

        current_hash = compute_content_hash(current_ddl)
        local_hash = compute_content_hash(local_ddl)
        is_stale = current_hash != local_hash

        return StalenessCheck(
            is_stale=is_stale,
            object_name=full_name,
            object_type=object_type,
            local_path=local_path,
            reason=StalenessReason.CHANGED if is_stale else StalenessReason.UNCHANGED,
            current_hash=current_hash,
            local_hash=local_hash,
        )
