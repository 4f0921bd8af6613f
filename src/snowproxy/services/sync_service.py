"""
Sync Service for snowproxy.

Mirrors remote object definitions into a local directory tree: walks
databases, schemas and the objects inside each schema, fetches every
allowed object's DDL, writes it to a deterministic path and finally
writes an index summarizing the run.

The walk is an explicit worklist processed one node at a time, so there
is at most one CLI call in flight and the visiting order is stable.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import ObjectCatalog, qualified_name
from snowproxy.services.errors import SyncError
from snowproxy.services.sync_models import (
    EMPTY_DDL,
    EXCLUDED_BY_PATTERN,
    INDEX_FILE_NAME,
    LEAF_CATEGORIES,
    ObjectCategory,
    ObjectRepositoryIndex,
    SyncOptions,
    SyncReport,
    SyncResult,
    SyncStatus,
)

logger = logging.getLogger(__name__)

DATABASE_FILE_NAME = "_database.sql"
SCHEMA_FILE_NAME = "_schema.sql"


@dataclass(frozen=True)
class _WorkItem:
    """
    One node of the sync walk.

    With ``name`` set the node is an object to sync; without it the node
    lists ``category`` inside ``database``/``schema`` and expands into
    object nodes.
    """

    category: ObjectCategory
    database: Optional[str] = None
    schema: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_listing(self) -> bool:
        return self.name is None

    @property
    def full_name(self) -> str:
        return qualified_name(self.database, self.schema, self.name)


def safe_path_component(name: str) -> str:
    """Make an object name usable as a single path component."""
    component = name.replace("/", "_").replace("\\", "_")
    if component in ("", ".", ".."):
        return "_"
    return component


def object_file_path(target_dir: Path, item: _WorkItem) -> Path:
    """
    Return the file an object's DDL is written to.

    ``{target}/{db}/_database.sql``, ``{target}/{db}/{schema}/_schema.sql``
    and ``{target}/{db}/{schema}/{category}s/{object}.sql``.
    """
    if item.category is ObjectCategory.DATABASE:
        return target_dir / safe_path_component(item.name or "") / DATABASE_FILE_NAME
    if item.category is ObjectCategory.SCHEMA:
        return (
            target_dir
            / safe_path_component(item.database or "")
            / safe_path_component(item.name or "")
            / SCHEMA_FILE_NAME
        )
    return (
        target_dir
        / safe_path_component(item.database or "")
        / safe_path_component(item.schema or "")
        / f"{item.category.value}s"
        / f"{safe_path_component(item.name or '')}.sql"
    )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SyncService:
    """
    Service for syncing remote object DDL to a local repository.

    Exclusions are applied to the fully-qualified name of every node; the
    children of an excluded database or schema are never listed. Category
    toggles only decide which records and files are produced, so disabling
    databases still syncs the schemas and objects inside them.
    """

    def __init__(
        self,
        catalog: ObjectCatalog,
        checker: ExclusionChecker,
        default_target_dir: str = "./src",
        record_fetch_failures: bool = False,
    ):
        """
        Initialize the sync service.

        Args:
            catalog: Object catalog used for listings and DDL fetches
            checker: Exclusion checker applied to every node
            default_target_dir: Target used when a run does not name one
            record_fetch_failures: Record an ``error`` result when an allowed
                object's DDL comes back empty instead of dropping it
        """
        self._catalog = catalog
        self._checker = checker
        self._default_target_dir = default_target_dir
        self._record_fetch_failures = record_fetch_failures

    async def sync_objects(
        self,
        target_dir: Optional[str] = None,
        options: Optional[SyncOptions] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> SyncReport:
        """
        Run a full sync and overwrite the repository index.

        Args:
            target_dir: Directory to write into (default: configured target)
            options: Category toggles
            execution: Connection options passed to every CLI call

        Returns:
            SyncReport with the written index and its path.

        Raises:
            SyncError: If the target directory, an object file or the index
                cannot be written. Files written before the failure remain.
        """
        options = options or SyncOptions()
        target = target_dir or self._default_target_dir
        root = Path(target)

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create sync target {target}: {e}")
            raise SyncError(str(e)) from e

        results = await self._walk(root, options, execution)

        index = ObjectRepositoryIndex(last_sync=_utc_timestamp(), target_dir=target, objects=results)
        index_path = root / INDEX_FILE_NAME
        try:
            index_path.write_text(json.dumps(index.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot write sync index {index_path}: {e}")
            raise SyncError(str(e)) from e

        logger.info(
            "Sync completed",
            extra={
                "target_dir": target,
                "synced": index.object_count,
                "skipped": index.skipped_count,
                "errors": index.error_count,
            },
        )
        return SyncReport(index=index, index_path=str(index_path))

    async def _walk(
        self,
        root: Path,
        options: SyncOptions,
        execution: Optional[ExecutionOptions],
    ) -> list[SyncResult]:
        results: list[SyncResult] = []
        worklist: deque[_WorkItem] = deque([_WorkItem(ObjectCategory.DATABASE)])

        while worklist:
            item = worklist.popleft()

            if item.is_listing:
                names = await self._catalog.list_names(
                    item.category.value, item.database, item.schema, execution
                )
                children = [
                    _WorkItem(item.category, item.database, item.schema, name) for name in names
                ]
                # Front of the queue keeps the walk depth-first
                worklist.extendleft(reversed(children))
                continue

            if not await self._visit(root, item, options, execution, results):
                continue

            worklist.extendleft(reversed(self._child_listings(item, options)))

        return results

    async def _visit(
        self,
        root: Path,
        item: _WorkItem,
        options: SyncOptions,
        execution: Optional[ExecutionOptions],
        results: list[SyncResult],
    ) -> bool:
        """
        Sync one object node.

        Returns:
            False if the node is excluded and its children must not be
            listed, True otherwise.
        """
        full_name = item.full_name
        included = options.includes(item.category)

        exclusion = self._checker.check_reference(full_name)
        if exclusion.is_excluded:
            logger.info(
                f"Skipping excluded {item.category.value} {full_name}",
                extra={"matched_pattern": exclusion.matched_pattern},
            )
            if included:
                results.append(
                    SyncResult(
                        type=item.category,
                        name=full_name,
                        status=SyncStatus.SKIPPED,
                        error=EXCLUDED_BY_PATTERN,
                    )
                )
            return False

        if not included:
            return True

        ddl = await self._catalog.fetch_ddl(item.category.value, full_name, execution)
        if not ddl:
            logger.warning(f"No DDL returned for {item.category.value} {full_name}")
            if self._record_fetch_failures:
                results.append(
                    SyncResult(
                        type=item.category,
                        name=full_name,
                        status=SyncStatus.ERROR,
                        error=EMPTY_DDL,
                    )
                )
            return True

        path = object_file_path(root, item)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(ddl, encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot write {path}: {e}")
            raise SyncError(str(e)) from e

        results.append(
            SyncResult(type=item.category, name=full_name, status=SyncStatus.SYNCED, path=str(path))
        )
        return True

    @staticmethod
    def _child_listings(item: _WorkItem, options: SyncOptions) -> list[_WorkItem]:
        leaves = [category for category in LEAF_CATEGORIES if options.includes(category)]

        if item.category is ObjectCategory.DATABASE:
            if not (options.include_schemas or leaves):
                return []
            return [_WorkItem(ObjectCategory.SCHEMA, database=item.name)]

        if item.category is ObjectCategory.SCHEMA:
            return [
                _WorkItem(category, database=item.database, schema=item.name)
                for category in leaves
            ]

        return []
