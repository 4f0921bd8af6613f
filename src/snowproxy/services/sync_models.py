"""
Data models for the object repository sync and staleness check.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

INDEX_FILE_NAME = ".object-repository.json"

EXCLUDED_BY_PATTERN = "Excluded by pattern"
EMPTY_DDL = "DDL fetch returned no content"


class SyncStatus(str, Enum):
    """Outcome of syncing one object."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    ERROR = "error"


class ObjectCategory(str, Enum):
    """Object kinds visited by the sync walk."""

    DATABASE = "database"
    SCHEMA = "schema"
    TABLE = "table"
    VIEW = "view"
    FUNCTION = "function"
    PROCEDURE = "procedure"
    STAGE = "stage"
    TASK = "task"

    @property
    def is_container(self) -> bool:
        return self in (ObjectCategory.DATABASE, ObjectCategory.SCHEMA)


# Leaf categories in the order they are listed within a schema
LEAF_CATEGORIES: tuple[ObjectCategory, ...] = (
    ObjectCategory.TABLE,
    ObjectCategory.VIEW,
    ObjectCategory.FUNCTION,
    ObjectCategory.PROCEDURE,
    ObjectCategory.STAGE,
    ObjectCategory.TASK,
)


@dataclass(frozen=True)
class SyncOptions:
    """Which categories a sync run writes."""

    include_databases: bool = True
    include_schemas: bool = True
    include_tables: bool = True
    include_views: bool = True
    include_functions: bool = False
    include_procedures: bool = False
    include_stages: bool = False
    include_tasks: bool = False

    def includes(self, category: ObjectCategory) -> bool:
        return getattr(self, f"include_{category.value}s")


@dataclass
class SyncResult:
    """One record per visited object."""

    type: ObjectCategory
    name: str
    status: SyncStatus
    path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "status": self.status.value,
        }
        if self.path is not None:
            result["path"] = self.path
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class ObjectRepositoryIndex:
    """Summary of one sync run, written to ``.object-repository.json``."""

    last_sync: str
    target_dir: str
    objects: list[SyncResult] = field(default_factory=list)

    def _count(self, status: SyncStatus) -> int:
        return sum(1 for obj in self.objects if obj.status is status)

    @property
    def object_count(self) -> int:
        return self._count(SyncStatus.SYNCED)

    @property
    def skipped_count(self) -> int:
        return self._count(SyncStatus.SKIPPED)

    @property
    def error_count(self) -> int:
        return self._count(SyncStatus.ERROR)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastSync": self.last_sync,
            "targetDir": self.target_dir,
            "objectCount": self.object_count,
            "skippedCount": self.skipped_count,
            "errorCount": self.error_count,
            "objects": [obj.to_dict() for obj in self.objects],
        }


@dataclass
class SyncReport:
    """Result of a sync run: the written index and where it was written."""

    index: ObjectRepositoryIndex
    index_path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "synced": self.index.object_count,
            "skipped": self.index.skipped_count,
            "errors": self.index.error_count,
            "results": [obj.to_dict() for obj in self.index.objects],
            "indexPath": self.index_path,
        }


class StalenessReason(str, Enum):
    """Why an object is or is not stale."""

    MISSING = "missing"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


_REASON_MESSAGES = {
    StalenessReason.MISSING: "Local file does not exist",
    StalenessReason.CHANGED: "DDL differs from remote",
    StalenessReason.UNCHANGED: "DDL matches remote",
}


@dataclass(frozen=True)
class StalenessCheck:
    """Comparison of an object's remote DDL with its local file."""

    is_stale: bool
    object_name: str
    object_type: str
    local_path: str
    reason: StalenessReason
    current_hash: Optional[str] = None
    local_hash: Optional[str] = None

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self.reason]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "isStale": self.is_stale,
            "objectName": self.object_name,
            "objectType": self.object_type,
            "localPath": self.local_path,
            "reason": self.reason.value,
            "message": self.message,
        }
        if self.current_hash is not None:
            result["currentHash"] = self.current_hash
        if self.local_hash is not None:
            result["localHash"] = self.local_hash
        return result
