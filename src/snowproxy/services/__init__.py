"""
Service Layer - Query, discovery, lineage, DDL, sync and staleness services, and ServicesContainer.
"""

from snowproxy.services.container import ServicesContainer, build_services, create_services
from snowproxy.services.ddl_service import DDLService
from snowproxy.services.discovery_service import DiscoveryService
from snowproxy.services.errors import ErrorKind, SyncError, ToolError
from snowproxy.services.lineage_service import LineageService
from snowproxy.services.query_service import QueryOutcome, QueryService
from snowproxy.services.staleness_service import StalenessService, compute_content_hash
from snowproxy.services.sync_models import (
    INDEX_FILE_NAME,
    ObjectCategory,
    ObjectRepositoryIndex,
    StalenessCheck,
    StalenessReason,
    SyncOptions,
    SyncReport,
    SyncResult,
    SyncStatus,
)
from snowproxy.services.sync_service import SyncService

__all__ = [
    # Container and factory
    "ServicesContainer",
    "build_services",
    "create_services",
    # Errors
    "ErrorKind",
    "ToolError",
    "SyncError",
    # Services
    "QueryService",
    "QueryOutcome",
    "DiscoveryService",
    "LineageService",
    "DDLService",
    "SyncService",
    "StalenessService",
    "compute_content_hash",
    # Sync models
    "INDEX_FILE_NAME",
    "ObjectCategory",
    "ObjectRepositoryIndex",
    "StalenessCheck",
    "StalenessReason",
    "SyncOptions",
    "SyncReport",
    "SyncResult",
    "SyncStatus",
]
