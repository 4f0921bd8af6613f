"""
MCP Context module for dependency injection.

Provides MCPContext dataclass that encapsulates all services needed by MCP
handlers, so handlers never look services up globally.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from snowproxy.core.config import ProxyConfig
from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.services import (
    DDLService,
    DiscoveryService,
    LineageService,
    QueryService,
    ServicesContainer,
    StalenessService,
    SyncService,
)


@dataclass
class MCPContext:
    """
    Container for all services needed by MCP handlers.

    Created once at MCP server startup and passed to every handler.

    Attributes:
        config: Application configuration
        checker: Exclusion checker shared by all services
        query_service: Guarded SQL execution
        discovery_service: Object listing, describe and DDL fetch
        lineage_service: Lineage and dependency lookups
        ddl_service: Guarded DDL execution
        sync_service: Object repository sync
        staleness_service: Drift detection
        sync_lock: Serializes sync runs within this server process
    """

    config: ProxyConfig
    checker: ExclusionChecker
    query_service: QueryService
    discovery_service: DiscoveryService
    lineage_service: LineageService
    ddl_service: DDLService
    sync_service: SyncService
    staleness_service: StalenessService
    sync_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def context_from_services(services: ServicesContainer) -> MCPContext:
    """Build an MCPContext from an initialized services container."""
    return MCPContext(
        config=services.config,
        checker=services.checker,
        query_service=services.query_service,
        discovery_service=services.discovery_service,
        lineage_service=services.lineage_service,
        ddl_service=services.ddl_service,
        sync_service=services.sync_service,
        staleness_service=services.staleness_service,
        sync_lock=asyncio.Lock(),
    )


def create_mcp_context(config_path: Optional[Path | str] = None) -> MCPContext:
    """
    Create MCPContext with all services initialized.

    Args:
        config_path: Optional configuration file; see ``load_config``.

    Raises:
        ValueError: If the configuration is invalid.
    """
    from snowproxy.services.container import create_services

    return context_from_services(create_services(config_path))
