"""
Centralized services container module for snowproxy.

Provides a shared container for all services used across the CLI and MCP
entry points.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from snowproxy.core.config import ProxyConfig, load_config
from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.core.query_classifier import QueryClassifier
from snowproxy.infrastructure import CommandExecutorInterface, ObjectCatalog, create_executor
from snowproxy.services.ddl_service import DDLService
from snowproxy.services.discovery_service import DiscoveryService
from snowproxy.services.lineage_service import LineageService
from snowproxy.services.query_service import QueryService
from snowproxy.services.staleness_service import StalenessService
from snowproxy.services.sync_service import SyncService


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        executor: snow CLI executor shared by every service
        checker: Exclusion checker built from the configured patterns
        query_service: Guarded SQL execution
        discovery_service: Object listing, describe and DDL fetch
        lineage_service: Lineage and dependency lookups
        ddl_service: Guarded DDL execution
        sync_service: Object repository sync
        staleness_service: Drift detection against synced files
    """

    config: ProxyConfig
    executor: CommandExecutorInterface
    checker: ExclusionChecker
    query_service: QueryService
    discovery_service: DiscoveryService
    lineage_service: LineageService
    ddl_service: DDLService
    sync_service: SyncService
    staleness_service: StalenessService


def build_services(
    config: ProxyConfig, executor: Optional[CommandExecutorInterface] = None
) -> ServicesContainer:
    """
    Wire every service from an explicit configuration value.

    Args:
        config: Configuration to build from
        executor: Executor to use; defaults to a SnowCLIExecutor built from
            ``config.snowcli``

    Raises:
        ValueError: If an exclusion pattern is not a valid regular expression.
    """
    executor = executor or create_executor(config.snowcli)
    checker = ExclusionChecker.from_config(config.exclusions)
    catalog = ObjectCatalog(executor, timeout=config.snowcli.timeout)

    return ServicesContainer(
        config=config,
        executor=executor,
        checker=checker,
        query_service=QueryService(
            catalog,
            checker,
            classifier=QueryClassifier(),
            max_scalar_rows=config.guardrail.max_scalar_rows,
        ),
        discovery_service=DiscoveryService(catalog, checker),
        lineage_service=LineageService(catalog, checker),
        ddl_service=DDLService(catalog, checker),
        sync_service=SyncService(
            catalog,
            checker,
            default_target_dir=config.sync.target_dir,
            record_fetch_failures=config.sync.record_fetch_failures,
        ),
        staleness_service=StalenessService(catalog, checker),
    )


def create_services(config_path: Optional[Path | str] = None) -> ServicesContainer:
    """
    Create and initialize all services.

    Args:
        config_path: Optional path to configuration file. If None, uses
            $SNOWPROXY_CONFIG_PATH, ./project.yaml or defaults, with
            environment overrides applied.

    Returns:
        ServicesContainer with all initialized services.
    """
    return build_services(load_config(config_path))
