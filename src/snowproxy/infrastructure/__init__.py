"""
Infrastructure Layer - snow CLI executor, output parsing and object catalog.
"""

from snowproxy.infrastructure.executor import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandExecutorInterface,
    CommandResult,
    ExecutionOptions,
    SnowCLIExecutor,
    create_executor,
)
from snowproxy.infrastructure.fakes import (
    FakeCommandExecutor,
    InMemoryWarehouse,
    RecordedCall,
)
from snowproxy.infrastructure.object_catalog import (
    OBJECT_TYPES,
    ObjectCatalog,
    build_scope,
    normalize_object_type,
    qualified_name,
)
from snowproxy.infrastructure.output_parser import (
    TabularOutput,
    count_result_rows,
    extract_ddl,
    parse_tabular,
)

__all__ = [
    # Executor
    "CommandExecutorInterface",
    "CommandResult",
    "ExecutionOptions",
    "SnowCLIExecutor",
    "create_executor",
    "TIMEOUT_EXIT_CODE",
    "NOT_FOUND_EXIT_CODE",
    # Output parsing
    "TabularOutput",
    "parse_tabular",
    "extract_ddl",
    "count_result_rows",
    # Object catalog
    "ObjectCatalog",
    "OBJECT_TYPES",
    "build_scope",
    "normalize_object_type",
    "qualified_name",
    # Fakes for testing
    "FakeCommandExecutor",
    "InMemoryWarehouse",
    "RecordedCall",
]
