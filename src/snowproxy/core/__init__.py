"""
Core Layer - Configuration, query classification, exclusion checking and result redaction.
"""

from snowproxy.core.config import (
    ConfigStore,
    ExclusionConfig,
    GuardrailConfig,
    LoggingConfig,
    ProxyConfig,
    SnowCLIConfig,
    SyncConfig,
    configure_logging,
    load_config,
)
from snowproxy.core.ddl_classifier import (
    UNKNOWN_DDL,
    classify_ddl,
    extract_ddl_targets,
    is_destructive,
)
from snowproxy.core.exclusion import (
    CLAUSE_EXTRACTORS,
    ClauseExtractor,
    ExclusionChecker,
    extract_object_names,
    find_excluded_reference,
    normalize_object_name,
)
from snowproxy.core.models import (
    ColumnInfo,
    ExclusionResult,
    QueryClassification,
    QueryType,
    RedactedResult,
)
from snowproxy.core.query_classifier import (
    DEFAULT_RULES,
    ClassificationRule,
    QueryClassifier,
    classify_query,
    is_data_query,
    is_metadata_query,
    is_scalar_query,
)
from snowproxy.core.result_redactor import (
    REDACTED,
    redact_json_result,
    redact_result,
)

__all__ = [
    # Config
    "ProxyConfig",
    "ExclusionConfig",
    "SnowCLIConfig",
    "GuardrailConfig",
    "SyncConfig",
    "LoggingConfig",
    "ConfigStore",
    "load_config",
    "configure_logging",
    # Models
    "QueryType",
    "QueryClassification",
    "ExclusionResult",
    "ColumnInfo",
    "RedactedResult",
    # Query classifier
    "ClassificationRule",
    "QueryClassifier",
    "DEFAULT_RULES",
    "classify_query",
    "is_metadata_query",
    "is_scalar_query",
    "is_data_query",
    # Exclusion
    "ExclusionChecker",
    "ClauseExtractor",
    "CLAUSE_EXTRACTORS",
    "extract_object_names",
    "find_excluded_reference",
    "normalize_object_name",
    # Redaction
    "REDACTED",
    "redact_result",
    "redact_json_result",
    # DDL
    "UNKNOWN_DDL",
    "classify_ddl",
    "extract_ddl_targets",
    "is_destructive",
]
