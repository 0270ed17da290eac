"""Node processors, one per node type."""

from hiveflow.services.workflow.processors.base import (
    BaseProcessor,
    ProcessorConfig,
    ProcessorDependencies,
)
from hiveflow.services.workflow.processors.errors import (
    ProcessorConfigurationError,
    ProcessorError,
    ProcessorExecutionError,
    ProcessorNotFoundError,
    ProcessorRecursionError,
    ProcessorTimeoutError,
)
from hiveflow.services.workflow.processors.registry import ProcessorRegistry

__all__ = [
    "BaseProcessor",
    "ProcessorConfig",
    "ProcessorConfigurationError",
    "ProcessorDependencies",
    "ProcessorError",
    "ProcessorExecutionError",
    "ProcessorNotFoundError",
    "ProcessorRecursionError",
    "ProcessorRegistry",
    "ProcessorTimeoutError",
]
