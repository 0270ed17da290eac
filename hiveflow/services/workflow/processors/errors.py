"""Processor error classes.

Each error keeps a plain ``message`` that becomes the node's failure text,
while ``str(error)`` adds the processor and node for logs.
"""

from dataclasses import dataclass, field


class ProcessorError(Exception):
    """Base exception for processor errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class ProcessorConfigurationError(ProcessorError):
    """Raised when a node's payload lacks what its processor needs.

    Attributes:
        processor: Name of the processor class
        reason: What is missing or invalid
    """

    processor: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(self.reason)

    def __str__(self) -> str:
        return f"Configuration error in {self.processor}: {self.reason}"


@dataclass
class ProcessorExecutionError(ProcessorError):
    """Raised when a node's work fails, including collaborator failures.

    Attributes:
        processor: Name of the processor class
        node_id: ID of the node being processed
        reason: Failure text reported by the processor or collaborator
        retry_count: Number of retry attempts made
    """

    processor: str
    node_id: str
    reason: str
    retry_count: int = 0

    def __post_init__(self) -> None:
        super().__init__(self.reason)

    def __str__(self) -> str:
        return (
            f"Execution failed in {self.processor} "
            f"(node: {self.node_id}, retries: {self.retry_count}): {self.reason}"
        )


@dataclass
class ProcessorTimeoutError(ProcessorError):
    """Raised when processing exceeds its timeout.

    Attributes:
        processor: Name of the processor class
        node_id: ID of the node that timed out
        timeout_seconds: Timeout limit in seconds
    """

    processor: str
    node_id: str
    timeout_seconds: float

    def __post_init__(self) -> None:
        super().__init__(f"Node {self.node_id} timed out after {self.timeout_seconds}s")

    def __str__(self) -> str:
        return (
            f"Timeout in {self.processor} "
            f"(node: {self.node_id}) after {self.timeout_seconds}s"
        )


@dataclass
class ProcessorRecursionError(ProcessorError):
    """Raised when a subworkflow would re-enter a workflow on its call stack.

    Attributes:
        call_chain: Workflow ids from the outermost run to the repeated id.
    """

    call_chain: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        chain = " -> ".join(str(workflow_id) for workflow_id in self.call_chain)
        super().__init__(f"Subworkflow recursion detected: {chain}")


class ProcessorNotFoundError(ProcessorError):
    """Raised when no processor is registered for a node type."""

    def __init__(self, node_type: str):
        super().__init__(f"Unknown node type: {node_type}")
        self.node_type = node_type
