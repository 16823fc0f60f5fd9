"""
Structured error types for callbatch.

Every failure a batch can surface is a typed exception carrying enough
structure for the caller to tell "my data is malformed" from "one of my calls
failed" from "here are your simulated results". Failures that leave the
process as bytes (the *batch failures*) also know their wire signature, so
any of them can be turned into a failure payload and back.

Manifesto:
    - **Typed taxonomy:** One class per failure kind, never a bare Exception
    - **Kind plus payload:** Each batch failure carries only the data its
      kind needs (a tag value, an index, an outcome list)
    - **Rich context:** Errors carry metadata for structured logging
    - **Error chaining:** Preserve original exceptions as ``cause``
    - **No internal retries:** A failed batch is resubmitted whole by the caller

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        CallBatchError                            │
        │              (category, context, cause, to_dict)                 │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  BatchFailure (signature, selector, payload)                     │
        │       │                                                          │
        │  InvalidTag          PerCallFailure      ValueRejected           │
        │  (CODEC)             (EXECUTION)         (EXECUTION)             │
        │                                                                  │
        │  SimulationReport    BudgetExhausted     MalformedPayload        │
        │  (SIMULATION)        (RESOURCE)          (CODEC)                 │
        │                                                                  │
        │  FallbackUnavailable                                             │
        │  (CONFIG)                                                        │
        │                                                                  │
        │  AddressError        EncodeError         ConfigError             │
        │  (VALIDATION)        (VALIDATION)        (CONFIG)                │
        │                                                                  │
        │  ShellTerminated                                                 │
        │  (INTERNAL)                                                      │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = PerCallFailure(2)
    >>> error.index
    2
    >>> error.category
    <ErrorCategory.EXECUTION: 'EXECUTION'>
    >>> error.signature
    'PerCallFailure(uint256)'

    Turning a failure into its payload and back:

    >>> from callbatch.codec.failures import decode_failure
    >>> decode_failure(InvalidTag(99).payload).value
    99

Guardrails:
    ❌ DON'T: Raise SimulationReport for anything but a finished simulation
    ✅ DO: Treat it as a data carrier routed through the failure channel

    ❌ DON'T: Attach partial results to PerCallFailure
    ✅ DO: Carry the offending index only

Tags:
    error-handling, exception-hierarchy, failure-payload, callbatch

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from callbatch.core.types import SimulatedOutcome


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    CODEC = "CODEC"                # Envelope or payload cannot be decoded
    VALIDATION = "VALIDATION"      # Caller-supplied values out of range
    EXECUTION = "EXECUTION"        # A call violated the active failure policy
    SIMULATION = "SIMULATION"      # Simulated results routed as a failure
    RESOURCE = "RESOURCE"          # Resource budget exhausted
    CONFIG = "CONFIG"              # Missing or invalid configuration
    INTERNAL = "INTERNAL"          # Misuse or unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        kind: Operation kind being processed (e.g. "static_call")
        entrypoint: Persistent entrypoint name, if any
        index: Position of the offending item in the batch
        target: Target address (hex) of the offending call
        batch_id: Identifier of the batch execution
        metadata: Additional key-value pairs
    """

    kind: str | None = None
    entrypoint: str | None = None
    index: int | None = None
    target: str | None = None
    batch_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["kind", "entrypoint", "index", "target", "batch_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CallBatchError(Exception):
    """
    Base exception for all callbatch errors.

    Subclasses set ``default_category``. Every instance carries a message,
    a category, an ``ErrorContext`` and an optional chained cause.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CallBatchError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PerCallFailure(3).with_context(kind="static_call", target=str(addr))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# BATCH FAILURES (travel as failure payloads)
# =============================================================================


class BatchFailure(CallBatchError):
    """
    A failure that terminates a batch and is reported as a payload.

    ``signature`` names the failure on the wire; the first four bytes of its
    SHA-256 digest form the payload selector.
    """

    signature: ClassVar[str] = ""

    @property
    def selector(self) -> bytes:
        from callbatch.codec.failures import selector_for

        return selector_for(self.signature)

    @property
    def payload(self) -> bytes:
        """Encoded failure payload: selector followed by the body."""
        from callbatch.codec.failures import encode_failure

        return encode_failure(self)


class InvalidTag(BatchFailure):
    """Envelope discriminant is not a known operation kind."""

    default_category = ErrorCategory.CODEC
    signature = "InvalidTag(uint256)"

    def __init__(self, value: int, **kwargs: Any):
        self.value = value
        super().__init__(f"Invalid operation tag: {value}", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["value"] = self.value
        return result


class PerCallFailure(BatchFailure):
    """A call violated the active strict policy. Carries the index only."""

    default_category = ErrorCategory.EXECUTION
    signature = "PerCallFailure(uint256)"

    def __init__(self, index: int, **kwargs: Any):
        self.index = index
        super().__init__(f"Call at index {index} failed", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["index"] = self.index
        return result


class ValueRejected(BatchFailure):
    """Native value was sent where it is not accepted."""

    default_category = ErrorCategory.EXECUTION
    signature = "ValueRejected(uint256)"

    def __init__(self, value: int, **kwargs: Any):
        self.value = value
        super().__init__(f"Native value not accepted: {value}", **kwargs)


class SimulationReport(BatchFailure):
    """
    Simulated outcomes delivered through the failure channel.

    Not a true error: raising it guarantees that every effect of the simulated
    calls is discarded while the outcomes still reach the caller.
    """

    default_category = ErrorCategory.SIMULATION
    signature = "SimulationReport((bool,bytes,uint256)[])"

    def __init__(self, outcomes: list[SimulatedOutcome], **kwargs: Any):
        self.outcomes = list(outcomes)
        super().__init__(f"Simulation finished with {len(self.outcomes)} outcome(s)", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["outcomes"] = len(self.outcomes)
        result["failed"] = sum(1 for o in self.outcomes if not o.success)
        return result


class BudgetExhausted(BatchFailure):
    """The resource budget ran out mid-batch."""

    default_category = ErrorCategory.RESOURCE
    signature = "BudgetExhausted(uint256,uint256)"

    def __init__(self, used: int, limit: int, **kwargs: Any):
        self.used = used
        self.limit = limit
        super().__init__(f"Resource budget exhausted: {used} > {limit}", **kwargs)


class MalformedPayload(BatchFailure):
    """Envelope or payload bytes do not match the expected shape."""

    default_category = ErrorCategory.CODEC
    signature = "MalformedPayload(string)"

    def __init__(self, reason: str, **kwargs: Any):
        self.reason = reason
        super().__init__(f"Malformed payload: {reason}", **kwargs)


class FallbackUnavailable(BatchFailure):
    """An unrecognized call arrived but no fallback aggregator is configured."""

    default_category = ErrorCategory.CONFIG
    signature = "FallbackUnavailable()"

    def __init__(self, **kwargs: Any):
        super().__init__("No fallback aggregator configured", **kwargs)


# =============================================================================
# LOCAL ERRORS (never encoded)
# =============================================================================


class AddressError(CallBatchError):
    """Address input has the wrong length or is not valid hex."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.value = value


class EncodeError(CallBatchError):
    """A value cannot be represented in the wire format."""

    default_category = ErrorCategory.VALIDATION


class ConfigError(CallBatchError):
    default_category = ErrorCategory.CONFIG


class ShellTerminated(CallBatchError):
    """A deployless shell was asked to run twice."""

    def __init__(self, message: str = "Deployless shell already terminated", **kwargs: Any):
        super().__init__(message, **kwargs)


FAILURE_TYPES: tuple[type[BatchFailure], ...] = (
    InvalidTag,
    PerCallFailure,
    ValueRejected,
    SimulationReport,
    BudgetExhausted,
    MalformedPayload,
    FallbackUnavailable,
)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CallBatchError",
    # Batch failures
    "BatchFailure",
    "InvalidTag",
    "PerCallFailure",
    "ValueRejected",
    "SimulationReport",
    "BudgetExhausted",
    "MalformedPayload",
    "FallbackUnavailable",
    "FAILURE_TYPES",
    # Local errors
    "AddressError",
    "EncodeError",
    "ConfigError",
    "ShellTerminated",
]
