"""Core primitives: data model, error taxonomy, settings."""

from callbatch.core.errors import (
    AddressError,
    BatchFailure,
    BudgetExhausted,
    CallBatchError,
    ConfigError,
    EncodeError,
    ErrorCategory,
    ErrorContext,
    FallbackUnavailable,
    InvalidTag,
    MalformedPayload,
    PerCallFailure,
    ShellTerminated,
    SimulationReport,
    ValueRejected,
)
from callbatch.core.types import (
    AddressData,
    Address,
    AddressesDataRequest,
    AggregateRequest,
    BalancesRequest,
    BatchResponse,
    CallOutcome,
    CallSpec,
    ChainDataRequest,
    ChainFacts,
    CodeLengthsRequest,
    ConditionalStaticCallSpec,
    OperationKind,
    Request,
    SimulateRequest,
    SimulatedOutcome,
    StaticCallSpec,
    TryAggregatePerItemRequest,
    TryAggregateRequest,
)

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "CallBatchError",
    "BatchFailure",
    "InvalidTag",
    "PerCallFailure",
    "ValueRejected",
    "SimulationReport",
    "BudgetExhausted",
    "MalformedPayload",
    "FallbackUnavailable",
    "AddressError",
    "EncodeError",
    "ConfigError",
    "ShellTerminated",
    # Types
    "Address",
    "OperationKind",
    "StaticCallSpec",
    "ConditionalStaticCallSpec",
    "CallSpec",
    "CallOutcome",
    "SimulatedOutcome",
    "AddressData",
    "ChainFacts",
    "AggregateRequest",
    "TryAggregateRequest",
    "TryAggregatePerItemRequest",
    "CodeLengthsRequest",
    "SimulateRequest",
    "BalancesRequest",
    "AddressesDataRequest",
    "ChainDataRequest",
    "Request",
    "BatchResponse",
]
