"""
Deployless host shell.

A single-use execution context: it is created with one raw request buffer,
runs codec → dispatcher → aggregator → encoder exactly once, and terminates
by either returning the encoded response or raising a batch failure whose
``payload`` is the structured failure buffer. It holds no state beyond that
one request and cannot be run again.

Manifesto:
    - **Two states:** ``RUNNING`` until ``run()`` finishes, ``TERMINATED``
      afterwards, whatever the outcome
    - **All-or-nothing:** The batch runs inside one host execution scope that
      starts a fresh resource budget, commits on success and reverts on any
      failure
    - **Failure channel as data channel:** ``Simulate`` outcomes leave as a
      ``SimulationReport`` failure, which also guarantees their effects are
      discarded

Architecture:
    ::

        ┌─────────┐  run()   ┌───────────────────────────────────────────┐
        │ RUNNING │ ───────► │ decode → dispatch → encode                │
        └─────────┘          └───────────────┬───────────────────────────┘
                                             │
                        ┌────────────────────┴────────────────────┐
                        ▼                                         ▼
                 commit snapshot                           revert snapshot
                 return response bytes                     raise BatchFailure
                        │                                         │
                        └──────────────► TERMINATED ◄─────────────┘

Examples:
    >>> from callbatch.host.memory import InMemoryHost
    >>> from callbatch.codec import encode_request, decode_response
    >>> from callbatch.core.types import ChainDataRequest
    >>> host = InMemoryHost()
    >>> outcome = execute_deployless(host, encode_request(ChainDataRequest()))
    >>> outcome.success
    True
    >>> decode_response(outcome.data)[1].chain_id
    1
    >>> execute_deployless(host, bytes([99])).success
    False

Tags:
    deployless, single-use, simulation, callbatch

Doc-Types:
    - API Reference
    - Execution Model Guide
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from enum import Enum

from callbatch.codec.requests import decode_request
from callbatch.codec.responses import encode_response
from callbatch.core.errors import BatchFailure, ShellTerminated
from callbatch.core.settings import get_settings
from callbatch.core.types import Address
from callbatch.execution.dispatcher import OperationDispatcher
from callbatch.execution.executor import CallExecutor
from callbatch.host.protocol import Host
from callbatch.logging import bind_context, clear_context, get_logger, set_context

log = get_logger(__name__)

# Executing account used when neither the caller nor settings name one.
DEPLOYLESS_ADDRESS = Address(hashlib.sha256(b"callbatch.deployless").digest()[:20])


class ShellState(str, Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ShellOutcome:
    """What a caller of a deployless execution observes."""

    success: bool
    data: bytes


class DeploylessShell:
    """One-shot execution context for a single request buffer."""

    def __init__(self, host: Host, request: bytes, *, caller: Address | None = None) -> None:
        self._host = host
        self._request = bytes(request)
        self._caller = caller or get_settings().caller_address or DEPLOYLESS_ADDRESS
        self._state = ShellState.RUNNING

    @property
    def state(self) -> ShellState:
        return self._state

    def run(self) -> bytes:
        """
        Execute the request and terminate.

        Returns:
            Tagged response buffer.

        Raises:
            BatchFailure: The batch failed (or was simulated); ``payload``
                carries the structured failure.
            ShellTerminated: The shell already ran.
        """
        if self._state is ShellState.TERMINATED:
            raise ShellTerminated()

        set_context(batch_id=uuid.uuid4().hex[:12], mode="deployless")
        try:
            with self._host.execution():
                request = decode_request(self._request)
                bind_context(kind=request.kind.name.lower())
                response = OperationDispatcher(CallExecutor(self._host, self._caller)).dispatch(request)
                buffer = encode_response(request.kind, response)
        except BatchFailure as failure:
            log.info("shell.failed", **failure.to_dict())
            raise
        else:
            log.info("shell.completed", response_length=len(buffer), gas_used=self._host.gas_used)
            return buffer
        finally:
            self._state = ShellState.TERMINATED
            clear_context()


def execute_deployless(host: Host, request: bytes, *, caller: Address | None = None) -> ShellOutcome:
    """Run ``request`` in a fresh shell; failures come back as payload bytes."""
    try:
        return ShellOutcome(True, DeploylessShell(host, request, caller=caller).run())
    except BatchFailure as failure:
        return ShellOutcome(False, failure.payload)
