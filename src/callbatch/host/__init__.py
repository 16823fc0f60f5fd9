"""Host environments: the protocol the core consumes and an in-memory host."""

from callbatch.host.journal import Journal
from callbatch.host.memory import (
    Account,
    CallFault,
    Frame,
    InMemoryHost,
    InsufficientBalance,
    Revert,
    StaticViolation,
)
from callbatch.host.protocol import Host

__all__ = [
    "Host",
    "Journal",
    "InMemoryHost",
    "Account",
    "Frame",
    "Revert",
    "CallFault",
    "StaticViolation",
    "InsufficientBalance",
]
