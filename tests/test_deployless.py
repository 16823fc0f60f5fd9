"""
Tests for the deployless host shell.

Whole requests go in as tagged envelopes and come out as either a tagged
response or a failure payload, exactly as an off-chain caller sees them.
"""

import pytest

from callbatch.codec import decode_failure, decode_response, encode_request
from callbatch.core.errors import (
    BudgetExhausted,
    InvalidTag,
    MalformedPayload,
    PerCallFailure,
    ShellTerminated,
    SimulationReport,
)
from callbatch.core.types import (
    AddressData,
    AddressesDataRequest,
    AggregateRequest,
    BalancesRequest,
    CallOutcome,
    CallSpec,
    ChainDataRequest,
    ChainFacts,
    CodeLengthsRequest,
    ConditionalStaticCallSpec,
    OperationKind,
    SimulateRequest,
    StaticCallSpec,
    TryAggregatePerItemRequest,
    TryAggregateRequest,
)
from callbatch.deployless import DEPLOYLESS_ADDRESS, DeploylessShell, ShellState, execute_deployless
from tests._support import assert_outcomes, word
from tests._support.contracts import (
    CALLER,
    CALLER_BALANCE,
    COUNTER,
    ECHO,
    EMPTY,
    GAS_BURNER,
    REVERTER,
    VALUE_SINK,
    WHOAMI,
)


def run(host, request, **kwargs):
    """Execute a typed request and decode whatever comes back."""
    outcome = execute_deployless(host, encode_request(request), **kwargs)
    if outcome.success:
        return decode_response(outcome.data)
    return decode_failure(outcome.data)


class TestEnvelopeErrors:
    def test_invalid_tag_99(self, host):
        outcome = execute_deployless(host, bytes([99]))
        assert outcome.success is False
        failure = decode_failure(outcome.data)
        assert isinstance(failure, InvalidTag)
        assert failure.value == 99

    def test_empty_request(self, host):
        outcome = execute_deployless(host, b"")
        assert isinstance(decode_failure(outcome.data), MalformedPayload)

    def test_trailing_bytes(self, host):
        outcome = execute_deployless(host, encode_request(ChainDataRequest()) + b"\x00")
        assert isinstance(decode_failure(outcome.data), MalformedPayload)

    def test_no_call_runs_on_bad_payload(self, host):
        envelope = encode_request(AggregateRequest([StaticCallSpec(ECHO, b"x")]))
        gas_before = host.gas_used
        outcome = execute_deployless(host, envelope[:-1])
        assert outcome.success is False
        assert host.gas_used == gas_before


class TestReadOnlyBatches:
    def test_aggregate(self, host):
        kind, result = run(host, AggregateRequest([StaticCallSpec(ECHO, b"1"), StaticCallSpec(ECHO, b"2")]))
        assert kind is OperationKind.STATIC_CALL
        assert result == [b"1", b"2"]

    def test_aggregate_abort_index(self, host):
        failure = run(host, AggregateRequest([StaticCallSpec(ECHO), StaticCallSpec(REVERTER)]))
        assert isinstance(failure, PerCallFailure)
        assert failure.index == 1

    def test_try_aggregate_collects_failure(self, host):
        request = TryAggregateRequest(
            False, [StaticCallSpec(ECHO, b"1"), StaticCallSpec(ECHO, b"2"), StaticCallSpec(REVERTER)]
        )
        kind, outcomes = run(host, request)
        assert kind is OperationKind.STATIC_CALL_STRICT
        assert_outcomes(outcomes, [True, True, False])
        assert outcomes[:2] == [CallOutcome(True, b"1"), CallOutcome(True, b"2")]

    def test_try_aggregate_strict(self, host):
        request = TryAggregateRequest(True, [StaticCallSpec(REVERTER), StaticCallSpec(ECHO)])
        failure = run(host, request)
        assert isinstance(failure, PerCallFailure)
        assert failure.index == 0

    def test_per_item(self, host):
        request = TryAggregatePerItemRequest(
            [ConditionalStaticCallSpec(ECHO, b"a", True), ConditionalStaticCallSpec(REVERTER, b"", False)]
        )
        _, outcomes = run(host, request)
        assert_outcomes(outcomes, [True, False])

    def test_static_calls_cannot_mutate(self, host):
        _, outcomes = run(host, TryAggregateRequest(False, [StaticCallSpec(COUNTER)]))
        assert_outcomes(outcomes, [False])
        assert host.storage_at(COUNTER, "count") == 0


class TestIntrospection:
    def test_code_lengths(self, host):
        assert run(host, CodeLengthsRequest([ECHO, EMPTY])) == (OperationKind.CODE_LENGTH, [len(b"echo"), 0])

    def test_balances(self, host):
        assert run(host, BalancesRequest([EMPTY, CALLER])) == (OperationKind.BALANCES, [0, CALLER_BALANCE])

    def test_addresses_data(self, host):
        _, result = run(host, AddressesDataRequest([CALLER]))
        assert result == [AddressData(balance=CALLER_BALANCE, code_length=0)]

    def test_chain_data(self, host):
        host.set_chain_facts(ChainFacts(chain_id=5, block_number=123, timestamp=1_700_000_000))
        kind, facts = run(host, ChainDataRequest())
        assert kind is OperationKind.CHAIN_DATA
        assert facts == host.chain_facts()


class TestSimulate:
    def test_report_and_state_reverted(self, host):
        report = run(host, SimulateRequest([CallSpec(COUNTER), CallSpec(REVERTER, b"x")]), caller=CALLER)
        assert isinstance(report, SimulationReport)
        assert_outcomes(report.outcomes, [True, False])
        assert all(o.cost_used >= 0 for o in report.outcomes)
        assert report.outcomes[0].return_data == word(1)
        assert host.storage_at(COUNTER, "count") == 0

    def test_value_from_executing_account(self, host):
        report = run(host, SimulateRequest([CallSpec(VALUE_SINK, b"", 25)]), caller=CALLER)
        assert report.outcomes[0].return_data == word(25)
        assert host.balance(CALLER) == CALLER_BALANCE
        assert host.balance(VALUE_SINK) == 0

    def test_unfunded_default_caller(self, host):
        report = run(host, SimulateRequest([CallSpec(VALUE_SINK, b"", 1)]))
        assert_outcomes(report.outcomes, [False])


class TestBudget:
    def test_exhaustion_is_all_or_nothing(self, host_factory):
        host = host_factory(gas_limit=40_000)
        request = TryAggregateRequest(False, [StaticCallSpec(ECHO), StaticCallSpec(GAS_BURNER, word(100_000))])
        failure = run(host, request)
        assert isinstance(failure, BudgetExhausted)
        assert failure.limit == 40_000

    def test_budget_is_per_execution(self, host_factory):
        host = host_factory(gas_limit=50_000)
        envelope = encode_request(AggregateRequest([StaticCallSpec(ECHO, b"x")]))
        outcomes = [execute_deployless(host, envelope) for _ in range(30)]
        assert all(outcome.success for outcome in outcomes)
        assert host.gas_used < 50_000

    def test_exhausted_run_does_not_affect_next(self, host_factory):
        host = host_factory(gas_limit=40_000)
        assert isinstance(run(host, AggregateRequest([StaticCallSpec(GAS_BURNER, word(100_000))])), BudgetExhausted)
        assert run(host, AggregateRequest([StaticCallSpec(ECHO, b"ok")])) == (OperationKind.STATIC_CALL, [b"ok"])


class TestShellLifecycle:
    def test_single_use(self, host):
        shell = DeploylessShell(host, encode_request(ChainDataRequest()))
        assert shell.state is ShellState.RUNNING
        shell.run()
        assert shell.state is ShellState.TERMINATED
        with pytest.raises(ShellTerminated):
            shell.run()

    def test_terminated_after_failure(self, host):
        shell = DeploylessShell(host, bytes([99]))
        with pytest.raises(InvalidTag):
            shell.run()
        assert shell.state is ShellState.TERMINATED

    def test_default_caller(self, host):
        _, result = run(host, AggregateRequest([StaticCallSpec(WHOAMI)]))
        assert result == [bytes(DEPLOYLESS_ADDRESS)]

    def test_explicit_caller(self, host):
        _, result = run(host, AggregateRequest([StaticCallSpec(WHOAMI)]), caller=CALLER)
        assert result == [bytes(CALLER)]

    def test_caller_from_settings(self, host, monkeypatch):
        monkeypatch.setenv("CALLBATCH_DEFAULT_CALLER", str(CALLER))
        _, result = run(host, AggregateRequest([StaticCallSpec(WHOAMI)]))
        assert result == [bytes(CALLER)]
