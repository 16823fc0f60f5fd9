"""
callbatch - batched call aggregation.

Bundles many calls (or state queries) into a single request, runs them in
order against a host environment and returns index-aligned results:

- callbatch.core: Data model, error taxonomy, settings
- callbatch.codec: Request envelopes, tagged responses, failure payloads
- callbatch.host: Host protocol and the journaled in-memory host
- callbatch.execution: Executor, result aggregator, operation dispatcher
- callbatch.deployless: Single-use shell for one request buffer
- callbatch.entrypoint: Persistent service with named entrypoints
"""

__version__ = "0.1.0"

from callbatch.core import *  # noqa
from callbatch.deployless import DeploylessShell, ShellOutcome, execute_deployless  # noqa: E402
from callbatch.entrypoint import AggregatorService  # noqa: E402
