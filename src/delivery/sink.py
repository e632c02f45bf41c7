"""
Module: sink.py
Description: Downstream sinks receiving trigger output.

A sink accepts one record per delivered message and one diagnostic per
non-fatal poll loop failure. How records reach a workflow engine is up to
the host; this module defines the contract and two simple sinks.

Key Components:
- Sink: Protocol implemented by all sinks
- DeliveryError: Raised by a sink that could not accept a record
- CollectingSink: In-memory sink
- LoggingSink: Sink writing records to the structured log
"""

from typing import Any, Dict, List, Protocol, runtime_checkable

from models.poll import Diagnostic
from utils.logger import get_logger

logger = get_logger(__name__)


class DeliveryError(Exception):
    """A sink could not accept a record."""


@runtime_checkable
class Sink(Protocol):
    """Downstream consumer of trigger output."""

    async def deliver(self, record: Dict[str, Any]) -> None:
        """Accept one message record; raise DeliveryError on failure."""
        ...

    async def report(self, diagnostic: Diagnostic) -> None:
        """Accept one diagnostic; must not raise."""
        ...


class CollectingSink:
    """Sink keeping every record and diagnostic in memory, in arrival order."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self.diagnostics: List[Diagnostic] = []

    async def deliver(self, record: Dict[str, Any]) -> None:
        self.records.append(record)

    async def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)


class LoggingSink:
    """Sink writing records and diagnostics to the structured log."""

    async def deliver(self, record: Dict[str, Any]) -> None:
        logger.info("Trigger record", record=record)

    async def report(self, diagnostic: Diagnostic) -> None:
        logger.warning("Trigger diagnostic", **diagnostic.to_record())
