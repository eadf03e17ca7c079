"""
Instrumentation Context

Owns every piece of shared state and every collaborator of one
instrumented application. Independent contexts never share state, so
several instrumented apps can coexist in one process.

Wiring:
    CollectorClient --reply--> RemoteCommandDispatcher --claims--> CommandRegistry
    PanicReporter, StatsPoller, capture uploads --> CollectorClient
"""

from typing import Optional

from app.core.config import Settings
from collector.client import CollectorClient
from collector.panic import PanicReporter
from collector.stats import StatsPoller
from commands.capture import ProfileCapturer
from commands.dispatcher import RemoteCommandDispatcher
from commands.registry import CommandRegistry
from observability.registry import LatencyRegistry, StatusCounter
from schemas.command import AgentRecord


class InstrumentationContext:
    """
    Registries plus the reporting pipeline for one instrumented app.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[CollectorClient] = None,
        capturer: Optional[ProfileCapturer] = None,
    ):
        """
        Args:
            settings: Agent settings. Defaults to a fresh Settings().
            client: Collector client. Built from settings if not given.
            capturer: Capture primitives for remote commands.
        """
        self.settings = settings or Settings()
        self.agent = client.agent if client else AgentRecord.for_host()

        self.latency = LatencyRegistry()
        self.status_counts = StatusCounter()
        self.commands = CommandRegistry()

        self.client = client or CollectorClient(self.settings, self.agent)
        self.capturer = capturer or ProfileCapturer(
            duration=self.settings.profile_duration_seconds,
            sample_interval=self.settings.profile_sample_interval_seconds,
        )
        self.dispatcher = RemoteCommandDispatcher(self.client, self.commands, self.capturer)
        self.client.reply_handler = self.dispatcher.handle_reply

        self.panic_reporter = PanicReporter(self.client, print_panics=self.settings.print_panics)
        self.stats_poller = StatsPoller(
            self.client,
            self.latency,
            self.status_counts,
            interval=self.settings.stats_interval_seconds,
        )

    @property
    def latency_threshold_ms(self) -> int:
        return self.settings.latency_threshold_ms
