# Collector Package
from collector.client import CollectorClient
from collector.panic import PanicReporter, clean_trace, format_error_message
from collector.stats import StatsPoller

__all__ = ["CollectorClient", "PanicReporter", "clean_trace", "format_error_message", "StatsPoller"]
