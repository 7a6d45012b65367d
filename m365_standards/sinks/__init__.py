from .log_sink import StandardsLogSink

__all__ = ["StandardsLogSink"]
