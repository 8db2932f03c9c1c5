"""External service clients."""

from esmonitor.monitoring.clients.kibana import KibanaClient

__all__ = ["KibanaClient"]
