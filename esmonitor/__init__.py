"""ES Monitor Gateway: normalized access to the Kibana Monitoring API."""

__version__ = "1.0.0"
