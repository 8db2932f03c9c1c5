"""
Monitoring Module for the ES Monitor Gateway.

This module wraps the Kibana Monitoring API for Elasticsearch clusters:
- Authenticated, pooled HTTP client with per-endpoint call statistics
- Decoding of Kibana payloads into schemas with explicit defaults
- Normalization of nested time series and cluster/node summaries
- Parallel aggregation for the monitoring overview

Key components:
- clients/: Kibana HTTP client
- normalization/: Time series flattening, metric key remapping, overview summary
- stats.py: Path normalization and call statistics registry
- schemas.py: Pydantic schemas for payloads and responses
- service.py: Main service layer
- routes.py: FastAPI route definitions
"""
