#!/usr/bin/env python
"""
Elasticsearch Monitoring Gateway - Application Entry Point

This is the main entry point for running the gateway server.

Usage:
    # Development mode (with hot reload):
    python main.py

    # Or use uvicorn directly:
    uvicorn esmonitor.main:app --host 0.0.0.0 --port 8080 --reload

Environment Variables:
    - APP_DEBUG=true: Enable debug mode (single worker)
    - DEV_AUTO_RELOAD=true: Enable hot reload in debug mode
    - KIBANA_BASE_URL, KIBANA_CLUSTER_ID, KIBANA_USERNAME, KIBANA_PASSWORD:
      Kibana connection
"""

from pathlib import Path

import uvicorn

from esmonitor.core.config import settings

root_dir = Path(__file__).parent.resolve()


def main() -> None:
    """Run the FastAPI application, with hot reload in debug mode."""

    # Show startup info
    print("=" * 60)
    print("Starting Elasticsearch Monitoring Gateway")
    print("=" * 60)
    print(f"   Environment: {settings.app.app_env}")
    print(f"   Debug Mode: {settings.app.app_debug}")
    print(f"   Hot Reload: {settings.app.app_debug and settings.dev_auto_reload}")
    print(f"   Host: {settings.app.api_host}:{settings.app.api_port}")
    print(f"   Kibana: {settings.kibana.base_url}")
    print(f"   Workers: {1 if settings.app.app_debug else settings.app.api_workers}")
    print("=" * 60)
    print()

    uvicorn.run(
        "esmonitor.main:app",
        host=settings.app.api_host,
        port=settings.app.api_port,
        reload=settings.app.app_debug and settings.dev_auto_reload,
        workers=1 if settings.app.app_debug else settings.app.api_workers,
        log_level=settings.log.level.lower(),
        access_log=settings.log.requests,
        reload_dirs=[str(root_dir / "esmonitor")] if settings.app.app_debug else None,
        reload_delay=0.5,
    )


if __name__ == "__main__":
    main()
