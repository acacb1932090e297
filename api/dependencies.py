"""
FastAPI dependencies
"""

from typing import Optional

from fastapi import HTTPException, Request

from connector.runner import SyncRunner


def get_optional_runner(request: Request) -> Optional[SyncRunner]:
    """Runner built at startup, or None when the connector is not configured"""
    return getattr(request.app.state, "runner", None)


def get_runner(request: Request) -> SyncRunner:
    runner = get_optional_runner(request)
    if runner is None:
        raise HTTPException(status_code=503, detail="Connector is not configured")
    return runner
