"""
Per-process clients are built in app.main at startup and kept on app.state;
these dependencies hand them to routes so tests can override them.
"""
from typing import Optional

from fastapi import Request

from app.services.llm_client import LLMClient


def get_llm_client(request: Request) -> Optional[LLMClient]:
    return getattr(request.app.state, "llm_client", None)


def get_stripe_client(request: Request):
    return getattr(request.app.state, "stripe_client", None)


def get_client_ip(request: Request) -> Optional[str]:
    # Behind a proxy run uvicorn with --proxy-headers so request.client is the real caller
    return request.client.host if request.client else None
