from fastapi import Request
from slowapi import Limiter

from magaza.config import settings
from magaza.core.dependencies import get_client_ip


def client_ip_key(request: Request) -> str:
    """Rate limit key: proxy-forwarded client address, else the socket peer"""
    ip = get_client_ip(request)
    if ip == "unknown" and request.client:
        return request.client.host
    return ip


limiter = Limiter(key_func=client_ip_key, default_limits=[settings.rate_limit])
