"""HTTP client infrastructure."""
from infrastructure.http.client import (
    fetch_bytes,
    fetch_json,
    fetch_text,
    make_http_session,
)

__all__ = [
    'fetch_bytes',
    'fetch_json',
    'fetch_text',
    'make_http_session',
]
