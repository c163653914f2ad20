"""
Automation Panel Core - API Client Package

- Curl command parser
- Backend client for request execution
"""

from api_client.backend_client import BackendClient
from api_client.curl_parser import CurlParseError, CurlParser, parse_curl

__all__ = [
    "BackendClient",
    "CurlParseError",
    "CurlParser",
    "parse_curl",
]
