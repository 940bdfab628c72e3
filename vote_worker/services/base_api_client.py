"""
Base HTTP client for the worker's external collaborators.

Contains shared functionality used by all API clients.
"""
from typing import Any, Dict, Optional

import httpx


class APIError(Exception):
    """Custom exception for API errors."""

    def __init__(self, message: str, status_code: int, response: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(f"API Error {status_code}: {message}")


class AsyncBaseAPIClient:
    """
    Base class for async API clients with shared functionality.

    Provides common HTTP client setup, response handling, and async
    context manager support.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds (default 30.0)
            headers: Extra headers sent with every request
            client: Pre-built httpx client (tests pass one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        default_headers.update(headers or {})
        if client is None:
            client = httpx.AsyncClient(timeout=timeout, headers=default_headers)
        else:
            client.headers.update(default_headers)
        self.client = client

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Handle API response and raise errors if needed.

        Args:
            response: HTTP response

        Returns:
            Parsed JSON response

        Raises:
            APIError: If the API returns an error
        """
        if response.status_code == 204:
            return {"success": True}

        try:
            data = response.json()
        except ValueError:
            data = {"error": "Failed to parse response", "raw": response.text}

        if response.status_code >= 400:
            error_msg = "Unknown error"
            if isinstance(data, dict):
                error_msg = data.get("message") or data.get("error") or error_msg
            raise APIError(str(error_msg), response.status_code, data if isinstance(data, dict) else None)

        return data

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self.client.request(method, self._url(path), **kwargs)
        return self._handle_response(response)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
