"""
@file: client.py
@description:
HTTP client for the FileVault API, used by the command-line tool.

@dependencies:
- httpx: Outbound HTTP with a fixed timeout
- filevault.schemas.files: Parsing list responses

@notes:
- Every request carries a fixed wall-clock timeout (30 s by default).
- Non-success responses raise ClientError carrying the status code and the
  server's "message" field.
"""

from pathlib import Path
from typing import List, Optional, Union

import httpx

from filevault.schemas.files import FileRecord

DEFAULT_TIMEOUT = 30.0


class ClientError(Exception):
    """A request failed or the server answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FileVaultClient:
    """
    Thin wrapper over the FileVault HTTP API.

    Args:
        base_url: Root URL of the API, e.g. "http://localhost:8080"
        api_key: Bearer key for authenticated calls
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "FileVaultClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def file_url(self, file_id: str) -> str:
        return f"{self.base_url}/{file_id}"

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ClientError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ClientError(f"Error sending request: {e}") from e

        if response.is_error:
            try:
                message = response.json().get("message", response.reason_phrase)
            except ValueError:
                message = response.reason_phrase
            raise ClientError(message, status_code=response.status_code)
        return response

    def upload(self, path: Union[str, Path]) -> str:
        """Upload a local file and return its new id."""
        path = Path(path)
        with path.open("rb") as handle:
            response = self._request(
                "POST", "/upload",
                files={"file": (path.name, handle, "application/octet-stream")},
            )
        return response.json()["id"]

    def delete(self, file_id: str) -> None:
        self._request("DELETE", f"/{file_id}")

    def list_files(self) -> List[FileRecord]:
        response = self._request("GET", "/list")
        return [FileRecord.model_validate(item) for item in response.json().get("files") or []]

    def download(self, file_id: str) -> bytes:
        return self._request("GET", f"/{file_id}").content
