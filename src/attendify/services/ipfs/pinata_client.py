"""Pinata IPFS client for uploading event metadata."""

from typing import Any, Protocol

import httpx

from attendify.services.exceptions import (
    IPFSAuthError,
    IPFSNetworkError,
    IPFSRateLimitError,
    IPFSValidationError,
    ServiceError,
    TransientError,
)

PINATA_API_URL = "https://api.pinata.cloud"

# Pinata status codes with a meaningful retry classification
STATUS_ERRORS: dict[int, type[ServiceError]] = {
    400: IPFSValidationError,
    401: IPFSAuthError,
    403: IPFSAuthError,
    429: IPFSRateLimitError,
    500: TransientError,
    502: TransientError,
    503: TransientError,
}


class MetadataUploader(Protocol):
    """Stores a JSON document and returns a stable URI for it."""

    async def upload_metadata(self, metadata: dict[str, Any], event_id: int) -> str: ...


class PinataClient:
    """Pins one JSON document per event through pinJSONToIPFS."""

    def __init__(self, jwt_token: str, timeout: float = 30.0, api_url: str = PINATA_API_URL):
        self.api_url = api_url
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {jwt_token}",
            "Content-Type": "application/json",
        }

    async def upload_metadata(self, metadata: dict[str, Any], event_id: int) -> str:
        """Pin the metadata shared by every token of an event.

        The document is named attendify-event-<id>.json and tagged with the
        event id so pins can be found from the Pinata dashboard.

        Returns:
            ipfs:// URI of the pinned document, or "" when Pinata returns no CID

        Raises:
            TransientError: Timeouts, rate limiting and 5xx responses
            PermanentError: Rejected credentials or a malformed document
        """
        body = {
            "pinataContent": metadata,
            "pinataOptions": {"cidVersion": 1},
            "pinataMetadata": {
                "name": f"attendify-event-{event_id}.json",
                "keyvalues": {"event_id": str(event_id)},
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_url}/pinning/pinJSONToIPFS", headers=self.headers, json=body
                )
        except httpx.HTTPError as e:
            kind = "timed out" if isinstance(e, httpx.TimeoutException) else "failed"
            raise IPFSNetworkError(f"Pinata request {kind}: {e}") from e

        error_type = STATUS_ERRORS.get(response.status_code)
        if error_type is not None:
            raise error_type(f"Pinata returned {response.status_code}: {response.text}")

        response.raise_for_status()
        cid = response.json().get("IpfsHash")
        return f"ipfs://{cid}" if cid else ""
