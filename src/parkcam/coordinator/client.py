"""HTTP client for the remote coordinator service."""

import json
from typing import Any

import httpx
from pydantic import ValidationError

from parkcam import __version__
from parkcam.config import Settings
from parkcam.coordinator.models import NotifyPayload, PollSignal
from parkcam.errors import NetworkError, ProtocolError
from parkcam.logging import coordinator_logger

logger = coordinator_logger()


class CoordinatorClient:
    """Blocking client for the coordinator's check and update endpoints.

    Connection failures surface as NetworkError so the poll loop can skip
    the cycle; malformed check answers surface as ProtocolError.

    Example:
        with CoordinatorClient(settings) as client:
            signal = client.check_for_request(settings.location_name)
    """

    def __init__(
        self,
        config: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Settings with server host, paths and timeout
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.config = config
        self._client = httpx.Client(
            base_url=config.server_base_url,
            timeout=httpx.Timeout(config.request_timeout),
            headers={"User-Agent": f"parkcam-agent/{__version__}"},
            transport=transport,
        )

    def check_url(self, location_id: str) -> str:
        return f"{self.config.server_base_url}{self.config.check_path}/{location_id}"

    def update_url(self, location_id: str) -> str:
        return f"{self.config.server_base_url}{self.config.update_path}/{location_id}"

    def check_for_request(self, location_id: str) -> PollSignal:
        """Ask the coordinator whether a new picture was requested.

        Args:
            location_id: Camera location identifier

        Returns:
            PollSignal parsed from the response body

        Raises:
            NetworkError: If the coordinator cannot be reached
            ProtocolError: If the answer is not {"NewPicRequested": bool}
        """
        url = self.check_url(location_id)
        try:
            response = self._client.get(url)
        except httpx.TransportError as e:
            raise NetworkError(f"Failed to connect to server at {url}: {e}") from e

        logger.debug(
            "JSON received from clientcheck URL",
            extra={"url": url, "status": response.status_code, "body": response.text},
        )

        if response.is_error:
            raise ProtocolError(
                f"Server at {url} answered {response.status_code}: {response.text}"
            )

        try:
            return PollSignal.model_validate(response.json())
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise ProtocolError(
                f"JSON parameters from server in check response could not be loaded: {e}"
            ) from e

    def notify_new_image(self, location_id: str, image_url: str) -> str:
        """Tell the coordinator where the latest image lives.

        Args:
            location_id: Camera location identifier
            image_url: Public URL of the uploaded image

        Returns:
            Response body text; it is logged, not parsed

        Raises:
            NetworkError: If the coordinator cannot be reached
        """
        url = self.update_url(location_id)
        payload = NotifyPayload(latest_image_url=image_url)
        logger.debug(
            "JSON being sent to update link",
            extra={"url": url, "payload": payload.to_wire()},
        )

        try:
            response = self._client.post(
                url,
                content=json.dumps(payload.to_wire()),
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Failed to connect to server at {url}: {e}") from e

        if response.is_error:
            logger.warning(
                "Update rejected by server",
                extra={"url": url, "status": response.status_code, "body": response.text},
            )
        return response.text

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> "CoordinatorClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()
