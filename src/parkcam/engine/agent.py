"""Agent wiring credentials, storage bootstrap and the poll loop."""

import logging
import time
from typing import Any, Callable

from parkcam.capture import CameraCapture
from parkcam.config import Settings
from parkcam.coordinator import CoordinatorClient
from parkcam.engine.poll_loop import PollLoop
from parkcam.storage import StorageGateway, build_storage_service

logger = logging.getLogger(__name__)


class ParkcamAgent:
    """High-level entry point used by the CLI.

    Owns the coordinator client, camera, storage gateway and poll loop, all
    built from one Settings value.

    Example:
        agent = ParkcamAgent.from_credentials(settings, creds)
        try:
            agent.start()
        finally:
            agent.close()
    """

    def __init__(
        self,
        config: Settings,
        coordinator: CoordinatorClient,
        camera: CameraCapture,
        storage: StorageGateway,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.coordinator = coordinator
        self.camera = camera
        self.storage = storage
        self.loop = PollLoop(config, coordinator, camera, storage, sleep=sleep)

    @classmethod
    def from_credentials(cls, config: Settings, credentials: Any) -> "ParkcamAgent":
        """Build an agent talking to the real storage API and coordinator."""
        service = build_storage_service(credentials)
        return cls(
            config,
            coordinator=CoordinatorClient(config),
            camera=CameraCapture(config),
            storage=StorageGateway(service, config),
        )

    def start(self, max_cycles: int | None = None) -> None:
        """Ensure the bucket exists, then run the poll loop.

        Args:
            max_cycles: Stop after this many iterations (None runs forever)

        Raises:
            ParkcamError: Fatal bootstrap or loop error
        """
        logger.info(
            "Starting parkcam agent",
            extra={
                "bucket": self.config.bucket_name,
                "server": self.config.server_base_url,
                "poll_interval": self.config.poll_interval,
                "test_mode": self.config.test_mode,
            },
        )
        self.storage.ensure_bucket()
        self.loop.run(max_cycles=max_cycles)

    def stop(self) -> None:
        """Ask the loop to stop after the current cycle."""
        self.loop.stop()

    def close(self) -> None:
        """Release the HTTP client."""
        self.coordinator.close()
        logger.info("Parkcam agent stopped", extra={"cycles": self.loop.cycle})
