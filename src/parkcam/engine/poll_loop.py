"""Poll-capture-upload-notify loop."""

import time
from enum import Enum
from typing import Callable

from parkcam.capture import CameraCapture
from parkcam.config import Settings
from parkcam.coordinator import CoordinatorClient
from parkcam.errors import NetworkError, ParkcamError, ProtocolError
from parkcam.logging import (
    log_notify_failed,
    log_notify_sent,
    log_poll_result,
    log_state_change,
    loop_logger,
)
from parkcam.storage import ObjectNamer, StorageGateway

logger = loop_logger()


class LoopState(Enum):
    """State of the poll loop."""

    IDLE = "idle"
    POLLING = "polling"
    CAPTURING = "capturing"
    UPLOADING = "uploading"
    SETTING_VISIBILITY = "setting_visibility"
    NOTIFYING = "notifying"
    STOPPED = "stopped"


class CycleOutcome(Enum):
    """How a single loop iteration ended."""

    SKIPPED_NETWORK = "skipped_network"
    SKIPPED_PROTOCOL = "skipped_protocol"
    NO_REQUEST = "no_request"
    COMPLETED = "completed"
    NOTIFY_FAILED = "notify_failed"


class PollLoop:
    """Strictly sequential poll loop.

    Each iteration sleeps the poll interval, asks the coordinator whether a
    picture is wanted and, if so, captures, uploads, makes the object public
    and reports its URL. Only one cycle is ever in flight.

    Non-fatal errors (coordinator unreachable) abandon the cycle. Fatal
    errors leave the loop in STOPPED and propagate to the caller.

    Example:
        loop = PollLoop(settings, coordinator, camera, storage)
        loop.on_state_change(lambda s: print(s.value))
        loop.run()
    """

    def __init__(
        self,
        config: Settings,
        coordinator: CoordinatorClient,
        camera: CameraCapture,
        storage: StorageGateway,
        namer: ObjectNamer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the poll loop.

        Args:
            config: Settings with location, interval and poll strictness
            coordinator: Client for the check and update endpoints
            camera: Capture invoker writing to the capture path
            storage: Gateway used for upload and visibility
            namer: Object name generator (defaults to the location prefix)
            sleep: Sleep function for the interval wait
        """
        self.config = config
        self.location_id = config.location_name
        self._coordinator = coordinator
        self._camera = camera
        self._storage = storage
        self._namer = namer or ObjectNamer(config.object_path)
        self._sleep = sleep

        self._state = LoopState.IDLE
        self._running = False
        self._cycle = 0
        self._last_image_url: str | None = None

        self._state_change_callbacks: list[Callable[[LoopState], None]] = []

    @property
    def state(self) -> LoopState:
        """Get current loop state."""
        return self._state

    @property
    def cycle(self) -> int:
        """Number of iterations started so far."""
        return self._cycle

    @property
    def last_image_url(self) -> str | None:
        """URL of the most recent uploaded image, if any."""
        return self._last_image_url

    def on_state_change(self, callback: Callable[[LoopState], None]) -> None:
        """Register callback for state changes.

        Args:
            callback: Function called with the new LoopState on each change
        """
        self._state_change_callbacks.append(callback)

    def _set_state(self, new_state: LoopState) -> None:
        """Set state and notify callbacks."""
        if self._state == new_state:
            return
        old_state = self._state
        self._state = new_state
        log_state_change(logger, old_state.value, new_state.value, self._cycle)
        for callback in self._state_change_callbacks:
            try:
                callback(new_state)
            except Exception:
                logger.exception("State change callback failed")

    def run(self, max_cycles: int | None = None) -> None:
        """Run the loop until stopped, a fatal error, or max_cycles iterations.

        Raises:
            ParkcamError: Any fatal error raised inside a cycle
        """
        self._running = True
        self._set_state(LoopState.IDLE)
        completed = 0

        while self._running and (max_cycles is None or completed < max_cycles):
            self._cycle += 1
            logger.info("In update/check loop", extra={"event": "cycle_started", "cycle": self._cycle})

            self._sleep(self.config.poll_interval)
            if not self._running:
                break

            try:
                outcome = self.run_cycle()
            except ParkcamError:
                self._running = False
                self._set_state(LoopState.STOPPED)
                raise

            logger.debug(
                "Cycle finished",
                extra={"event": "cycle_finished", "cycle": self._cycle, "outcome": outcome.value},
            )
            completed += 1

        self._running = False
        self._set_state(LoopState.STOPPED)

    def stop(self) -> None:
        """Stop the loop once the current cycle has finished."""
        self._running = False

    def run_cycle(self) -> CycleOutcome:
        """Run one poll and, when requested, one capture-upload-notify pass.

        Returns:
            CycleOutcome describing how the cycle ended

        Raises:
            ProtocolError: Malformed poll answer with strict_poll_responses
            CaptureError: Camera failure
            StorageError: Upload or visibility failure
        """
        self._set_state(LoopState.POLLING)
        try:
            signal = self._coordinator.check_for_request(self.location_id)
        except NetworkError as e:
            logger.warning(
                "Coordinator unreachable, skipping cycle",
                extra={"event": "poll_failed", "cycle": self._cycle, "error": str(e)},
            )
            self._set_state(LoopState.IDLE)
            return CycleOutcome.SKIPPED_NETWORK
        except ProtocolError as e:
            if self.config.strict_poll_responses:
                raise
            logger.warning(
                "Malformed poll response, skipping cycle",
                extra={"event": "poll_malformed", "cycle": self._cycle, "error": str(e)},
            )
            self._set_state(LoopState.IDLE)
            return CycleOutcome.SKIPPED_PROTOCOL

        log_poll_result(logger, self._cycle, signal.new_pic_requested)
        if not signal.new_pic_requested:
            self._set_state(LoopState.IDLE)
            return CycleOutcome.NO_REQUEST

        self._set_state(LoopState.CAPTURING)
        captured = self._camera.capture()

        self._set_state(LoopState.UPLOADING)
        image = self._storage.upload_image(captured.path, self._namer.next_name())

        self._set_state(LoopState.SETTING_VISIBILITY)
        self._storage.make_public(image.object_name)
        self._last_image_url = image.media_link

        self._set_state(LoopState.NOTIFYING)
        outcome = CycleOutcome.COMPLETED
        update_url = self._coordinator.update_url(self.location_id)
        try:
            body = self._coordinator.notify_new_image(self.location_id, image.media_link)
            log_notify_sent(logger, update_url, image.media_link, body)
        except NetworkError as e:
            log_notify_failed(logger, update_url, str(e))
            outcome = CycleOutcome.NOTIFY_FAILED

        self._set_state(LoopState.IDLE)
        return outcome
