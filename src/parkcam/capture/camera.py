"""Still capture through the raspistill command-line tool."""

import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from parkcam.config import Settings
from parkcam.errors import CaptureError
from parkcam.logging import capture_logger, log_capture_taken

logger = capture_logger()


@dataclass(frozen=True)
class CaptureResult:
    """A freshly written image at the capture path."""

    path: Path
    file_size: int
    timestamp: datetime


class CameraCapture:
    """Runs the capture command and validates what it wrote.

    The capture path is a single slot: every capture overwrites the previous
    file. In test mode the command is skipped and the file already at the
    capture path is used.
    """

    def __init__(self, config: Settings) -> None:
        """Initialize camera capture.

        Args:
            config: Settings with capture command, path, size and timeout
        """
        self.path = config.capture_path
        self.args = config.capture_args
        self.timeout = config.capture_timeout
        self.test_mode = config.test_mode

    def capture(self) -> CaptureResult:
        """Take a picture.

        Returns:
            CaptureResult for the image at the capture path

        Raises:
            CaptureError: If the command fails, times out or leaves no image
        """
        if not self.test_mode:
            self._run_command()

        result = self._validate_output()
        log_capture_taken(logger, result.path, result.file_size, self.test_mode)
        return result

    def _run_command(self) -> None:
        try:
            subprocess.run(
                self.args,
                check=True,
                timeout=self.timeout,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CaptureError(f"Capture command not found: {self.args[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise CaptureError(
                f"Capture timed out after {self.timeout}s with command: {self.args}"
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else ""
            raise CaptureError(
                f"Error capturing image with command: {self.args} "
                f"(exit {e.returncode}): {stderr}"
            ) from e

    def _validate_output(self) -> CaptureResult:
        if not self.path.exists() or os.path.getsize(self.path) == 0:
            raise CaptureError(f"No image was written to {self.path}")

        try:
            with Image.open(self.path) as img:
                img.verify()
        except (UnidentifiedImageError, OSError) as e:
            raise CaptureError(f"Captured file {self.path} is not a readable image: {e}") from e

        return CaptureResult(
            path=self.path,
            file_size=os.path.getsize(self.path),
            timestamp=datetime.now(timezone.utc),
        )
