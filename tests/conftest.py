"""Shared fixtures and fakes for parkcam tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

from parkcam.capture import CaptureResult
from parkcam.config import Settings
from parkcam.coordinator import PollSignal
from parkcam.errors import CaptureError
from parkcam.storage import UploadedImage


@pytest.fixture
def jpeg_path(tmp_path: Path) -> Path:
    """A small real JPEG at the capture path."""
    path = tmp_path / "test.jpg"
    Image.new("RGB", (64, 48), color="gray").save(path, format="JPEG")
    return path


@pytest.fixture
def settings(tmp_path: Path, jpeg_path: Path) -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        capture_path=jpeg_path,
        cache_file=tmp_path / "cache.json",
        server_host="coordinator.test",
        location_name="300ThirdStreet",
        poll_interval=10.0,
    )


class CallLog:
    """Ordered record of calls across all fakes."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeCoordinator:
    """Coordinator returning scripted answers; entries may be exceptions."""

    def __init__(self, log: CallLog, answers: list, notify_error: Exception | None = None):
        self.log = log
        self.answers = list(answers)
        self.notify_error = notify_error

    def update_url(self, location_id: str) -> str:
        return f"http://coordinator.test/clientupdate/{location_id}"

    def check_for_request(self, location_id: str) -> PollSignal:
        self.log.calls.append(("check", location_id))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return PollSignal(new_pic_requested=answer)

    def notify_new_image(self, location_id: str, image_url: str) -> str:
        self.log.calls.append(("notify", location_id, {"LatestImageURL": image_url}))
        if self.notify_error:
            raise self.notify_error
        return "ok"

    def close(self) -> None:
        self.log.calls.append(("close",))


class FakeCamera:
    def __init__(self, log: CallLog, path: Path, fail: bool = False):
        self.log = log
        self.path = path
        self.fail = fail

    def capture(self) -> CaptureResult:
        self.log.calls.append(("capture",))
        if self.fail:
            raise CaptureError("Error capturing image with command: raspistill (exit 1)")
        return CaptureResult(
            path=self.path,
            file_size=self.path.stat().st_size,
            timestamp=datetime.now(timezone.utc),
        )


class FakeStorage:
    """Storage gateway that records uploads; ACL failures are scripted."""

    def __init__(
        self,
        log: CallLog,
        bucket_exists: bool = True,
        upload_error: Exception | None = None,
        acl_error: Exception | None = None,
    ):
        self.log = log
        self.exists = bucket_exists
        self.upload_error = upload_error
        self.acl_error = acl_error
        self.uploaded: list[str] = []

    def ensure_bucket(self) -> bool:
        self.log.calls.append(("ensure_bucket",))
        if self.exists:
            return False
        self.log.calls.append(("create_bucket",))
        self.exists = True
        return True

    def upload_image(self, path: Path, object_name: str) -> UploadedImage:
        self.log.calls.append(("upload", object_name))
        if self.upload_error:
            raise self.upload_error
        self.uploaded.append(object_name)
        return UploadedImage(
            object_name=object_name,
            media_link=f"https://storage.test/download/{object_name}",
        )

    def make_public(self, object_name: str) -> dict:
        self.log.calls.append(("make_public", object_name))
        if self.acl_error:
            raise self.acl_error
        return {"entity": "allUsers", "role": "READER"}


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append
