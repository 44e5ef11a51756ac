"""Capture module for camera stills."""

from parkcam.capture.camera import CameraCapture, CaptureResult

__all__ = ["CameraCapture", "CaptureResult"]
