#  File: carpet_qr/services/camera.py

from typing import Callable, Iterator, Optional

import cv2

from carpet_qr.api.schemas import Rejected
from carpet_qr.core.config import settings
from carpet_qr.core.logger import setup_logger
from carpet_qr.services.detection import read_code_from_frame
from carpet_qr.services.dispatcher import DispatchResult, resolve

logger = setup_logger(__name__)


class CameraUnavailable(RuntimeError):
    pass


class CameraScanner:
    """
    Live camera scanning session.

    The capture device is held between start() and stop(); stop() may be
    called any number of times. Use as a context manager to guarantee release.
    """

    def __init__(
        self,
        camera_id: Optional[int] = None,
        capture_factory: Callable = cv2.VideoCapture,
        decoder: Callable = read_code_from_frame,
    ) -> None:
        self.camera_id = settings.CAMERA_ID if camera_id is None else camera_id
        self.capture_factory = capture_factory
        self.decoder = decoder
        self.cap = None

    @property
    def is_scanning(self) -> bool:
        return self.cap is not None

    def start(self) -> "CameraScanner":
        if self.cap is not None:
            return self
        cap = self.capture_factory(self.camera_id)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailable(f"Failed to open camera {self.camera_id}")
        self.cap = cap
        logger.info(f"Camera {self.camera_id} started")
        return self

    def stop(self) -> None:
        if self.cap is None:
            return
        cap, self.cap = self.cap, None
        cap.release()
        logger.info(f"Camera {self.camera_id} stopped")

    def __enter__(self) -> "CameraScanner":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def codes(self, max_frames: Optional[int] = None) -> Iterator[str]:
        """Yield decoded strings frame by frame until stopped or the stream ends."""
        frames = 0
        while self.cap is not None:
            if max_frames is not None and frames >= max_frames:
                return
            ok, frame = self.cap.read()
            frames += 1
            if not ok:
                logger.warning("Camera stream ended")
                return
            code = self.decoder(frame)
            if code:
                yield code

    def scan(
        self,
        max_frames: Optional[int] = None,
        on_reject: Optional[Callable[[Rejected], None]] = None,
    ) -> Optional[DispatchResult]:
        """
        Scan until a product code is accepted, then stop the camera.

        Rejected codes are reported through `on_reject` once per distinct
        string and scanning continues. Returns None if no code was accepted.
        """
        last_rejected = None
        for raw in self.codes(max_frames):
            if raw == last_rejected:
                continue
            result = resolve(raw)
            if isinstance(result, Rejected):
                last_rejected = raw
                if on_reject is not None:
                    on_reject(result)
                continue
            self.stop()
            return result
        return None
