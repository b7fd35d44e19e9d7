#  File: carpet_qr/services/detection.py

import io
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from carpet_qr.core.logger import setup_logger

logger = setup_logger(__name__)

QUIET_ZONE_PX = 16


#  Binarize for low-contrast photos of printed labels
def preprocess_for_decode(gray: np.ndarray) -> np.ndarray:
    gray = cv2.bilateralFilter(gray, 5, 75, 75)
    return cv2.adaptiveThreshold(gray, 255,
                                 cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                                 cv2.THRESH_BINARY, 21, 11)


def opencv_decode(gray: np.ndarray) -> List[str]:
    detector = cv2.QRCodeDetector()
    data, points, _ = detector.detectAndDecode(gray)
    if points is not None and data:
        return [data]
    return []


def to_gray(np_img: np.ndarray) -> np.ndarray:
    if np_img.ndim == 3:
        return cv2.cvtColor(np_img, cv2.COLOR_BGR2GRAY)
    return np_img


def read_code_from_frame(frame: np.ndarray) -> Optional[str]:
    """Decode the QR code in a camera frame (BGR or gray), or None."""
    # labels are printed with a 1-module margin, pad so the detector sees a quiet zone
    gray = cv2.copyMakeBorder(
        to_gray(frame), QUIET_ZONE_PX, QUIET_ZONE_PX, QUIET_ZONE_PX, QUIET_ZONE_PX,
        cv2.BORDER_CONSTANT, value=255,
    )

    decoded = opencv_decode(gray)
    if not decoded:
        decoded = opencv_decode(preprocess_for_decode(gray))  # fallback

    if not decoded:
        return None
    return decoded[0]


def read_code(image_bytes: bytes) -> Optional[str]:
    """Decode the QR code in an uploaded image. None means no code was found."""
    try:
        img = Image.open(io.BytesIO(image_bytes)).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Uploaded file is not a readable image: {e}")
        return None

    frame = cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)
    return read_code_from_frame(frame)
