from typing import Tuple

import numpy as np


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (JPEG/PNG/...) into an OpenCV BGR array.

    Raises ValueError when the bytes are empty or not a decodable image.
    """
    cv2 = _require_cv2()

    if not data:
        raise ValueError("Image bytes are empty.")
    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Could not decode image bytes.")
    return image


def stretch_resize(image: np.ndarray, new_shape: Tuple[int, int] = (640, 640)) -> np.ndarray:
    """
    Resize to exactly `new_shape` (width, height) without preserving aspect ratio.

    Boxes decoded from the stretched input are mapped back with independent
    x/y scale factors, so no padding is involved.
    """
    cv2 = _require_cv2()

    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    new_w, new_h = new_shape
    h, w = image.shape[:2]
    if (w, h) == (new_w, new_h):
        return image
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)


def to_input_blob(image_bgr: np.ndarray, new_shape: Tuple[int, int] = (640, 640), layout: str = "nhwc") -> np.ndarray:
    """
    Build the model input: stretch, BGR -> RGB, scale to [0, 1], add batch axis.

    layout "nhwc" gives (1, H, W, 3) as TFLite expects; "nchw" gives (1, 3, H, W).
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    img = stretch_resize(image_bgr, new_shape)
    blob = img[:, :, ::-1].astype(np.float32) / 255.0

    layout = layout.lower()
    if layout == "nchw":
        blob = np.transpose(blob, (2, 0, 1))
    elif layout != "nhwc":
        raise ValueError(f"Unsupported input layout: {layout!r}")
    return np.ascontiguousarray(blob[None, ...])
