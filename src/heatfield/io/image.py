from __future__ import annotations

from io import BytesIO

import numpy as np


_MIME_TO_FORMAT: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/webp": "WEBP",
}

_MIME_TO_CV2_EXT: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
}

# Formats without an alpha channel get the frame composited over this colour.
_OPAQUE_FORMATS = {"JPEG"}


def normalize_mime_type(mime_type: str | None) -> str:
    mime = str(mime_type or "image/png").strip().lower()
    if mime not in _MIME_TO_FORMAT:
        raise ValueError(f"Unsupported mime_type {mime!r}. Supported: {sorted(_MIME_TO_FORMAT.keys())}")
    return mime


def _coerce_rgba_frame(frame: np.ndarray) -> np.ndarray:
    a = np.asarray(frame)
    if a.ndim != 3 or a.shape[2] != 4:
        raise ValueError(f"frame must have shape (H,W,4), got {a.shape}")
    if a.shape[0] == 0 or a.shape[1] == 0:
        raise ValueError("frame must not be empty")
    if np.issubdtype(a.dtype, np.floating):
        a = np.clip(a, 0.0, 1.0) * 255.0
    else:
        a = np.clip(a, 0, 255)
    return np.ascontiguousarray(a, dtype=np.uint8)


def flatten_alpha(rgba: np.ndarray, background: tuple[int, int, int] = (255, 255, 255)) -> np.ndarray:
    """Composite an RGBA frame over an opaque background, returning RGB uint8."""

    rgb = rgba[:, :, :3].astype(np.float32)
    a = rgba[:, :, 3:4].astype(np.float32) / 255.0
    bg = np.asarray(background, dtype=np.float32).reshape(1, 1, 3)
    out = rgb * a + bg * (1.0 - a)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def _encode_with_cv2(rgba: np.ndarray, mime_type: str) -> bytes:
    import cv2  # type: ignore

    ext = _MIME_TO_CV2_EXT[mime_type]
    # OpenCV expects BGR/BGRA data for color images.
    if _MIME_TO_FORMAT[mime_type] in _OPAQUE_FORMATS:
        img = cv2.cvtColor(flatten_alpha(rgba), cv2.COLOR_RGB2BGR)
    else:
        img = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)

    ok, enc = cv2.imencode(ext, img)
    if not ok:
        raise ValueError(f"cv2.imencode failed for mime_type={mime_type!r}")
    return bytes(enc.tobytes())


def _encode_with_pillow(rgba: np.ndarray, mime_type: str) -> bytes:
    from PIL import Image  # type: ignore

    fmt = _MIME_TO_FORMAT[mime_type]
    if fmt in _OPAQUE_FORMATS:
        img = Image.fromarray(flatten_alpha(rgba), mode="RGB")
    else:
        img = Image.fromarray(rgba, mode="RGBA")
    buf = BytesIO()
    img.save(buf, format=fmt)
    return bytes(buf.getvalue())


def encode_frame(frame: np.ndarray, mime_type: str | None = "image/png") -> bytes:
    """Encode a composited (H,W,4) RGBA frame.

    OpenCV is tried first, then Pillow. JPEG drops transparency by compositing
    over white.
    """

    mime = normalize_mime_type(mime_type)
    rgba = _coerce_rgba_frame(frame)
    try:
        return _encode_with_cv2(rgba, mime)
    except Exception:
        try:
            return _encode_with_pillow(rgba, mime)
        except Exception as exc:
            raise RuntimeError(
                "Failed to encode frame. Install OpenCV (`opencv-python`) or Pillow (`Pillow`)."
            ) from exc
