from __future__ import annotations
import base64
import io
import logging
import threading
from typing import Callable, Iterator, Optional

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

FrameSource = Callable[[], bytes]


class AvatarService:
    """Render initials badges and normalise captured profile photos."""

    SIZE = 96
    COLOR = "#00f0ff"

    @staticmethod
    def initials(name: str) -> str:
        return "".join(part[0] for part in name.split() if part).upper()[:2]

    def default_avatar(self, name: str, color: str | None = None) -> bytes:
        img = Image.new("RGBA", (self.SIZE, self.SIZE), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, 0, self.SIZE - 1, self.SIZE - 1), fill=color or self.COLOR)
        text = self.initials(name) or "?"
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        pos = ((self.SIZE - (right - left)) / 2, (self.SIZE - (bottom - top)) / 2)
        draw.text(pos, text, fill="#000000", font=font)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    @staticmethod
    def to_data_url(image: bytes) -> str:
        """Re-encode ``image`` as PNG and return it as a ``data:`` URL."""
        with Image.open(io.BytesIO(image)) as src:
            buf = io.BytesIO()
            src.save(buf, format="PNG")
        encoded = base64.b64encode(buf.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    @staticmethod
    def from_data_url(url: str) -> bytes:
        if not url.startswith("data:") or "," not in url:
            raise ValueError("not a data URL")
        return base64.b64decode(url.split(",", 1)[1])


class CaptureSession:
    """Exclusive access to the front camera.

    Only one session may be active per process. ``capture`` and ``stop``
    both release the device.
    """

    _lock = threading.Lock()
    _active: Optional["CaptureSession"] = None

    def __init__(self, source: FrameSource, avatars: AvatarService | None = None) -> None:
        self._source = source
        self._avatars = avatars or AvatarService()
        self.active = False

    def start(self) -> None:
        with CaptureSession._lock:
            if CaptureSession._active is not None:
                raise RuntimeError("camera already in use")
            CaptureSession._active = self
            self.active = True
        logger.info("Camera session started")

    def frames(self) -> Iterator[bytes]:
        while self.active:
            yield self._source()

    def capture(self) -> str:
        if not self.active:
            raise RuntimeError("camera is not active")
        try:
            frame = self._source()
            return self._avatars.to_data_url(frame)
        finally:
            self.stop()

    def stop(self) -> None:
        with CaptureSession._lock:
            if CaptureSession._active is self:
                CaptureSession._active = None
            self.active = False

    def __enter__(self) -> "CaptureSession":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
