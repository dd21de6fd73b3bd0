from typing import Optional


class DisplayThrottle:
    """
    Limits how often derived text and numbers are re-rendered.

    Only the display path is throttled; detection and classification still
    run on every frame.
    """

    def __init__(self, rate_hz: float = 15.0):
        self.interval_ms = 1000.0 / rate_hz if rate_hz > 0 else 0.0
        self._last_render_ms: Optional[float] = None

    def should_render(self, timestamp_ms: float, force: bool = False) -> bool:
        if (
            force
            or self._last_render_ms is None
            or timestamp_ms - self._last_render_ms >= self.interval_ms
            or timestamp_ms < self._last_render_ms  # Clock reset
        ):
            self._last_render_ms = timestamp_ms
            return True
        return False

    def reset(self) -> None:
        self._last_render_ms = None
