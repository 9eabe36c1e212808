"""
Frame callbacks for render loops and simulation ticks.

Everything runs on the caller's thread. ``FrameScheduler`` plays the role of a
display's animation-frame queue: callbacks requested before a tick run once
during that tick, and a callback that wants to keep running requests another
frame. ``RenderLoop`` turns that into a repeating task bound to a
visualization's lifetime.
"""
import asyncio
import itertools
import logging
import time
from typing import Callable, Dict, List, Optional

logger = logging.getLogger("PolyViz.scheduler")


class FrameScheduler:
    """Queue of callbacks to run on the next frame."""

    def __init__(self, frame_rate: int = 60):
        self.frame_rate = frame_rate
        self.frame_count = 0
        self._ids = itertools.count(1)
        self._callbacks: Dict[int, Callable[[float], None]] = {}

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for the next frame."""
        return len(self._callbacks)

    def request_frame(self, callback: Callable[[float], None]) -> int:
        """Schedule callback(timestamp) for the next frame; returns its frame id."""
        frame_id = next(self._ids)
        self._callbacks[frame_id] = callback
        return frame_id

    def cancel_frame(self, frame_id: Optional[int]) -> bool:
        """Drop a scheduled callback; False if it already ran or never existed."""
        return self._callbacks.pop(frame_id, None) is not None

    def tick(self, timestamp: Optional[float] = None) -> int:
        """
        Run every callback scheduled before this frame; returns how many ran.

        A failing callback does not stop the others. The first error is
        re-raised once every callback of the frame has run.
        """
        if timestamp is None:
            timestamp = time.monotonic() * 1000
        due: List[Callable[[float], None]] = list(self._callbacks.values())
        self._callbacks.clear()
        self.frame_count += 1
        errors: List[Exception] = []
        for callback in due:
            try:
                callback(timestamp)
            except Exception as e:
                logger.error("Frame callback failed on frame %d: %s", self.frame_count, str(e),
                             exc_info=True)
                errors.append(e)
        if errors:
            raise errors[0]
        return len(due)

    def run_until_idle(self, max_frames: int = 10000) -> int:
        """Tick until nothing is pending or max_frames is reached; returns frames ticked."""
        frames = 0
        while self._callbacks and frames < max_frames:
            self.tick()
            frames += 1
        return frames

    async def run(self, max_frames: Optional[int] = None) -> int:
        """Drive frames at frame_rate until idle (or max_frames); returns frames ticked."""
        interval = 1.0 / self.frame_rate
        frames = 0
        while self._callbacks and (max_frames is None or frames < max_frames):
            self.tick()
            frames += 1
            await asyncio.sleep(interval)
        return frames


class CancellationToken:
    """One-shot cancellation; cancelling twice is a bug and raises."""

    def __init__(self):
        self.cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register cleanup to run when the token is cancelled."""
        self._callbacks.append(callback)

    def cancel(self) -> None:
        """Cancel and run cleanup callbacks."""
        if self.cancelled:
            raise RuntimeError("Cancellation token already invoked")
        self.cancelled = True
        for callback in self._callbacks:
            callback()


class RenderLoop:
    """
    A repeating frame callback bound to one visualization.

    The frame function receives the frame timestamp. Returning False pauses
    the loop (no further frame is requested) until ``resume`` is called;
    any other return value keeps it running. A frame that raises stops the
    loop the same way. ``cancel`` stops it for good.
    """

    def __init__(self, scheduler: FrameScheduler, frame: Callable[[float], Optional[bool]],
                 name: str = "loop"):
        self.scheduler = scheduler
        self.frame = frame
        self.name = name
        self.frames = 0
        self.token = CancellationToken()
        self.token.on_cancel(self._cancel_pending)
        self._frame_id: Optional[int] = None

    @property
    def running(self) -> bool:
        """True while a frame is scheduled."""
        return self._frame_id is not None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def start(self) -> "RenderLoop":
        """Schedule the first frame."""
        if self.token.cancelled:
            raise RuntimeError(f"Render loop '{self.name}' was cancelled")
        if self._frame_id is None:
            self._frame_id = self.scheduler.request_frame(self._run_frame)
        return self

    resume = start

    def cancel(self) -> None:
        """Stop the loop permanently; may be called once."""
        self.token.cancel()
        logger.debug("Render loop '%s' cancelled after %d frames", self.name, self.frames)

    def _cancel_pending(self) -> None:
        self.scheduler.cancel_frame(self._frame_id)
        self._frame_id = None

    def _run_frame(self, timestamp: float) -> None:
        self._frame_id = None
        self.frames += 1
        keep_running = self.frame(timestamp)
        if keep_running is not False and not self.token.cancelled and self._frame_id is None:
            self._frame_id = self.scheduler.request_frame(self._run_frame)
