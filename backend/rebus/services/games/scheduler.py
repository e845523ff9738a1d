import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

Tag = Tuple[str, int, int]

GROUP_ROUND = 'round'
GROUP_REAP = 'reap'


class TimerHandle:
    """One scheduled callback, tagged with the room phase it was issued for."""

    def __init__(self, tag: Tag, name: str, due: float, callback: Callable[[Tag], None], group: str):
        self.tag = tag
        self.name = name
        self.due = due
        self.callback = callback
        self.group = group
        self.cancelled = False

    @property
    def room_code(self) -> str:
        return self.tag[0]

    def __repr__(self):
        return f"<TimerHandle {self.name} room={self.tag[0]} round={self.tag[1]} gen={self.tag[2]} due={self.due:.2f}>"


class BaseScheduler:
    """Per-room set of cancellable callbacks.

    Cancelling only flags a handle; a flagged handle that still wakes up is
    dropped before its callback runs.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: Dict[str, List[TimerHandle]] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        raise NotImplementedError

    def _start(self, handle: TimerHandle, delay: float) -> None:
        raise NotImplementedError

    def schedule(self, tag: Tag, name: str, delay: float, callback: Callable[[Tag], None],
                 group: str = GROUP_ROUND) -> TimerHandle:
        delay = max(0.0, float(delay))
        handle = TimerHandle(tag, name, self.now() + delay, callback, group)
        with self._lock:
            self._tasks.setdefault(handle.room_code, []).append(handle)
        self.logger.info(f"[timer-set] room={tag[0]} round={tag[1]} gen={tag[2]} timer={name} delay={delay:.1f}s")
        self._start(handle, delay)
        return handle

    def cancel(self, room_code: str, group: Optional[str] = GROUP_ROUND) -> int:
        """Cancel every pending timer of a room, or only those in ``group``."""
        with self._lock:
            handles = self._tasks.get(room_code, [])
            doomed = [h for h in handles if group is None or h.group == group]
            kept = [h for h in handles if h not in doomed]
            if kept:
                self._tasks[room_code] = kept
            else:
                self._tasks.pop(room_code, None)
        for h in doomed:
            h.cancelled = True
        if doomed:
            self.logger.info(f"[timer-cancel] room={room_code} count={len(doomed)} group={group or 'all'}")
        return len(doomed)

    def pending(self, room_code: str) -> List[str]:
        with self._lock:
            return [h.name for h in self._tasks.get(room_code, []) if not h.cancelled]

    def _fire(self, handle: TimerHandle) -> None:
        with self._lock:
            handles = self._tasks.get(handle.room_code)
            if handles and handle in handles:
                handles.remove(handle)
                if not handles:
                    self._tasks.pop(handle.room_code, None)
        if handle.cancelled:
            self.logger.info(f"[timer-abort] room={handle.tag[0]} timer={handle.name} cancelled")
            return
        self.logger.info(f"[timer-fire] room={handle.tag[0]} round={handle.tag[1]} gen={handle.tag[2]} timer={handle.name}")
        try:
            handle.callback(handle.tag)
        except Exception:
            self.logger.exception(f"[timer-error] room={handle.tag[0]} timer={handle.name}")


class BackgroundScheduler(BaseScheduler):
    """Runs each timer as a Socket.IO background task."""

    def __init__(self, socketio, logger: Optional[logging.Logger] = None, heartbeat_sec: int = 0):
        super().__init__(logger)
        self.socketio = socketio
        self.heartbeat_sec = heartbeat_sec

    def now(self) -> float:
        return time.time()

    def _start(self, handle: TimerHandle, delay: float) -> None:
        self.socketio.start_background_task(self._worker, handle, delay)

    def _worker(self, handle: TimerHandle, delay: float) -> None:
        hb = self.heartbeat_sec
        if hb and hb > 0:
            slept = 0.0
            while slept < delay and not handle.cancelled:
                step = min(hb, delay - slept)
                self.socketio.sleep(step)
                slept += step
                self.logger.info(f"[timer-heartbeat] room={handle.tag[0]} timer={handle.name} remaining={max(0.0, delay - slept):.1f}s")
        else:
            self.socketio.sleep(delay)
        self._fire(handle)


class ManualScheduler(BaseScheduler):
    """Deterministic clock for tests: nothing fires until ``advance`` is called."""

    def __init__(self, logger: Optional[logging.Logger] = None, start: float = 1000.0):
        super().__init__(logger)
        self._now = start

    def now(self) -> float:
        return self._now

    def _start(self, handle: TimerHandle, delay: float) -> None:
        pass

    def _next_due(self, until: float) -> Optional[TimerHandle]:
        with self._lock:
            due = [h for hs in self._tasks.values() for h in hs if h.due <= until]
        return min(due, key=lambda h: h.due) if due else None

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while True:
            handle = self._next_due(target)
            if handle is None:
                break
            self._now = max(self._now, handle.due)
            self._fire(handle)
        self._now = target
