"""Cooperative cancellation shared between a caller and the engine."""

import threading


class CancellationToken:
    """Caller-owned cancellation flag.

    The engine only polls ``is_cancelled`` between pipeline stages; it never
    blocks on the token and never interrupts a stage that is running.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._timer: threading.Timer | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def cancel_after(self, seconds: float) -> threading.Timer:
        """Cancel automatically once *seconds* of wall-clock time have passed.

        The engine enforces no timeout of its own; this pairs the token with
        a daemon timer for callers that want one. Returns the armed timer so
        it can be stopped early with ``timer.cancel()``.
        """
        if self._timer is not None:
            self._timer.cancel()
        timer = threading.Timer(seconds, self.cancel)
        timer.daemon = True
        timer.start()
        self._timer = timer
        return timer

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
