import threading


class CancellationToken:
    """Cooperative cancellation flag threaded through retry and poll loops.

    Loops check ``cancelled`` at the top of each iteration and sleep through
    ``wait`` so that a cancel request interrupts a pending backoff.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Block up to ``seconds``.

        Returns:
            bool: True if the token was cancelled before or during the wait
        """
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
