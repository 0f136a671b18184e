class JobCancelled(Exception):
    """Raised inside a job's background task once its token is cancelled."""


class CancellationToken:
    """Cooperative cancellation flag checked between items and batches."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise JobCancelled()
