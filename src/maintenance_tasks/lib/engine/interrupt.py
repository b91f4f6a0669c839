"""Cooperative interruption token polled by the engine at item boundaries."""


class InterruptToken:
    """Set by the host environment (shutdown signal, deploy) to ask a slice to stop.

    The engine never gets an exception thrown into its loop; it polls
    :attr:`interrupted` between items and suspends the run with status
    ``interrupted`` so the scheduler can pick it up again later.
    """

    def __init__(self) -> None:
        self._requested = False
        self._reason: str | None = None

    @property
    def interrupted(self) -> bool:
        return self._requested

    @property
    def reason(self) -> str | None:
        return self._reason

    def request_interrupt(self, reason: str = "interrupt requested") -> None:
        if not self._requested:
            self._requested = True
            self._reason = reason
