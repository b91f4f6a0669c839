"""Unit tests for the cooperative interrupt token."""

from maintenance_tasks.lib.engine.interrupt import InterruptToken


class TestInterruptToken:
    """Tests for InterruptToken."""

    def test_initially_clear(self) -> None:
        token = InterruptToken()
        assert token.interrupted is False
        assert token.reason is None

    def test_request_interrupt(self) -> None:
        token = InterruptToken()
        token.request_interrupt("SIGTERM")
        assert token.interrupted is True
        assert token.reason == "SIGTERM"

    def test_first_reason_wins(self) -> None:
        token = InterruptToken()
        token.request_interrupt("deploy")
        token.request_interrupt("SIGINT")
        assert token.reason == "deploy"
