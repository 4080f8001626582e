from unittest.mock import Mock

from events import Signal


class TestSignal:

    def test_delivers_in_subscription_order(self):
        signal = Signal("topic")
        calls = []
        signal.connect(lambda value: calls.append(("first", value)))
        signal.connect(lambda value: calls.append(("second", value)))

        signal.emit(42)

        assert calls == [("first", 42), ("second", 42)]

    def test_disconnect_function(self):
        signal = Signal("topic")
        listener = Mock()
        disconnect = signal.connect(listener)

        disconnect()
        signal.emit()

        listener.assert_not_called()
        assert len(signal) == 0

    def test_disconnect_unknown_callback_is_ignored(self):
        Signal("topic").disconnect(Mock())

    def test_raising_subscriber_does_not_stop_delivery(self, caplog):
        signal = Signal("topic")
        after = Mock()
        signal.connect(Mock(side_effect=RuntimeError("boom")))
        signal.connect(after)

        signal.emit("x")

        after.assert_called_once_with("x")
        assert "Subscriber" in caplog.text and "topic failed" in caplog.text

    def test_subscriber_may_disconnect_while_handling(self):
        signal = Signal("topic")
        second = Mock()
        holder = {}

        def first():
            holder["disconnect"]()

        holder["disconnect"] = signal.connect(first)
        signal.connect(second)

        signal.emit()
        signal.emit()

        assert second.call_count == 2
        assert len(signal) == 1
