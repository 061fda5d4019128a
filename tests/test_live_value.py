#!/usr/bin/env python3
"""
Live Value Tests
"""

import threading
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from donations import LiveValue


class TestLiveValue:
    """Tests for LiveValue subscriptions"""

    def test_subscribe_receives_current_value(self):
        live = LiveValue("USD")
        received = []

        live.subscribe(received.append)

        assert received == ["USD"]

    def test_push_notifies_all_subscribers(self):
        live = LiveValue("USD")
        first, second = [], []
        live.subscribe(first.append)
        live.subscribe(second.append)

        live.push("EUR")

        assert first == ["USD", "EUR"]
        assert second == ["USD", "EUR"]
        assert live.value == "EUR"

    def test_unsubscribe(self):
        live = LiveValue("USD")
        received = []
        unsubscribe = live.subscribe(received.append)

        unsubscribe()
        live.push("EUR")

        assert received == ["USD"]
        assert live.subscriber_count == 0

    def test_unsubscribe_twice(self):
        live = LiveValue(0)
        unsubscribe = live.subscribe(lambda v: None)

        unsubscribe()
        unsubscribe()

        assert live.subscriber_count == 0

    def test_same_value_is_delivered_again(self):
        live = LiveValue("USD")
        received = []
        live.subscribe(received.append)

        live.push("USD")

        assert received == ["USD", "USD"]

    def test_failing_subscriber_does_not_block_others(self):
        live = LiveValue("USD")
        received = []

        def broken(value):
            if value == "EUR":
                raise RuntimeError("render failed")

        live.subscribe(broken)
        live.subscribe(received.append)

        live.push("EUR")

        assert received == ["USD", "EUR"]

    def test_unsubscribe_during_push(self):
        live = LiveValue("USD")
        received = []
        unsubscribers = []

        def once(value):
            received.append(value)
            if value == "EUR":
                unsubscribers[0]()

        unsubscribers.append(live.subscribe(once))

        live.push("EUR")
        live.push("GBP")

        assert received == ["USD", "EUR"]


class TestLiveValueOrdering:
    """Tests for delivery order across threads and nested pushes"""

    def test_push_during_replay_arrives_after_replay(self):
        """A push racing a subscribe never leaves the subscriber on a stale value"""

        class RacingLiveValue(LiveValue):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.pusher = None

            def _notify(self, callback, value):
                if self.pusher is None:
                    self.pusher = threading.Thread(target=self.push, args=("EUR",))
                    self.pusher.start()
                    # Give the other thread a chance to run mid-replay
                    self.pusher.join(timeout=0.2)
                super()._notify(callback, value)

        live = RacingLiveValue("USD")
        received = []

        live.subscribe(received.append)
        live.pusher.join(timeout=5)

        assert received == ["USD", "EUR"]
        assert received[-1] == live.value

    def test_concurrent_pushes_end_on_current_value(self):
        live = LiveValue(0)
        received = []
        live.subscribe(received.append)

        threads = [threading.Thread(target=live.push, args=(i,)) for i in range(1, 21)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert received[-1] == live.value
        assert sorted(received) == list(range(21))

    def test_nested_push_is_not_overtaken(self):
        live = LiveValue("USD")
        first, second = [], []

        def redirect(value):
            first.append(value)
            if value == "EUR":
                live.push("GBP")

        live.subscribe(redirect)
        live.subscribe(second.append)

        live.push("EUR")

        assert first == ["USD", "EUR", "GBP"]
        assert second == ["USD", "GBP"]
        assert live.value == "GBP"
