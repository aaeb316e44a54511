import threading
import unittest

from face_tracker.slot import EMPTY, LatestFrameSlot


class TestLatestFrameSlot(unittest.TestCase):
    def test_newer_item_replaces_pending(self) -> None:
        slot = LatestFrameSlot()
        slot.put("a")
        slot.put("b")
        slot.put("c")
        self.assertEqual(slot.take(timeout=0), "c")
        self.assertEqual(slot.dropped, 2)
        self.assertFalse(slot.pending)

    def test_take_times_out_when_empty(self) -> None:
        self.assertIs(LatestFrameSlot().take(timeout=0.01), EMPTY)

    def test_close_wakes_blocked_consumer(self) -> None:
        slot = LatestFrameSlot()
        got = []
        t = threading.Thread(target=lambda: got.append(slot.take()))
        t.start()
        slot.close()
        t.join(timeout=5.0)
        self.assertFalse(t.is_alive())
        self.assertEqual(got, [EMPTY])

    def test_none_is_a_regular_item(self) -> None:
        slot = LatestFrameSlot()
        self.assertTrue(slot.put(None))
        self.assertIsNone(slot.take(timeout=0))
        self.assertIs(slot.take(timeout=0), EMPTY)

    def test_put_after_close_is_refused(self) -> None:
        slot = LatestFrameSlot()
        slot.close()
        self.assertTrue(slot.closed)
        self.assertFalse(slot.put("x"))

    def test_close_can_keep_pending_item(self) -> None:
        slot = LatestFrameSlot()
        slot.put("last")
        slot.close(discard_pending=False)
        self.assertEqual(slot.take(), "last")
        self.assertIs(slot.take(), EMPTY)

    def test_close_discards_pending_item(self) -> None:
        slot = LatestFrameSlot()
        slot.put("last")
        slot.close()
        self.assertIs(slot.take(), EMPTY)
        self.assertEqual(slot.dropped, 1)


if __name__ == "__main__":
    unittest.main()
