import threading
import unittest

import httpx

from face_kit.errors import ActuatorDeliveryError
from face_kit.types import ActuatorCommand
from face_tracker.actuator import HttpActuatorSink

URL = "http://servo.local/move"


def _sink(handler) -> HttpActuatorSink:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpActuatorSink(URL, timeout_s=1.0, client=client)


class TestDeliver(unittest.TestCase):
    def test_get_with_angle_params(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok 90 45")

        sink = _sink(handler)
        self.addCleanup(sink.close)
        body = sink.deliver(ActuatorCommand(angle1=90, angle2=45))

        self.assertEqual(body, "ok 90 45")
        self.assertEqual(len(seen), 1)
        request = seen[0]
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/move")
        self.assertEqual(request.url.params["angle1"], "90")
        self.assertEqual(request.url.params["angle2"], "45")

    def test_http_error_status(self) -> None:
        sink = _sink(lambda request: httpx.Response(503, text="busy"))
        self.addCleanup(sink.close)
        with self.assertRaises(ActuatorDeliveryError):
            sink.deliver(ActuatorCommand(0, 0))

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route to servo", request=request)

        sink = _sink(handler)
        self.addCleanup(sink.close)
        with self.assertRaises(ActuatorDeliveryError):
            sink.deliver(ActuatorCommand(0, 0))

    def test_invalid_url_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("bad servo url")

        sink = _sink(handler)
        self.addCleanup(sink.close)
        with self.assertRaises(ActuatorDeliveryError):
            sink.deliver(ActuatorCommand(0, 0))

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            HttpActuatorSink("  ")
        with self.assertRaises(ValueError):
            HttpActuatorSink(URL, timeout_s=0)


class TestSend(unittest.TestCase):
    def test_failures_are_logged_and_swallowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        sink = _sink(handler)
        with self.assertLogs("face_tracker.actuator", level="WARNING"):
            self.assertTrue(sink.send(ActuatorCommand(10, 20)))
            sink.close(drain=True, timeout=5.0)
        self.assertEqual(sink.failed, 1)
        self.assertEqual(sink.delivered, 0)

    def test_delivery_thread_survives_any_failure(self) -> None:
        handled = [threading.Event() for _ in range(3)]
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(int(request.url.params["angle1"]))
            handled[len(calls) - 1].set()
            if len(calls) == 1:
                raise httpx.InvalidURL("bad servo url")
            if len(calls) == 2:
                raise KeyError("angle1")
            return httpx.Response(200, text="ok")

        sink = _sink(handler)
        with self.assertLogs("face_tracker.actuator", level="WARNING") as logs:
            self.assertTrue(sink.send(ActuatorCommand(1, 1)))
            self.assertTrue(handled[0].wait(timeout=5.0))
            self.assertTrue(sink.send(ActuatorCommand(2, 2)))
            self.assertTrue(handled[1].wait(timeout=5.0))
            self.assertTrue(sink.send(ActuatorCommand(3, 3)))
            sink.close(drain=True, timeout=5.0)

        self.assertEqual(calls, [1, 2, 3])
        self.assertEqual(sink.failed, 2)
        self.assertEqual(sink.delivered, 1)
        self.assertEqual(sink.dropped, 0)
        self.assertTrue(any("Unexpected failure" in line for line in logs.output))

    def test_send_does_not_wait_and_keeps_latest(self) -> None:
        started = threading.Event()
        release = threading.Event()
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((int(request.url.params["angle1"]), int(request.url.params["angle2"])))
            started.set()
            release.wait(timeout=5.0)
            return httpx.Response(200, text="ok")

        sink = _sink(handler)
        self.assertTrue(sink.send(ActuatorCommand(1, 1)))
        self.assertTrue(started.wait(timeout=5.0))
        # The first request is still blocked; these return immediately.
        for angle in (2, 3, 4):
            self.assertTrue(sink.send(ActuatorCommand(angle, angle)))
        release.set()
        sink.close(drain=True, timeout=5.0)

        self.assertEqual(seen, [(1, 1), (4, 4)])
        self.assertEqual(sink.delivered, 2)
        self.assertEqual(sink.dropped, 2)
        self.assertEqual(sink.last_response, "ok")
        self.assertFalse(sink.send(ActuatorCommand(5, 5)))

    def test_callable_as_sink(self) -> None:
        got = threading.Event()

        def handler(request: httpx.Request) -> httpx.Response:
            got.set()
            return httpx.Response(200, text="ok")

        sink = _sink(handler)
        sink(ActuatorCommand(90, 90))
        self.assertTrue(got.wait(timeout=5.0))
        sink.close(timeout=5.0)


if __name__ == "__main__":
    unittest.main()
