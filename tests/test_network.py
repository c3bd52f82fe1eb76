import socket
import threading
import unittest

from tictactoe_link.config import SessionConfig
from tictactoe_link.errors import ConnectionFailed, EndOfStream, ReadFailure, WriteFailure
from tictactoe_link.network import (
    MOVE_SIZE, ConnectionState, Role, Transport, decode_move, encode_move,
)


def free_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def connected_pair():
    host = Transport(Role.INITIATOR, port=0, bind_host="127.0.0.1")
    port = host.listen()
    errors = []

    def accept():
        try:
            host.accept()
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    t = threading.Thread(target=accept, daemon=True)
    t.start()
    guest = Transport(Role.RESPONDER, host="127.0.0.1", port=port, connect_timeout=5)
    guest.open()
    t.join(5)
    if errors:
        raise errors[0]
    return host, guest


class WireFormatTests(unittest.TestCase):
    def test_move_is_two_big_endian_int32(self):
        self.assertEqual(MOVE_SIZE, 8)
        self.assertEqual(encode_move(1, 2), b"\x00\x00\x00\x01\x00\x00\x00\x02")
        self.assertEqual(encode_move(-1, 0), b"\xff\xff\xff\xff\x00\x00\x00\x00")
        self.assertEqual(decode_move(b"\x00\x00\x01\x00\x00\x00\x00\x07"), (256, 7))

    def test_values_outside_int32_are_refused(self):
        with self.assertRaises(ValueError):
            encode_move(2 ** 31, 0)


class TransportTests(unittest.TestCase):
    def setUp(self):
        self.host, self.guest = connected_pair()

    def tearDown(self):
        self.host.close()
        self.guest.close()

    def test_both_sides_connected(self):
        self.assertIs(self.host.state, ConnectionState.CONNECTED)
        self.assertIs(self.guest.state, ConnectionState.CONNECTED)
        self.assertIsNone(self.host.server_socket)  # stops listening after one peer

    def test_round_trip_every_cell_both_directions(self):
        for r in range(3):
            for c in range(3):
                self.host.send_move(r, c)
                self.assertEqual(self.guest.recv_move(), (r, c))
                self.guest.send_move(c, r)
                self.assertEqual(self.host.recv_move(), (c, r))

    def test_out_of_range_values_still_travel_exactly(self):
        # range checks belong to the receiver's turn logic
        self.host.send_move(-7, 42)
        self.assertEqual(self.guest.recv_move(), (-7, 42))

    def test_record_split_across_segments(self):
        data = encode_move(2, 1)
        self.host.socket.sendall(data[:3])
        t = threading.Timer(0.05, lambda: self.host.socket.sendall(data[3:]))
        t.start()
        self.assertEqual(self.guest.recv_move(), (2, 1))
        t.join()

    def test_peer_close_is_end_of_stream(self):
        self.host.close()
        with self.assertRaises(EndOfStream):
            self.guest.recv_move()

    def test_close_mid_record_is_end_of_stream(self):
        self.host.socket.sendall(b"\x00\x00\x00\x01")
        self.host.close()
        with self.assertRaises(EndOfStream) as ctx:
            self.guest.recv_move()
        self.assertIn("mid-move", str(ctx.exception))

    def test_close_wakes_blocked_reader(self):
        errors = []

        def reader():
            try:
                self.guest.recv_move()
            except (EndOfStream, ReadFailure) as e:
                errors.append(e)

        t = threading.Thread(target=reader, daemon=True)
        t.start()
        self.guest.close()
        t.join(5)
        self.assertFalse(t.is_alive())
        self.assertEqual(len(errors), 1)

    def test_close_is_idempotent(self):
        self.assertTrue(self.guest.close())
        self.assertFalse(self.guest.close())
        self.assertIs(self.guest.state, ConnectionState.CLOSED)

    def test_io_after_close_fails(self):
        self.guest.close()
        with self.assertRaises(WriteFailure):
            self.guest.send_move(0, 0)
        with self.assertRaises(ReadFailure):
            self.guest.recv_move()


class ConnectionSetupTests(unittest.TestCase):
    def test_connect_refused_is_connection_failed(self):
        guest = Transport(Role.RESPONDER, host="127.0.0.1", port=free_port(), connect_timeout=2)
        with self.assertRaises(ConnectionFailed):
            guest.open()
        self.assertIs(guest.state, ConnectionState.CLOSED)

    def test_close_interrupts_pending_accept(self):
        host = Transport(Role.INITIATOR, port=0, bind_host="127.0.0.1")
        host.listen()
        errors = []

        def accept():
            try:
                host.accept()
            except ConnectionFailed as e:
                errors.append(e)

        t = threading.Thread(target=accept, daemon=True)
        t.start()
        host.close()
        t.join(5)
        self.assertFalse(t.is_alive())
        self.assertEqual(len(errors), 1)

    def test_listen_after_close_fails(self):
        host = Transport(Role.INITIATOR, port=0, bind_host="127.0.0.1")
        host.close()
        with self.assertRaises(ConnectionFailed):
            host.open()

    def test_port_in_use_is_connection_failed(self):
        first = Transport(Role.INITIATOR, port=0, bind_host="127.0.0.1")
        port = first.listen()
        try:
            second = Transport(Role.INITIATOR, port=port, bind_host="127.0.0.1")
            with self.assertRaises(ConnectionFailed):
                second.listen()
        finally:
            first.close()

    def test_from_config(self):
        cfg = SessionConfig(host="10.0.0.5", port=7100, connect_timeout=3.0)
        t = Transport.from_config(Role.RESPONDER, cfg)
        self.assertEqual((t.host, t.port, t.connect_timeout), ("10.0.0.5", 7100, 3.0))
        self.assertIs(t.state, ConnectionState.UNCONNECTED)


if __name__ == "__main__":
    unittest.main()
