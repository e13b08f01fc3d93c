import unittest
from unittest import mock

from parameterized import parameterized

from sidxport.errors import SidXPortAllocationError, SidXPortValueError
from sidxport.frame_buffer import FrameBuffer


def snapshot_for(frame_index):
    return bytes((frame_index * 25 + r) & 0xff for r in range(25))


class FrameBufferTestCase(unittest.TestCase):
    def test_allocated_zeroed(self):
        frame_buffer = FrameBuffer(10)
        self.assertEqual(len(frame_buffer), 250)
        self.assertEqual(frame_buffer.to_bytes(), bytes(250))
        self.assertFalse(frame_buffer.is_complete())

    def test_offsets(self):
        frame_buffer = FrameBuffer(4)
        for f in range(4):
            frame_buffer.capture(f, snapshot_for(f))

        self.assertTrue(frame_buffer.is_complete())
        self.assertEqual(frame_buffer.frame_offset(3, 24), 3 * 25 + 24)
        for f in range(4):
            self.assertEqual(frame_buffer.get_frame(f), snapshot_for(f))
            for r in range(25):
                self.assertEqual(frame_buffer.get_register(f, r), (f * 25 + r) & 0xff)

    def test_frames_iterates_in_order(self):
        frame_buffer = FrameBuffer(3)
        for f in range(3):
            frame_buffer.capture(f, snapshot_for(f))
        self.assertEqual([f for f, _ in frame_buffer.frames()], [0, 1, 2])
        self.assertEqual([s for _, s in frame_buffer.frames(1)], [snapshot_for(1), snapshot_for(2)])

    @parameterized.expand([
        ("out_of_order", 1, bytes(25)),
        ("short_snapshot", 0, bytes(24)),
        ("long_snapshot", 0, bytes(26)),
    ])
    def test_capture_preconditions(self, _, frame_index, snapshot):
        frame_buffer = FrameBuffer(2)
        with self.assertRaises(SidXPortValueError):
            frame_buffer.capture(frame_index, snapshot)

    def test_capture_past_end(self):
        frame_buffer = FrameBuffer(1)
        frame_buffer.capture(0, bytes(25))
        with self.assertRaises(SidXPortValueError):
            frame_buffer.capture(1, bytes(25))

    def test_repeat_frame_rejected(self):
        frame_buffer = FrameBuffer(3)
        frame_buffer.capture(0, bytes(25))
        with self.assertRaises(SidXPortValueError):
            frame_buffer.capture(0, bytes(25))

    def test_bad_reads(self):
        frame_buffer = FrameBuffer(2)
        with self.assertRaises(SidXPortValueError):
            frame_buffer.get_frame(2)
        with self.assertRaises(SidXPortValueError):
            frame_buffer.get_register(0, 25)
        with self.assertRaises(SidXPortValueError):
            FrameBuffer(-1)

    def test_allocation_failure(self):
        with mock.patch('sidxport.frame_buffer.bytearray', side_effect=MemoryError, create=True):
            with self.assertRaises(SidXPortAllocationError):
                FrameBuffer(1000)

    def test_from_bytes(self):
        binary = b''.join(snapshot_for(f) for f in range(5))
        frame_buffer = FrameBuffer.from_bytes(binary)
        self.assertEqual(frame_buffer.frame_count, 5)
        self.assertTrue(frame_buffer.is_complete())
        self.assertEqual(frame_buffer.to_bytes(), binary)
        self.assertEqual(frame_buffer.get_frame(4), snapshot_for(4))

        with self.assertRaises(SidXPortValueError):
            FrameBuffer.from_bytes(bytes(26))


if __name__ == '__main__':
    unittest.main(failfast=False)
