import contextlib
import io
import os
import shutil
import tempfile
import unittest
from unittest import mock

from parameterized import parameterized

from sidxport.byte_util import atomic_write
from sidxport.csv_dump import CsvDump
from sidxport.dump import Dump
from sidxport.errors import SidXPortIOError, SidXPortValueError
from sidxport.frame_buffer import FrameBuffer

HEADER = "Frame, R00, R01, R02, ..., R24"


def make_frame_buffer(frame_count):
    frame_buffer = FrameBuffer(frame_count)
    for f in range(frame_count):
        frame_buffer.capture(f, bytes((f * 7 + r * 11) & 0xff for r in range(25)))
    return frame_buffer


class BinaryDumpTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    @parameterized.expand([(0,), (1,), (10,), (300,)])
    def test_length_and_content(self, frame_count):
        frame_buffer = make_frame_buffer(frame_count)
        filename = os.path.join(self.tmp_dir, 'out.bin')

        written = Dump().to_file(frame_buffer, filename)

        with open(filename, 'rb') as f:
            binary = f.read()
        self.assertEqual(written, 25 * frame_count)
        self.assertEqual(len(binary), 25 * frame_count)
        self.assertEqual(binary, frame_buffer.to_bytes())
        for f in range(frame_count):
            for r in range(25):
                self.assertEqual(binary[f * 25 + r], frame_buffer.get_register(f, r))

    def test_ten_silent_frames(self):
        filename = os.path.join(self.tmp_dir, 'silent.bin')
        Dump().to_file(FrameBuffer(10), filename)
        with open(filename, 'rb') as f:
            self.assertEqual(f.read(), bytes(250))

    def test_failed_write_leaves_no_file(self):
        filename = os.path.join(self.tmp_dir, 'out.bin')
        with mock.patch('sidxport.byte_util.os.replace', side_effect=OSError("disk full")):
            with self.assertRaises(SidXPortIOError):
                Dump().to_file(make_frame_buffer(3), filename)
        self.assertFalse(os.path.exists(filename))
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_failed_write_keeps_old_file(self):
        filename = os.path.join(self.tmp_dir, 'out.bin')
        with open(filename, 'wb') as f:
            f.write(b'old')
        with mock.patch('sidxport.byte_util.os.replace', side_effect=OSError("disk full")):
            with self.assertRaises(SidXPortIOError):
                Dump().to_file(make_frame_buffer(3), filename)
        with open(filename, 'rb') as f:
            self.assertEqual(f.read(), b'old')

    def test_write_error_not_rewrapped(self):
        filename = os.path.join(self.tmp_dir, 'out.bin')

        def short_write(out_file):
            raise SidXPortIOError("Error: short write (1 of 25 bytes)")

        with self.assertRaises(SidXPortIOError) as cm:
            atomic_write(filename, short_write)
        self.assertEqual(str(cm.exception), "Error: short write (1 of 25 bytes)")
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_unwritable_destination(self):
        filename = os.path.join(self.tmp_dir, 'no_such_dir', 'out.bin')
        with self.assertRaises(SidXPortIOError):
            Dump().to_file(make_frame_buffer(1), filename)


class CsvDumpTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    @parameterized.expand([('hex',), ('decimal',)])
    def test_line_count(self, csv_format):
        frame_buffer = make_frame_buffer(20)
        lines = CsvDump().to_csv_str(frame_buffer, csv_format=csv_format).splitlines()
        self.assertEqual(len(lines), 21)
        self.assertEqual(lines[0], HEADER)
        for f, line in enumerate(lines[1:]):
            fields = line.split(', ')
            self.assertEqual(len(fields), 26)
            self.assertEqual(fields[0], str(f))

    def test_hex_values(self):
        frame_buffer = FrameBuffer(1)
        frame_buffer.capture(0, bytes([0x00, 0x0a, 0xff] + [0x1f] * 22))
        line = CsvDump().to_csv_str(frame_buffer, csv_format='hex').splitlines()[1]
        fields = line.split(', ')
        self.assertEqual(fields[:4], ['0', '00', '0A', 'FF'])
        for field in fields[1:]:
            self.assertEqual(len(field), 2)
            self.assertEqual(field, field.upper())

    def test_decimal_values(self):
        frame_buffer = FrameBuffer(1)
        frame_buffer.capture(0, bytes([0, 10, 255] + [31] * 22))
        line = CsvDump().to_csv_str(frame_buffer).splitlines()[1]
        self.assertTrue(line.startswith('0, 0, 10, 255, 31, '))

    def test_ten_silent_frames_hex(self):
        text = CsvDump().to_csv_str(FrameBuffer(10), csv_format='hex')
        lines = text.splitlines()
        self.assertEqual(len(lines), 11)
        for f, line in enumerate(lines[1:]):
            self.assertEqual(line, ', '.join([str(f)] + ['00'] * 25))

    def test_ten_silent_frames_decimal(self):
        lines = CsvDump().to_csv_str(FrameBuffer(10)).splitlines()
        self.assertEqual(len(lines), 11)
        self.assertEqual(lines[3], '2, ' + ', '.join(['0'] * 25))

    @parameterized.expand([('hex',), ('decimal',)])
    def test_parse_back(self, csv_format):
        frame_buffer = make_frame_buffer(12)
        text = CsvDump().to_csv_str(frame_buffer, csv_format=csv_format)
        self.assertEqual(CsvDump.parse_csv_str(text, csv_format), frame_buffer)

    def test_frame_count_subset(self):
        frame_buffer = make_frame_buffer(5)
        lines = CsvDump().to_csv_str(frame_buffer, frame_count=2).splitlines()
        self.assertEqual(len(lines), 3)
        with self.assertRaises(SidXPortValueError):
            CsvDump().to_csv_str(frame_buffer, frame_count=6)

    def test_bad_format(self):
        with self.assertRaises(SidXPortValueError):
            CsvDump().to_csv_str(make_frame_buffer(1), csv_format='octal')

    def test_parse_rejects_garbage(self):
        with self.assertRaises(SidXPortValueError):
            CsvDump.parse_csv_str("not a table\n")
        with self.assertRaises(SidXPortValueError):
            CsvDump.parse_csv_str(HEADER + "\n0, 1, 2\n")
        with self.assertRaises(SidXPortValueError):
            CsvDump.parse_csv_str(HEADER + "\n" + ', '.join(['0'] + ['999'] * 25) + "\n")

    def test_to_file(self):
        frame_buffer = make_frame_buffer(4)
        filename = os.path.join(self.tmp_dir, 'out.csv')
        csv_dump = CsvDump()
        written = csv_dump.to_file(frame_buffer, filename, csv_format='hex')
        with open(filename, 'r', newline='') as f:
            text = f.read()
        self.assertEqual(text, csv_dump.to_csv_str(frame_buffer, csv_format='hex'))
        self.assertEqual(written, len(text))

    def test_to_file_logs_frames_written(self):
        filename = os.path.join(self.tmp_dir, 'out.csv')
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            CsvDump().to_file(make_frame_buffer(5), filename, frame_count=2, verbose=True)
        self.assertIn('Wrote decimal table of 2 frames', out.getvalue())

    def test_to_file_failure(self):
        filename = os.path.join(self.tmp_dir, 'no_such_dir', 'out.csv')
        with self.assertRaises(SidXPortIOError):
            CsvDump().to_file(make_frame_buffer(1), filename)


if __name__ == '__main__':
    unittest.main(failfast=False)
