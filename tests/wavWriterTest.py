import os
import shutil
import struct
import tempfile
import unittest
import wave
from unittest import mock

import numpy as np

from sidxport.errors import SidXPortIOError, SidXPortValueError
from sidxport.wav_writer import WavWriter


def read_wav(filename):
    with wave.open(filename, 'rb') as wav_file:
        params = wav_file.getparams()
        frames = wav_file.readframes(params.nframes)
    return params, np.frombuffer(frames, dtype='<i2')


class WavWriterTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.samples = (np.arange(-500, 500, dtype=np.int32) * 30).astype(np.int16)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_mono(self):
        filename = os.path.join(self.tmp_dir, 'mono.wav')
        wav_writer = WavWriter(filename, 44100)
        wav_writer.set_mono_buffer(self.samples)
        written = wav_writer.write_mono()

        params, data = read_wav(filename)
        self.assertEqual(params.nchannels, 1)
        self.assertEqual(params.sampwidth, 2)
        self.assertEqual(params.framerate, 44100)
        self.assertEqual(params.nframes, len(self.samples))
        self.assertEqual(written, 2 * len(self.samples))
        np.testing.assert_array_equal(data, self.samples)

    def test_stereo_duplicates_mono(self):
        filename = os.path.join(self.tmp_dir, 'stereo.wav')
        wav_writer = WavWriter(filename, 22050)
        wav_writer.set_mono_buffer(self.samples)
        written = wav_writer.write_stereo()

        params, data = read_wav(filename)
        self.assertEqual(params.nchannels, 2)
        self.assertEqual(params.framerate, 22050)
        self.assertEqual(params.nframes, len(self.samples))
        self.assertEqual(written, 4 * len(self.samples))
        left_right = data.reshape(-1, 2)
        np.testing.assert_array_equal(left_right[:, 0], self.samples)
        np.testing.assert_array_equal(left_right[:, 1], self.samples)

    def test_header_fields(self):
        for channels, write in ((1, 'write_mono'), (2, 'write_stereo')):
            filename = os.path.join(self.tmp_dir, 'header%d.wav' % channels)
            wav_writer = WavWriter(filename)
            wav_writer.set_mono_buffer(self.samples)
            getattr(wav_writer, write)()

            with open(filename, 'rb') as f:
                header = f.read(44)
            self.assertEqual(header[0:4], b'RIFF')
            self.assertEqual(header[8:16], b'WAVEfmt ')
            fmt_tag, n_channels, rate, byte_rate, block_align, bits = struct.unpack('<HHIIHH', header[20:36])
            self.assertEqual(fmt_tag, 1)
            self.assertEqual(n_channels, channels)
            self.assertEqual(rate, 44100)
            self.assertEqual(block_align, 2 * channels)
            self.assertEqual(byte_rate, 44100 * 2 * channels)
            self.assertEqual(bits, 16)

    def test_one_second_of_silence(self):
        filename = os.path.join(self.tmp_dir, 'silence.wav')
        wav_writer = WavWriter(filename)
        wav_writer.set_mono_buffer(np.zeros(44100, dtype=np.int16))
        wav_writer.write_mono()
        params, data = read_wav(filename)
        self.assertEqual(params.nframes, 44100)
        self.assertFalse(data.any())

    def test_empty_buffer(self):
        filename = os.path.join(self.tmp_dir, 'empty.wav')
        wav_writer = WavWriter(filename)
        wav_writer.set_mono_buffer(np.zeros(0, dtype=np.int16))
        wav_writer.write_stereo()
        params, _ = read_wav(filename)
        self.assertEqual(params.nframes, 0)

    def test_default_filename(self):
        self.assertEqual(WavWriter().filename, 'sidxport-out.wav')
        self.assertEqual(WavWriter('').filename, 'sidxport-out.wav')

    def test_preconditions(self):
        wav_writer = WavWriter(os.path.join(self.tmp_dir, 'x.wav'))
        with self.assertRaises(SidXPortValueError):
            wav_writer.write_mono()
        with self.assertRaises(SidXPortValueError):
            wav_writer.set_mono_buffer(np.zeros(10, dtype=np.float64))
        with self.assertRaises(SidXPortValueError):
            WavWriter('x.wav', sampling_rate=0)

    def test_failure_leaves_no_file(self):
        filename = os.path.join(self.tmp_dir, 'out.wav')
        wav_writer = WavWriter(filename)
        wav_writer.set_mono_buffer(self.samples)
        with mock.patch('sidxport.byte_util.os.replace', side_effect=OSError("disk full")):
            with self.assertRaises(SidXPortIOError):
                wav_writer.write_stereo()
        self.assertEqual(os.listdir(self.tmp_dir), [])


if __name__ == '__main__':
    unittest.main(failfast=False)
