import contextlib
import io
import os
import shutil
import tempfile
import unittest
import wave

from parameterized import parameterized

from sidxport import cli, constants
from sidxport.testing_tools import make_counter_psid


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.sid_filename = os.path.join(self.tmp_dir, 'counter.sid')
        with open(self.sid_filename, 'wb') as f:
            f.write(make_counter_psid())
        self.out_filename = os.path.join(self.tmp_dir, 'out')

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def run_main(self, *args):
        out = io.StringIO()
        err = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = cli.main([self.sid_filename, self.out_filename] + list(args))
        return status, out.getvalue(), err.getvalue()

    @parameterized.expand([
        ([], 'decimal', False, 'stereo', False),
        (['--csv-hex'], 'hex', True, 'stereo', False),
        (['--csv-hex', '--csv-dec'], 'decimal', True, 'stereo', False),
        (['--wav-stereo', '--wav-mono'], 'decimal', False, 'mono', True),
        (['--csv-hex', '--wav-mono'], 'hex', True, 'mono', True),
    ])
    def test_format_flags(self, flags, csv_format, csv_enabled, wav_format, wav_enabled):
        args = cli.build_parser().parse_args(['in.sid', 'out', '10'] + flags)
        self.assertEqual(args.csv_format, csv_format)
        self.assertEqual(args.csv_enabled, csv_enabled)
        self.assertEqual(args.wav_format, wav_format)
        self.assertEqual(args.wav_enabled, wav_enabled)
        self.assertEqual(args.chip_model, 'MOS8580')
        self.assertIsNone(args.subtune)

    def test_binary_default(self):
        status, out, _ = self.run_main('20')
        self.assertEqual(status, 0)
        self.assertEqual(os.path.getsize(self.out_filename), 500)
        self.assertIn('[SidXPort]', out)

    def test_csv_hex(self):
        status, _, _ = self.run_main('5', '--csv-hex', '--quiet')
        self.assertEqual(status, 0)
        with open(self.out_filename) as f:
            lines = f.read().splitlines()
        self.assertEqual(len(lines), 6)
        self.assertTrue(lines[5].startswith('4, 05, 00, '))

    def test_wav_beats_csv(self):
        status, _, _ = self.run_main('100', '--csv-dec', '--wav-mono', '--quiet')
        self.assertEqual(status, 0)
        with wave.open(self.out_filename, 'rb') as wav_file:
            self.assertEqual(wav_file.getnchannels(), 1)
            self.assertEqual(wav_file.getnframes(), 88200)

    def test_debug_dump(self):
        status, out, _ = self.run_main('3', '--debug', '--quiet')
        self.assertEqual(status, 0)
        self.assertIn('[000002] 03 00 ', out)

    def test_quiet(self):
        status, out, _ = self.run_main('3', '--quiet')
        self.assertEqual(status, 0)
        self.assertEqual(out, '')

    def test_bad_sid_file(self):
        with open(self.sid_filename, 'wb') as f:
            f.write(b'not a sid file at all')
        status, _, err = self.run_main('3')
        self.assertEqual(status, 1)
        self.assertIn('Error', err)
        self.assertFalse(os.path.exists(self.out_filename))

    def test_version(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            with self.assertRaises(SystemExit) as cm:
                cli.main(['--version'])
        self.assertEqual(cm.exception.code, 0)
        self.assertEqual(out.getvalue().strip(), 'sidxport ' + constants.SIDXPORT_VERSION)

    @parameterized.expand([
        (['in.sid', 'out'],),
        (['in.sid', 'out', '0'],),
        (['in.sid', 'out', 'ten'],),
        (['in.sid', 'out', '10', '--chip-model', 'MOS1234'],),
    ])
    def test_argument_errors(self, argv):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                cli.main(argv)
        self.assertEqual(cm.exception.code, 2)


if __name__ == '__main__':
    unittest.main(failfast=False)
