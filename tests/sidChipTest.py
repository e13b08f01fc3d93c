import unittest

import numpy as np
from parameterized import parameterized

from sidxport import sid_chip
from sidxport.errors import SidXPortValueError
from sidxport.sid_chip import SidChip


def make_chip(chip_model='MOS8580'):
    chip = SidChip('PAL-C64', 44100)
    chip.set_chip_model(chip_model)
    return chip


def start_voice(chip, voice, control, freq=0x1cd6, pulse_width=0x800):
    base = voice * 7
    chip.write_register(base + 0, freq & 0xff)
    chip.write_register(base + 1, freq >> 8)
    chip.write_register(base + 2, pulse_width & 0xff)
    chip.write_register(base + 3, pulse_width >> 8)
    chip.write_register(base + 5, 0x00)     # attack 2ms, decay 6ms
    chip.write_register(base + 6, 0xf0)     # sustain 15, release 6ms
    chip.write_register(base + 4, control)


class SidChipTestCase(unittest.TestCase):
    @parameterized.expand([('MOS6581',), ('MOS8580',)])
    def test_zero_registers_are_silent(self, chip_model):
        chip = make_chip(chip_model)
        chip.write_registers(bytes(25))
        out = chip.clock(4410)
        self.assertEqual(out.dtype, np.int16)
        self.assertEqual(len(out), 4410)
        self.assertFalse(out.any())

    @parameterized.expand([
        ('triangle', sid_chip.TRIANGLE),
        ('sawtooth', sid_chip.SAWTOOTH),
        ('pulse', sid_chip.PULSE),
        ('noise', sid_chip.NOISE),
    ])
    def test_gated_waveform_is_audible(self, _, waveform):
        chip = make_chip()
        start_voice(chip, 0, waveform | sid_chip.GATE)
        chip.write_register(24, 0x0f)
        out = chip.clock(4410)
        self.assertGreater(int(np.abs(out.astype(np.int32)).max()), 1000)

    def test_volume_zero_is_silent(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.write_register(24, 0x00)
        self.assertFalse(chip.clock(2000).any())

    def test_no_waveform_is_silent(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.GATE)
        chip.write_register(24, 0x0f)
        self.assertFalse(chip.clock(2000).any())

    def test_voice3_off(self):
        chip = make_chip()
        start_voice(chip, 2, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.write_register(24, 0x8f)
        self.assertFalse(chip.clock(2000).any())

    def test_release_fades_out(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.write_register(24, 0x0f)
        chip.clock(4410)
        self.assertEqual(chip.voices[0].env_state, sid_chip.DECAY_SUSTAIN)
        self.assertEqual(chip.voices[0].envelope, 255.0)

        chip.write_register(4, sid_chip.SAWTOOTH)  # gate off, 6ms release
        chip.clock(4410)
        self.assertEqual(chip.voices[0].env_state, sid_chip.RELEASE)
        self.assertEqual(chip.voices[0].envelope, 0.0)
        self.assertFalse(chip.clock(1000).any())

    def test_decay_to_sustain(self):
        chip = make_chip()
        chip.write_register(5, 0x00)
        chip.write_register(6, 0x80)   # sustain 8
        chip.write_register(4, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.clock(4410)
        self.assertEqual(chip.voices[0].envelope, 8 * 17.0)

    def test_test_bit_resets_oscillator(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.clock(100)
        self.assertNotEqual(chip.voices[0].accumulator, 0)
        chip.write_register(4, sid_chip.SAWTOOTH | sid_chip.GATE | sid_chip.TEST)
        self.assertEqual(chip.voices[0].accumulator, 0)
        chip.clock(100)
        self.assertEqual(chip.voices[0].accumulator, 0)

    def test_accumulator_advances_by_clock(self):
        chip = make_chip()
        chip.write_register(0, 0x00)
        chip.write_register(1, 0x01)   # freq 256
        chip.clock(44100)              # one second of PAL clock
        expected = (256 * 985248) & sid_chip.ACC_MASK
        self.assertEqual(chip.voices[0].accumulator, expected)

    def test_hard_sync(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.SAWTOOTH | sid_chip.GATE, freq=0x0400)
        start_voice(chip, 1, sid_chip.SAWTOOTH | sid_chip.GATE | sid_chip.SYNC, freq=0x1000)
        chip.write_register(24, 0x0f)
        self.assertTrue(chip.clock(4410).any())

    def test_ring_mod(self):
        chip = make_chip()
        start_voice(chip, 2, sid_chip.TRIANGLE, freq=0x0800)
        start_voice(chip, 0, sid_chip.TRIANGLE | sid_chip.RING | sid_chip.GATE)
        chip.write_register(24, 0x0f)
        self.assertTrue(chip.clock(4410).any())

    @parameterized.expand([(0x10,), (0x20,), (0x40,)])
    def test_filter_modes(self, mode):
        chip = make_chip('MOS6581')
        start_voice(chip, 0, sid_chip.PULSE | sid_chip.GATE)
        chip.write_register(22, 0x80)
        chip.write_register(23, 0x81)
        chip.write_register(24, mode | 0x0f)
        out = chip.clock(4410)
        self.assertTrue(out.any())

    def test_filter_without_mode_mutes_routed_voice(self):
        chip = make_chip()
        start_voice(chip, 0, sid_chip.SAWTOOTH | sid_chip.GATE)
        chip.write_register(23, 0x01)
        chip.write_register(24, 0x0f)
        self.assertFalse(chip.clock(2000).any())

    def test_noise_output_bits(self):
        self.assertEqual(sid_chip.noise_output(0), 0)
        self.assertEqual(sid_chip.noise_output(0x7fffff), 0xff0)
        self.assertEqual(sid_chip.noise_output(1 << 22), 0x800)
        self.assertEqual(sid_chip.noise_output(1 << 2), 0x010)

    def test_cutoff_curves(self):
        self.assertLess(sid_chip.cutoff_hz('MOS8580', 0), sid_chip.cutoff_hz('MOS8580', 2047))
        self.assertLess(sid_chip.cutoff_hz('MOS6581', 100), sid_chip.cutoff_hz('MOS6581', 2000))

    def test_model_validation(self):
        chip = SidChip()
        with self.assertRaises(SidXPortValueError):
            chip.set_chip_model('MOS6582')
        with self.assertRaises(SidXPortValueError):
            chip.clock(10)   # no model set yet
        with self.assertRaises(SidXPortValueError):
            SidChip(arch='C128')
        with self.assertRaises(SidXPortValueError):
            make_chip().write_registers(bytes(24))
        with self.assertRaises(SidXPortValueError):
            make_chip().write_register(25, 0)


if __name__ == '__main__':
    unittest.main(failfast=False)
