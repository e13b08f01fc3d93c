# A small SID (MOS 6581 / 8580) sound chip model
#
# Synthesizes 16-bit mono PCM from the SID's 25 write registers, a block of
# samples at a time.  Registers are set with write_register() between blocks;
# clock() renders the next block.  Within a block all register values are
# constant, so oscillators are computed with numpy over the whole block.
#
# Register map ($D400 + n):
#   voice v (v = 0, 1, 2) at 7 * v: FREQ_LO, FREQ_HI, PW_LO, PW_HI, CONTROL, AD, SR
#   21 FC_LO (bits 0-2)   22 FC_HI   23 RES_FILT   24 MODE_VOL
#
# This is a musical model, not a cycle exact one:
# - envelopes are linear ramps using the documented ADSR times
# - the filter is a state variable filter with an approximate cutoff curve
# - hard sync and noise clocking are resolved per output sample

import math

import numpy as np

from sidxport.constants import ARCH, CHIP_MODELS, DEFAULT_ARCH, DEFAULT_SAMPLING_RATE, SID_REGISTER_COUNT
from sidxport.errors import SidXPortValueError

ACC_BITS = 24
ACC_MASK = (1 << ACC_BITS) - 1
ACC_MSB = 1 << (ACC_BITS - 1)
NOISE_CLOCK_BIT = 19
NOISE_SEED = 0x7ffff8

# CONTROL register bits
GATE = 0x01
SYNC = 0x02
RING = 0x04
TEST = 0x08
TRIANGLE = 0x10
SAWTOOTH = 0x20
PULSE = 0x40
NOISE = 0x80

# MODE_VOL register bits
LOWPASS = 0x10
BANDPASS = 0x20
HIGHPASS = 0x40
VOICE3_OFF = 0x80

REG_FC_LO = 21
REG_FC_HI = 22
REG_RES_FILT = 23
REG_MODE_VOL = 24

# attack, decay, and release times in ms (4-bit setting range)
# Values should be close enough: according to https://www.c64-wiki.com/wiki/ADSR
#     "these values assume a clock rate of 1MHz, while in fact the clock rate
#     of a C64 is either 985.248 kHz PAL or 1.022727 MHz NTSC"
attack_time_ms = [2, 8, 16, 24, 38, 56, 68, 80, 100, 250, 500, 800, 1000, 3000,
                  5000, 8000]
decay_release_time_ms = [6, 24, 48, 72, 114, 168, 204, 240, 300, 750, 1500, 2400,
                         3000, 9000, 15000, 24000]

ENV_MAX = 255.0
ATTACK = 'attack'
DECAY_SUSTAIN = 'decay_sustain'
RELEASE = 'release'

# Three full scale voices map onto the int16 range
OUTPUT_SCALE = 32767 / (3 * 2048)


def cutoff_hz(chip_model, fc):
    """
    Approximate filter cutoff frequency for an 11-bit FC register value

    :param chip_model: 'MOS6581' or 'MOS8580'
    :type chip_model: str
    :param fc: 11-bit cutoff setting
    :type fc: int
    :return: cutoff frequency in Hz
    :rtype: float
    """
    if chip_model == 'MOS8580':
        # close to linear, ~0 Hz to ~12.5 kHz
        return 30.0 + fc * (12500.0 / 2047)
    # 6581 filters are strongly nonlinear and differ chip to chip
    return 220.0 + 18000.0 * (fc / 2047) ** 2


class Voice:
    def __init__(self):
        self.accumulator = 0        #: 24-bit phase accumulator
        self.noise = NOISE_SEED     #: 23-bit noise shift register
        self.freq = 0
        self.pulse_width = 0
        self.control = 0
        self.attack = 0
        self.decay = 0
        self.sustain = 0
        self.release = 0
        self.envelope = 0.0
        self.env_state = RELEASE

    def set_control(self, control):
        gate_was_on = self.control & GATE
        gate_on = control & GATE
        if gate_on and not gate_was_on:
            self.env_state = ATTACK
        elif gate_was_on and not gate_on:
            self.env_state = RELEASE
        if control & TEST:
            self.accumulator = 0
            self.noise = NOISE_SEED
        self.control = control

    def set_ad(self, val):
        self.attack = val >> 4
        self.decay = val & 0x0f

    def set_sr(self, val):
        self.sustain = val >> 4
        self.release = val & 0x0f

    def envelope_block(self, num_samples, sampling_rate):
        """
        Advance the envelope generator over a block

        :return: envelope level (0 to 1) for each sample
        :rtype: numpy.ndarray
        """
        levels = np.empty(num_samples, dtype=np.float64)
        i = 0
        while i < num_samples:
            if self.env_state == ATTACK:
                step = ENV_MAX / (attack_time_ms[self.attack] * sampling_rate / 1000)
                target = ENV_MAX
            elif self.env_state == DECAY_SUSTAIN:
                step = -ENV_MAX / (decay_release_time_ms[self.decay] * sampling_rate / 1000)
                target = min(self.sustain * 17.0, self.envelope)
            else:
                step = -ENV_MAX / (decay_release_time_ms[self.release] * sampling_rate / 1000)
                target = 0.0

            remaining = num_samples - i
            if self.envelope == target:
                if self.env_state == ATTACK:
                    self.env_state = DECAY_SUSTAIN
                    continue
                levels[i:] = self.envelope
                break

            ramp_len = min(remaining, max(1, math.ceil((target - self.envelope) / step)))
            ramp = self.envelope + step * np.arange(1, ramp_len + 1)
            ramp = np.minimum(ramp, target) if step > 0 else np.maximum(ramp, target)
            levels[i:i + ramp_len] = ramp
            self.envelope = float(ramp[-1])
            i += ramp_len

        return levels / ENV_MAX

    def noise_block(self, rising_edges):
        """
        Noise waveform for each sample given the cumulative count of noise
        clocks at each sample

        :param rising_edges: non-decreasing shift register clock counts
        :type rising_edges: numpy.ndarray
        :return: 12-bit noise output per sample
        :rtype: numpy.ndarray
        """
        shifts = int(rising_edges[-1]) if len(rising_edges) else 0
        outputs = np.empty(shifts + 1, dtype=np.int64)
        reg = self.noise
        outputs[0] = noise_output(reg)
        for k in range(1, shifts + 1):
            bit0 = ((reg >> 22) ^ (reg >> 17)) & 1
            reg = ((reg << 1) & 0x7fffff) | bit0
            outputs[k] = noise_output(reg)
        self.noise = reg
        return outputs[rising_edges]


def noise_output(reg):
    # Bits 22, 20, 16, 13, 11, 7, 4, 2 of the shift register drive waveform bits 11-4
    return (((reg >> 11) & 0x800) | ((reg >> 10) & 0x400) | ((reg >> 7) & 0x200)
            | ((reg >> 5) & 0x100) | ((reg >> 4) & 0x080) | ((reg >> 1) & 0x040)
            | ((reg << 1) & 0x020) | ((reg << 2) & 0x010))


class SidChip:
    def __init__(self, arch=DEFAULT_ARCH, sampling_rate=DEFAULT_SAMPLING_RATE):
        if arch not in ARCH:
            raise SidXPortValueError('Error: unexpected architecture type "%s"' % arch)
        if sampling_rate <= 0:
            raise SidXPortValueError("Error: sampling rate must be positive")
        self.clock_freq = ARCH[arch].system_clock
        self.sampling_rate = sampling_rate
        self.chip_model = None
        self.reset()

    def reset(self):
        self.registers = bytearray(SID_REGISTER_COUNT)
        self.voices = [Voice(), Voice(), Voice()]
        self.sample_phase = 0       # samples rendered, modulo sampling_rate
        self.filter_low = 0.0
        self.filter_band = 0.0

    def set_chip_model(self, chip_model):
        if chip_model not in CHIP_MODELS:
            raise SidXPortValueError('Error: unknown chip model "%s", expected one of %s'
                                     % (chip_model, ', '.join(CHIP_MODELS)))
        self.chip_model = chip_model

    def write_register(self, reg, val):
        if not 0 <= reg < SID_REGISTER_COUNT:
            raise SidXPortValueError("Error: SID register %d out of range" % reg)
        self.registers[reg] = val

        if reg >= 21:
            return
        voice = self.voices[reg // 7]
        offset = reg % 7
        base = reg - offset
        if offset in (0, 1):
            voice.freq = self.registers[base] | (self.registers[base + 1] << 8)
        elif offset in (2, 3):
            voice.pulse_width = self.registers[base + 2] | ((self.registers[base + 3] & 0x0f) << 8)
        elif offset == 4:
            voice.set_control(val)
        elif offset == 5:
            voice.set_ad(val)
        else:
            voice.set_sr(val)

    def write_registers(self, snapshot):
        """
        Write a full register snapshot, lowest register first

        :param snapshot: 25 register values
        :type snapshot: bytes
        """
        if len(snapshot) != SID_REGISTER_COUNT:
            raise SidXPortValueError("Error: expected %d registers, got %d"
                                     % (SID_REGISTER_COUNT, len(snapshot)))
        for reg, val in enumerate(snapshot):
            self.write_register(reg, val)

    def clock(self, num_samples):
        """
        Render the next block of samples with the current register values

        :param num_samples: number of samples to render
        :type num_samples: int
        :return: signed 16-bit samples
        :rtype: numpy.ndarray
        """
        if self.chip_model is None:
            raise SidXPortValueError("Error: chip model must be set before rendering")
        if num_samples <= 0:
            return np.zeros(0, dtype=np.int16)

        # cumulative SID clock cycles elapsed at the end of each sample
        sample_index = self.sample_phase + np.arange(1, num_samples + 1, dtype=np.int64)
        cycles = ((sample_index * self.clock_freq) // self.sampling_rate
                  - (self.sample_phase * self.clock_freq) // self.sampling_rate)
        self.sample_phase = (self.sample_phase + num_samples) % self.sampling_rate

        raw = []
        for voice in self.voices:
            if voice.control & TEST:
                raw.append(np.zeros(num_samples, dtype=np.int64))
            else:
                raw.append(voice.accumulator + voice.freq * cycles)

        accumulators = [self.synced_accumulator(v, raw, cycles) for v in range(3)]

        voice_out = []
        for v, voice in enumerate(self.voices):
            wave = self.waveform(v, accumulators, raw)
            env = voice.envelope_block(num_samples, self.sampling_rate)
            if wave is None:
                voice_out.append(np.zeros(num_samples, dtype=np.float64))
            else:
                voice_out.append((wave - 0x800) * env)
            voice.accumulator = int(accumulators[v][-1])

        return self.mix(voice_out)

    def synced_accumulator(self, v, raw, cycles):
        voice = self.voices[v]
        source = (v + 2) % 3
        if not (voice.control & SYNC) or (voice.control & TEST):
            return raw[v] & ACC_MASK

        # The voice restarts whenever its sync source overflows
        source_start = self.voices[source].accumulator
        overflows = raw[source] >> ACC_BITS
        previous = np.concatenate(([source_start >> ACC_BITS], overflows[:-1]))
        positions = np.arange(len(cycles))
        last_wrap = np.maximum.accumulate(np.where(overflows > previous, positions, -1))
        synced = last_wrap >= 0
        wrap_cycles = cycles[np.maximum(last_wrap, 0)]
        acc = np.where(synced, voice.freq * (cycles - wrap_cycles), raw[v])
        return acc & ACC_MASK

    def waveform(self, v, accumulators, raw):
        """
        12-bit waveform output of one voice, or None when no waveform is selected
        """
        voice = self.voices[v]
        control = voice.control
        if not control & 0xf0:
            return None

        acc = accumulators[v]
        output = np.full(len(acc), 0xfff, dtype=np.int64)
        if control & TRIANGLE:
            msb = acc & ACC_MSB
            if control & RING:
                msb = msb ^ (accumulators[(v + 2) % 3] & ACC_MSB)
            folded = np.where(msb != 0, acc ^ ACC_MASK, acc)
            output &= (folded >> 11) & 0xfff
        if control & SAWTOOTH:
            output &= acc >> 12
        if control & PULSE:
            output &= np.where((acc >> 12) >= voice.pulse_width, 0xfff, 0)
        if control & NOISE:
            half = 1 << NOISE_CLOCK_BIT
            start = (voice.accumulator + half) >> (NOISE_CLOCK_BIT + 1)
            rising = ((raw[v] + half) >> (NOISE_CLOCK_BIT + 1)) - start
            output &= voice.noise_block(rising)
        return output

    def mix(self, voice_out):
        routing = self.registers[REG_RES_FILT] & 0x07
        mode_vol = self.registers[REG_MODE_VOL]
        volume = mode_vol & 0x0f

        direct = np.zeros(len(voice_out[0]), dtype=np.float64)
        filtered = np.zeros(len(voice_out[0]), dtype=np.float64)
        for v, out in enumerate(voice_out):
            if routing & (1 << v):
                filtered += out
            elif v == 2 and mode_vol & VOICE3_OFF:
                continue
            else:
                direct += out

        if routing:
            direct += self.run_filter(filtered, mode_vol)

        mixed = direct * (volume / 15.0) * OUTPUT_SCALE
        return np.clip(np.round(mixed), -32768, 32767).astype(np.int16)

    def run_filter(self, signal, mode_vol):
        """
        Two pole state variable filter (Chamberlin) over one block

        :param signal: sum of the voices routed through the filter
        :type signal: numpy.ndarray
        :param mode_vol: MODE_VOL register, selects low/band/high pass outputs
        :type mode_vol: int
        :return: filter output
        :rtype: numpy.ndarray
        """
        fc = (self.registers[REG_FC_HI] << 3) | (self.registers[REG_FC_LO] & 0x07)
        resonance = self.registers[REG_RES_FILT] >> 4
        f = 2.0 * math.sin(math.pi * min(cutoff_hz(self.chip_model, fc), self.sampling_rate / 6)
                           / self.sampling_rate)
        damping = 1.0 / (0.707 + resonance / 15.0)

        use_low = bool(mode_vol & LOWPASS)
        use_band = bool(mode_vol & BANDPASS)
        use_high = bool(mode_vol & HIGHPASS)

        out = np.zeros(len(signal), dtype=np.float64)
        if not (use_low or use_band or use_high):
            return out

        low = self.filter_low
        band = self.filter_band
        for i, x in enumerate(signal.tolist()):
            low += f * band
            high = x - low - damping * band
            band += f * high
            out[i] = (low if use_low else 0.0) + (band if use_band else 0.0) + (high if use_high else 0.0)
        self.filter_low = low
        self.filter_band = band
        return out
