# Writes rendered PCM to a 16-bit RIFF/WAVE file
#
# Mono writes the samples as given.  Stereo writes each mono sample twice,
# left then right, so both channels are identical.

import wave

import numpy as np

from sidxport import constants
from sidxport.byte_util import atomic_write
from sidxport.errors import SidXPortValueError

SAMPLE_WIDTH = 2  # bytes, 16-bit signed PCM


class WavWriter:
    def __init__(self, filename=None, sampling_rate=constants.DEFAULT_SAMPLING_RATE):
        """
        :param filename: output filename, defaults to 'sidxport-out.wav'
        :type filename: str, optional
        :param sampling_rate: sampling rate written to the header, defaults to 44100
        :type sampling_rate: int, optional
        """
        if sampling_rate <= 0:
            raise SidXPortValueError("Error: sampling rate must be positive")
        self.filename = filename if filename else constants.DEFAULT_WAV_FILENAME
        self.sampling_rate = sampling_rate
        self.mono_buffer = None

    def set_mono_buffer(self, samples):
        """
        Set the samples to write

        :param samples: one dimensional signed 16-bit samples
        :type samples: numpy.ndarray
        """
        samples = np.asarray(samples)
        if samples.ndim != 1 or samples.dtype != np.int16:
            raise SidXPortValueError("Error: expected a 1-D int16 sample buffer")
        self.mono_buffer = samples

    def write_mono(self):
        """
        :return: number of sample data bytes written
        :rtype: int
        """
        return self.write(self.mono_buffer, 1)

    def write_stereo(self):
        """
        :return: number of sample data bytes written
        :rtype: int
        """
        if self.mono_buffer is None:
            return self.write(None, 2)
        # L R L R ..., both channels carry the mono signal
        return self.write(np.repeat(self.mono_buffer, 2), 2)

    def write(self, samples, channels):
        if samples is None:
            raise SidXPortValueError("Error: set_mono_buffer() must be called before writing")

        frames = samples.astype('<i2').tobytes()

        def write_wav(out_file):
            with wave.open(out_file, 'wb') as wav_file:
                wav_file.setnchannels(channels)
                wav_file.setsampwidth(SAMPLE_WIDTH)
                wav_file.setframerate(self.sampling_rate)
                wav_file.writeframes(frames)

        atomic_write(self.filename, write_wav)
        return len(frames)
