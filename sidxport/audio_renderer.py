# Replays a captured register log through the SID chip model to get PCM audio
#
# The log holds one register snapshot per frame (50 per second on PAL), while
# the output runs at the sampling rate (44,100 samples per second by default).
# Each frame therefore owns a chunk of sampling_rate / frame_rate samples.
# When that ratio isn't a whole number the fractional part carries forward, so
# chunk k always covers samples floor(k * r) up to floor((k + 1) * r).

import math
from fractions import Fraction

import more_itertools as moreit
import numpy as np

from sidxport import constants
from sidxport.errors import SidXPortAllocationError, SidXPortValueError
from sidxport.sid_chip import SidChip


class AudioRenderer:
    def __init__(self, chip_model, sampling_rate=constants.DEFAULT_SAMPLING_RATE,
                 frame_rate=constants.DEFAULT_FRAME_RATE, arch=constants.DEFAULT_ARCH):
        """
        :param chip_model: 'MOS6581' or 'MOS8580', always given explicitly
        :type chip_model: str
        :param sampling_rate: output samples per second, defaults to 44100
        :type sampling_rate: int, optional
        :param frame_rate: frames per second in the register log, defaults to 50
        :type frame_rate: int, optional
        :param arch: architecture, sets the SID's clock, defaults to 'PAL-C64'
        :type arch: str, optional
        """
        if chip_model not in constants.CHIP_MODELS:
            raise SidXPortValueError('Error: unknown chip model "%s"' % chip_model)
        if sampling_rate <= 0 or frame_rate <= 0:
            raise SidXPortValueError("Error: sampling rate and frame rate must be positive")
        if arch not in constants.ARCH:
            raise SidXPortValueError('Error: unexpected architecture type "%s"' % arch)

        self.chip_model = chip_model
        self.sampling_rate = sampling_rate
        self.frame_rate = frame_rate
        self.arch = arch
        self.samples_per_frame = Fraction(sampling_rate, frame_rate)

    def duration_seconds(self, frame_count):
        """
        Whole seconds of audio for a log of frame_count frames; a trailing
        partial second is dropped

        :rtype: int
        """
        return frame_count // self.frame_rate

    def allocate_pcm(self, duration_seconds):
        """
        Allocate a zeroed PCM buffer

        :param duration_seconds: length of the buffer in seconds
        :type duration_seconds: int
        :return: sampling_rate * duration_seconds zero samples
        :rtype: numpy.ndarray
        """
        try:
            return np.zeros(self.sampling_rate * duration_seconds, dtype=np.int16)
        except MemoryError as e:
            raise SidXPortAllocationError(
                "Error: unable to allocate %d seconds of audio" % duration_seconds) from e

    def chunk_start(self, chunk_index):
        return math.floor(self.samples_per_frame * chunk_index)

    def render(self, frame_buffer, start_frame=0, max_frames=None):
        """
        Render the register log to PCM

        Frames are rendered in order starting at start_frame.  Rendering stops
        when the next frame's whole chunk would not fit in the buffer, when
        max_frames frames have been rendered, or when the log runs out.  Any
        samples past the last rendered chunk stay zero.

        :param frame_buffer: captured register log
        :type frame_buffer: FrameBuffer
        :param start_frame: first frame to render, defaults to 0
        :type start_frame: int, optional
        :param max_frames: most frames to render, defaults to no limit
        :type max_frames: int, optional
        :return: the PCM buffer and the number of frames rendered
        :rtype: (numpy.ndarray, int)
        """
        if not 0 <= start_frame <= frame_buffer.frame_count:
            raise SidXPortValueError("Error: start frame %d out of range" % start_frame)
        if max_frames is not None and max_frames < 0:
            raise SidXPortValueError("Error: max_frames must be >= 0")

        pcm = self.allocate_pcm(self.duration_seconds(frame_buffer.frame_count))

        chip = SidChip(self.arch, self.sampling_rate)
        chip.set_chip_model(self.chip_model)

        frame_limit = frame_buffer.frame_count - start_frame
        if max_frames is not None:
            frame_limit = min(frame_limit, max_frames)
        chunk_bounds = (self.chunk_start(k) for k in range(frame_limit + 1))

        frames_rendered = 0
        for (_, snapshot), (start, end) in zip(frame_buffer.frames(start_frame),
                                               moreit.pairwise(chunk_bounds)):
            if end > len(pcm):
                break
            chip.write_registers(snapshot)
            pcm[start:end] = chip.clock(end - start)
            frames_rendered += 1

        return pcm, frames_rendered
