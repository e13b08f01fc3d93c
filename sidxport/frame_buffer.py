# FrameBuffer: the flat register log produced by a capture run
#
# One 25-byte SID register snapshot ($D400-$D418) per emulated frame, stored
# back to back.  Frame f, register r lives at byte offset f * 25 + r.  All
# exporters go through get_frame()/get_register() rather than doing the
# offset arithmetic themselves.

from sidxport.constants import SID_REGISTER_COUNT
from sidxport.errors import SidXPortValueError, SidXPortAllocationError


class FrameBuffer:
    """
    Fixed size, append-in-order store for per-frame SID register snapshots.

    The buffer is allocated once at its final size.  capture() must be called
    with frame indexes 0, 1, 2, ... N-1 in that order; anything else is a
    caller error and raises SidXPortValueError.
    """

    def __init__(self, frame_count, frame_width=SID_REGISTER_COUNT):
        if frame_count < 0:
            raise SidXPortValueError("Error: frame count must be >= 0, got %d" % frame_count)
        if frame_width <= 0:
            raise SidXPortValueError("Error: frame width must be > 0")

        self.frame_count = frame_count    #: number of frames the buffer holds
        self.frame_width = frame_width    #: bytes per frame (25 SID registers)
        self.frames_captured = 0          #: next frame index capture() expects

        try:
            self._data = bytearray(frame_count * frame_width)
        except MemoryError as e:
            raise SidXPortAllocationError(
                "Error: unable to allocate a %d frame buffer" % frame_count) from e

    @classmethod
    def from_bytes(cls, binary, frame_width=SID_REGISTER_COUNT):
        """
        Rebuild a fully captured buffer from a raw dump

        :param binary: raw dump, a multiple of frame_width bytes long
        :type binary: bytes
        :return: a FrameBuffer with every frame captured
        :rtype: FrameBuffer
        """
        if len(binary) % frame_width != 0:
            raise SidXPortValueError(
                "Error: dump length %d is not a multiple of %d" % (len(binary), frame_width))
        frame_buffer = cls(len(binary) // frame_width, frame_width)
        frame_buffer._data[:] = binary
        frame_buffer.frames_captured = frame_buffer.frame_count
        return frame_buffer

    def frame_offset(self, frame_index, register=0):
        if not 0 <= frame_index < self.frame_count:
            raise SidXPortValueError(
                "Error: frame %d out of range (0 to %d)" % (frame_index, self.frame_count - 1))
        if not 0 <= register < self.frame_width:
            raise SidXPortValueError("Error: register %d out of range" % register)
        return frame_index * self.frame_width + register

    def capture(self, frame_index, snapshot):
        """
        Store one frame's register snapshot

        :param frame_index: frame number, must be the next one in sequence
        :type frame_index: int
        :param snapshot: exactly frame_width register values
        :type snapshot: bytes
        """
        if frame_index != self.frames_captured:
            raise SidXPortValueError(
                "Error: expected frame %d, got %d (frames are captured in order)"
                % (self.frames_captured, frame_index))
        if len(snapshot) != self.frame_width:
            raise SidXPortValueError(
                "Error: snapshot must be %d bytes, got %d" % (self.frame_width, len(snapshot)))

        start = self.frame_offset(frame_index)
        self._data[start:start + self.frame_width] = bytes(snapshot)
        self.frames_captured += 1

    def get_frame(self, frame_index):
        """
        :return: the register snapshot for one frame
        :rtype: bytes
        """
        start = self.frame_offset(frame_index)
        return bytes(self._data[start:start + self.frame_width])

    def get_register(self, frame_index, register):
        return self._data[self.frame_offset(frame_index, register)]

    def frames(self, start_frame=0):
        """
        Yield (frame_index, snapshot) pairs in frame order
        """
        for frame_index in range(start_frame, self.frame_count):
            yield frame_index, self.get_frame(frame_index)

    def is_complete(self):
        return self.frames_captured == self.frame_count

    def to_bytes(self):
        return bytes(self._data)

    def __len__(self):
        return len(self._data)

    def __eq__(self, other):
        if not isinstance(other, FrameBuffer):
            return NotImplemented
        return self.frame_width == other.frame_width and self._data == other._data

    def __repr__(self):
        return "FrameBuffer(frame_count=%d, frames_captured=%d)" % (
            self.frame_count, self.frames_captured)
