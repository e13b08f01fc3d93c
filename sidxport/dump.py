# Binary export: the raw register log, 25 bytes per frame, no header

from sidxport.base import SidXPortIO
from sidxport.byte_util import write_binary_file


class Dump(SidXPortIO):
    def __init__(self):
        SidXPortIO.__init__(self)
        self.options_with_defaults = dict(
            verbose=False,      # True = print what was written
        )
        self.set_options(**self.options_with_defaults)

    def to_bytes(self, frame_buffer):
        """
        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :return: frame 0's registers, then frame 1's, and so on
        :rtype: bytes
        """
        return frame_buffer.to_bytes()

    def to_file(self, frame_buffer, filename, **kwargs):
        """
        Write the raw register log.  Either the whole log is written or the
        destination is left untouched.

        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :param filename: output filename
        :type filename: str
        :return: bytes written
        :rtype: int
        """
        self.set_options(**kwargs)
        binary = self.to_bytes(frame_buffer)
        write_binary_file(filename, binary)
        self.log("Wrote %d frames (%d bytes) to %s" % (frame_buffer.frame_count, len(binary), filename))
        return len(binary)
