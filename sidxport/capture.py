# Capture loop: one play call per frame, one register snapshot per play call

from sidxport.base import log_message
from sidxport.byte_util import hex_bytes
from sidxport.constants import SID_REGISTER_COUNT
from sidxport.frame_buffer import FrameBuffer
from sidxport.errors import SidXPortValueError


def debug_line(frame_index, snapshot):
    """
    Format one frame of the debug register dump, e.g. "[00002A] 00 1F ... 0F "

    :param frame_index: frame number
    :type frame_index: int
    :param snapshot: register values for the frame
    :type snapshot: bytes
    :return: the formatted line (no newline)
    :rtype: str
    """
    return "[{:06X}] {} ".format(frame_index, hex_bytes(snapshot))


def capture_frames(player, frame_count, verbose=False, debug=False):
    """
    Run the player for frame_count frames, storing the SID registers after each
    frame

    :param player: anything with advance_one_frame() and read_registers()
    :type player: SidPlayer
    :param frame_count: number of frames to capture
    :type frame_count: int
    :param verbose: print progress, defaults to False
    :type verbose: bool, optional
    :param debug: print each frame's registers as hex, defaults to False
    :type debug: bool, optional
    :return: the filled frame buffer
    :rtype: FrameBuffer
    """
    if frame_count <= 0:
        raise SidXPortValueError("Error: frame count must be positive, got %d" % frame_count)

    frame_buffer = FrameBuffer(frame_count)
    if verbose:
        log_message("Capturing %d frames (%d bytes)"
                    % (frame_count, frame_count * SID_REGISTER_COUNT))

    for frame_index in range(frame_count):
        player.advance_one_frame()
        snapshot = player.read_registers()
        frame_buffer.capture(frame_index, snapshot)
        if debug:
            print(debug_line(frame_index, snapshot))

    if verbose:
        first = frame_buffer.get_frame(0)
        log_message("Capture done, frame 0 registers: %s" % hex_bytes(first))

    return frame_buffer
