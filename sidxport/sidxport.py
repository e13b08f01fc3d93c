# SidXPort: load a SID file, capture its register log, export it

from sidxport import constants
from sidxport.base import SidXPortBase
from sidxport.capture import capture_frames
from sidxport.errors import SidXPortValueError
from sidxport.export import run_export, select_export
from sidxport.sid_file import SidFile
from sidxport.sid_player import SidPlayer

# Options whose change makes an earlier capture stale
CAPTURE_OPTIONS = ('sid_in_filename', 'frames', 'subtune', 'arch')


class SidXPort(SidXPortBase):
    """
    Captures a SID tune's per-frame register writes and exports them.

    The tune is run on a thin C64 emulation: the init routine once, then the
    play routine once per frame.  After every play call the 25 SID registers
    ($D400-$D418) are copied into a FrameBuffer.  export() then writes that
    log as a raw binary dump, as a hex or decimal table, or renders it to a
    WAV file.
    """

    def __init__(self, **kwargs):
        SidXPortBase.__init__(self)

        self.options_with_defaults = dict(
            sid_in_filename=None,
            frames=constants.DEFAULT_FRAME_RATE * 60,   # frames to capture
            subtune=None,                   # zero-indexed, None = the file's start song
            arch=None,                      # None = use the SID headers
            chip_model=constants.DEFAULT_CHIP_MODEL,
            sampling_rate=constants.DEFAULT_SAMPLING_RATE,
            csv_enabled=False,              # table output
            csv_format='decimal',           # 'hex' or 'decimal'
            wav_enabled=False,              # audio output, takes precedence over table
            wav_format='stereo',            # 'mono' or 'stereo'
            debug=False,                    # True = print every frame's registers
            verbose=False,                  # True = print progress
        )

        self.set_options(**self.options_with_defaults)
        self.set_options(**kwargs)

        self.sid_file = None
        self.frame_buffer = None
        self.arch = constants.DEFAULT_ARCH  # replaced by the player's arch on capture

    def set_options(self, **kwargs):
        """
        Sets options, discarding any earlier capture that they invalidate

        :param kwargs: keyword arguments for options
        :type kwargs: keyword arguments
        """
        changed = {op.lower() for op, val in kwargs.items()
                   if self.get_option(op.lower()) != val}
        SidXPortBase.set_options(self, **kwargs)

        if 'sid_in_filename' in changed:
            self.sid_file = None
        if changed.intersection(CAPTURE_OPTIONS):
            self.frame_buffer = None

    def validate_option(self, op, val):
        if op == 'frames' and (not isinstance(val, int) or val <= 0):
            raise SidXPortValueError("Error: frames must be a positive integer")
        if op == 'chip_model' and val not in constants.CHIP_MODELS:
            raise SidXPortValueError('Error: unknown chip model "%s"' % val)
        if op == 'csv_format' and val not in constants.CSV_FORMATS:
            raise SidXPortValueError('Error: unknown csv format "%s"' % val)
        if op == 'wav_format' and val not in constants.WAV_FORMATS:
            raise SidXPortValueError('Error: unknown wav format "%s"' % val)
        if op == 'arch' and val is not None and val not in constants.ARCH:
            raise SidXPortValueError('Error: unexpected architecture type "%s"' % val)

    def load(self):
        """
        Parse the SID file named by the sid_in_filename option

        :return: the parsed file
        :rtype: SidFile
        """
        filename = self.get_option('sid_in_filename')
        if filename is None:
            raise SidXPortValueError("Error: sid_in_filename option not set")
        self.sid_file = SidFile()
        self.sid_file.parse_file(filename)
        if self.get_option('verbose'):
            self.sid_file.print_header()
        return self.sid_file

    def capture(self, **kwargs):
        """
        Run the tune and capture its register log

        :return: one 25-byte register snapshot per frame
        :rtype: FrameBuffer

        :keyword options: any of the options above
        """
        self.set_options(**kwargs)
        if self.sid_file is None:
            self.load()

        player = SidPlayer(self.sid_file, self.get_option('arch'), self.get_option('verbose'))
        player.sid_init(self.get_option('subtune'))

        self.frame_buffer = capture_frames(player, self.get_option('frames'),
                                           verbose=self.get_option('verbose'),
                                           debug=self.get_option('debug'))
        self.arch = player.arch
        return self.frame_buffer

    def export(self, output_filename, **kwargs):
        """
        Export the captured log, capturing first if needed

        :param output_filename: output file (for audio, None means 'sidxport-out.wav')
        :type output_filename: str
        :return: what was written
        :rtype: ExportResult
        """
        self.set_options(**kwargs)
        if self.frame_buffer is None:
            self.capture()

        export = select_export(
            wav_enabled=self.get_option('wav_enabled'),
            wav_format=self.get_option('wav_format'),
            csv_enabled=self.get_option('csv_enabled'),
            csv_format=self.get_option('csv_format'),
            chip_model=self.get_option('chip_model'),
            sampling_rate=self.get_option('sampling_rate'),
            arch=self.arch,
        )
        return run_export(export, self.frame_buffer, output_filename, self.get_option('verbose'))
