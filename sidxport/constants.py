# Constants for SidXPort
#

from dataclasses import dataclass


# Version information.  Update BUILD_VERSION with every significant bugfix;
# update MINOR_VERSION with every feature addition
MAJOR_VERSION = 0
MINOR_VERSION = 1
BUILD_VERSION = 0

SIDXPORT_VERSION = f"{MAJOR_VERSION}.{MINOR_VERSION}.{BUILD_VERSION}"

# One register snapshot per frame: $D400-$D418
SID_REGISTER_COUNT = 25
SID_BASE_ADDRESS = 0xd400

# Logical capture rate (one play call per video frame) and PCM output rate
DEFAULT_FRAME_RATE = 50
DEFAULT_SAMPLING_RATE = 44100

DEFAULT_ARCH = 'PAL-C64'
DEFAULT_CHIP_MODEL = 'MOS8580'
DEFAULT_WAV_FILENAME = 'sidxport-out.wav'

CHIP_MODELS = ('MOS6581', 'MOS8580')
CSV_FORMATS = ('hex', 'decimal')
WAV_FORMATS = ('mono', 'stereo')

CSV_HEADER = "Frame, R00, R01, R02, ..., R24\n"
CSV_SEPARATOR = ", "

LOG_PREFIX = "[SidXPort]"


@dataclass(frozen=True)
class ArchDescription:
    system_clock: int
    cycles_per_line: int
    lines_per_frame: int

    @property
    def cycles_per_frame(self):
        return self.lines_per_frame * self.cycles_per_line

    @property
    def frame_rate(self):
        return self.system_clock / self.cycles_per_frame


ARCH = {
    # NTSC C64 and C128 (1Mhz mode)
    'NTSC-C64': ArchDescription(system_clock=1022727,     # The "new" NTSC 6567R8
                                cycles_per_line=65,
                                lines_per_frame=263),
    # PAL C64 and C128 (1Mhz mode)
    'PAL-C64': ArchDescription(system_clock=985248,       # 6569 chip
                               cycles_per_line=63,
                               lines_per_frame=312),
}
