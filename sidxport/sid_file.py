# SID file (PSID/RSID) header parsing
#
# Format reference:
# - https://www.hvsc.c64.org/download/C64Music/DOCUMENTS/SID_file_format.txt
# - http://unusedino.de/ec64/technical/formats/sidplay.html
#
# Header layout (all multi-byte header values are big-endian):
#   +00 magic ('PSID' or 'RSID')   +04 version        +06 data offset
#   +08 load address               +0A init address   +0C play address
#   +0E song count                 +10 start song     +12 speed (32 bits)
#   +16 name (32 bytes)            +36 author         +56 released
#   v2+ only:
#   +76 flags (16 bits)            +78 start page     +79 page length
#   +7A second SID address         +7B third SID address

from sidxport.base import log_message
from sidxport.constants import DEFAULT_ARCH
from sidxport.byte_util import big_endian_int, little_endian_int
from sidxport.errors import SidXPortValueError

V1_DATA_OFFSET = 0x76
V2_DATA_OFFSET = 0x7c


class SidFile:
    def __init__(self):
        self.magic_id = None                #: PSID or RSID
        self.version = None                 #: 1 to 4
        self.data_offset = None             #: start of the C64 payload
        self.load_address = None            #: often the starting memory location
        self.init_address = None            #: often the init address
        self.play_address = None            #: often the play address
        self.num_subtunes = None            #: number of songs
        self.start_song = None              #: starting song (1-based)
        self.speed = None                   #: driver type for each subtune's play routine
        self.name = None                    #: SID name
        self.author = None                  #: SID author
        self.released = None                #: SID release details
        self.c64_payload = None             #: The C64 payload
        self.load_addr_preamble = False     #: True if payload begins with 16-bit load addr
        self.flags = 0                      #: Collection of flags
        self.flag_0 = False                 #: bit 0 from flags, True = COMPUTE!'s Sidplayer MUS data
        self.flag_1 = False                 #: bit 1 from flags (PlaySID specific / RSID BASIC)
        self.clock = 0                      #: video clock
        self.sid_model = 0                  #: SID1 chip type
        self.sid2_model = 0                 #: SID2 chip type
        self.sid3_model = 0                 #: SID3 chip type
        self.start_page = 0                 #: helps indicate where SID writes to memory
        self.page_length = 0                #: helps indicate where SID writes to memory
        self.sid2_address = 0               #: SID2 I/O starting address
        self.sid3_address = 0               #: SID3 I/O starting address
        self.sid_count = 1                  #: Number of SIDs used (1 to 3)
        self.is_rsid = None                 #: True if rsid, False if psid

    def contains_basic(self):
        # From documentation:
        # "If the C64 BASIC flag is set, the value at $030C must be set with the
        # song number to be played (0x00 for song 1)."
        return self.flag_1 and self.is_rsid

    def get_arch_from_headers(self):
        """
        Get architecture type from SID headers

        :return: architecture type
        :rtype: str
        """
        if self.clock == 1:
            return 'PAL-C64'
        if self.clock == 2:
            return 'NTSC-C64'
        # for values 0 or 3:
        return DEFAULT_ARCH

    def decode_clock(self):
        return {1: 'PAL', 2: 'NTSC', 3: 'NTSC and PAL'}.get(self.clock, 'Unknown')

    def decode_sid_model(self, sid_model_inst):
        """
        decode sid model numeric value to string description

        :param sid_model_inst: either sid_model, sid2_model, or sid3_model
        :type sid_model_inst: int
        :return: sid model description
        :rtype: str
        """
        return {1: 'MOS6581', 2: 'MOS8580', 3: 'MOS6581 and MOS8580'}.get(sid_model_inst, 'Unknown')

    def parse_file(self, sid_filename):
        """
        Parse the SID file header structure and extract the binary

        :param sid_filename: SID filename to parse
        :type sid_filename: str
        """
        try:
            with open(sid_filename, mode='rb') as in_file:
                sid_binary = in_file.read()
        except OSError as e:
            raise SidXPortValueError("Error: unable to read SID file %s: %s" % (sid_filename, e)) from e

        self.parse_binary(sid_binary)

    def headers_specify_cia_timer(self, subtune):
        """
        Determines if headers specify that the play routine will be driven by the
        CIA timer.  If so, speed is set by the init and/or play routine.

        :param subtune: subtune number (note: zero-indexed)
        :type subtune: int
        :return: True if speed bits designate CIA timer, None if rsid (headers don't specify)
        :rtype: bool
        """
        if self.is_rsid:
            return None

        if self.version == 1:
            return False

        if subtune > 31:
            if self.flag_1:     # PSID is PlaySid specific
                subtune %= 32
            else:               # C64 Compatible
                subtune = 31

        return self.speed & (1 << subtune) != 0  # True if CIA IRQ, False if raster IRQ

    def parse_binary(self, sid_binary):
        """
        Parse a SID file binary

        :param sid_binary: a SID file binary
        :type sid_binary: bytes
        """
        if len(sid_binary) < V1_DATA_OFFSET:
            raise SidXPortValueError("Error: SID file too short (%d bytes)" % len(sid_binary))

        self.magic_id = sid_binary[0:4]
        if self.magic_id not in (b'PSID', b'RSID'):
            raise SidXPortValueError("Error: unexpected sid magic id")
        self.is_rsid = (self.magic_id == b'RSID')

        self.version = big_endian_int(sid_binary[4:6])
        if not (1 <= self.version <= 4):
            raise SidXPortValueError("Error: unexpected SID version number")
        if self.is_rsid and self.version == 1:
            raise SidXPortValueError("Error: RSID can't be SID version 1")

        self.data_offset = big_endian_int(sid_binary[6:8])
        if self.version == 1 and self.data_offset != V1_DATA_OFFSET:
            raise SidXPortValueError("Error: invalid dataoffset for v1 SID")
        if self.version > 1 and self.data_offset != V2_DATA_OFFSET:
            raise SidXPortValueError("Error: invalid dataoffset for v2+ SID")
        if len(sid_binary) < self.data_offset + 2:
            raise SidXPortValueError("Error: SID file has no C64 payload")

        # A load address of 0 means the payload starts with its own little-endian
        # load address, which is always the case for RSIDs
        self.load_address = big_endian_int(sid_binary[8:10])
        if self.load_address == 0 or self.is_rsid:
            self.load_addr_preamble = True

        # If PSID and 0, init will be set to the loading address
        self.init_address = big_endian_int(sid_binary[10:12])

        # 0 means the init routine installs an interrupt handler that calls the player
        self.play_address = big_endian_int(sid_binary[12:14])
        if self.is_rsid and self.play_address != 0:
            raise SidXPortValueError("Error: RSIDs don't specify a play address")

        self.num_subtunes = big_endian_int(sid_binary[14:16])
        if not (1 <= self.num_subtunes <= 256):
            raise SidXPortValueError("Error: number of songs out of range")

        self.start_song = big_endian_int(sid_binary[16:18])
        if not (1 <= self.start_song <= 256):
            raise SidXPortValueError("Error: starting song number out of range")

        # One bit per subtune: 0 = vertical blank interrupt, 1 = CIA 1 timer interrupt
        self.speed = big_endian_int(sid_binary[18:22])
        if self.is_rsid and self.speed != 0:
            raise SidXPortValueError("Error: RSIDs don't specify a speed setting")

        # 32 byte Windows-1252 strings, zero terminated when shorter than 32 chars
        self.name = sid_binary[22:54].split(b'\x00')[0]
        self.author = sid_binary[54:86].split(b'\x00')[0]
        self.released = sid_binary[86:118].split(b'\x00')[0]

        if self.version > 1:
            self.parse_v2_fields(sid_binary)

        self.c64_payload = sid_binary[self.data_offset:]
        if self.load_addr_preamble:
            self.load_address = self.get_load_addr_from_payload()
            self.c64_payload = self.c64_payload[2:]

        if self.init_address == 0 and not self.is_rsid:
            self.init_address = self.load_address

        if self.is_rsid and self.load_address < 0x07e8:
            raise SidXPortValueError("Error: invalid RSID load address")

        if self.load_address + len(self.c64_payload) > 0x10000:
            raise SidXPortValueError("Error: SID data continues past end of C64 memory")

    def parse_v2_fields(self, sid_binary):
        self.flags = big_endian_int(sid_binary[118:120])

        self.flag_0 = self.flags & 0b00000001 != 0
        self.flag_1 = self.flags & 0b00000010 != 0
        if self.is_rsid:
            if self.init_address == 0:
                if not self.flag_1:
                    raise SidXPortValueError("Error: RSID can't have init address zero unless BASIC included")
            else:
                if self.flag_1:
                    raise SidXPortValueError("Error: RSID flag 1 can't be set (BASIC) if init address != 0")
                # allowed RSID init address ranges: $07E8 - $9FFF, $C000 - $CFFF
                if not ((0x07e8 <= self.init_address <= 0x9fff)
                        or (0xc000 <= self.init_address <= 0xcfff)):
                    raise SidXPortValueError("Error: invalid RSID init address")

        # bits 2-3: 00 = unknown, 01 = PAL, 10 = NTSC, 11 = PAL and NTSC
        self.clock = (self.flags & 0b0000000000001100) >> 2

        # bits 4-5, 6-7 and 8-9: model of SID 1, 2 and 3
        # (00 = unknown, 01 = MOS6581, 10 = MOS8580, 11 = both)
        # SIDs 2 and 3 default to the first SID's model
        self.sid_model = (self.flags & 0b0000000000110000) >> 4
        self.sid2_model = (self.flags & 0b0000000011000000) >> 6 or self.sid_model
        self.sid3_model = (self.flags & 0b0000001100000000) >> 8 or self.sid_model

        if self.flags > 1023:
            print("Warning: bits 10-15 of flags reserved and expected to be 0")

        self.start_page = sid_binary[120]
        self.page_length = sid_binary[121]

        # Extra SIDs are given as the middle byte of $Dxx0; only even values in
        # $42-$7F and $E0-$FE are valid, anything else means "no such SID"
        self.sid2_address = self.decode_extra_sid_address(sid_binary[122], 3, 'second')
        self.sid3_address = self.decode_extra_sid_address(sid_binary[123], 4, 'third')
        if self.sid3_address != 0 and self.sid3_address == self.sid2_address:
            print("Warning: SID3 address cannot equal SID2 address")
            self.sid3_address = 0

        self.sid_count = 1 + (self.sid2_address > 0) + (self.sid3_address > 0)

    def decode_extra_sid_address(self, raw, min_version, which):
        if raw == 0:
            return 0
        if self.version < min_version:
            print("Warning: %s SID address should not be defined for SID version %d"
                  % (which, self.version))
            return 0
        if raw % 2 == 1 or not ((0x42 <= raw <= 0x7f) or (0xe0 <= raw <= 0xfe)):
            print("Warning: invalid %s SID address, therefore no %s SID" % (which, which))
            return 0
        return 0xd000 + (raw * 16)

    def get_payload_length(self):
        """
        Return the length of the C64 native code embedded in the SID file

        :return: length of SID executable binary
        :rtype: int
        """
        return len(self.c64_payload)

    def get_load_addr_from_payload(self):
        """
        Return the load address from the payload
        Note: Not all payloads begin with a 16-bit load address, see other
        documentation in this class

        :return: C64 binary starting memory location
        :rtype: int
        """
        return little_endian_int(self.c64_payload[0:2])

    def print_header(self):
        log_message("Loaded SID file:")
        print("  type:        %s v%d" % (self.magic_id.decode('latin-1'), self.version))
        print("  name:        %s" % self.name.decode('latin-1'))
        print("  author:      %s" % self.author.decode('latin-1'))
        print("  released:    %s" % self.released.decode('latin-1'))
        print("  load:        $%04X (%d bytes)" % (self.load_address, self.get_payload_length()))
        print("  init:        $%04X" % self.init_address)
        print("  play:        $%04X" % self.play_address)
        print("  songs:       %d (start song %d)" % (self.num_subtunes, self.start_song))
        print("  clock:       %s" % self.decode_clock())
        print("  SID model:   %s" % self.decode_sid_model(self.sid_model))
        print("  SID count:   %d" % self.sid_count)
