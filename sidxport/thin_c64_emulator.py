# Adds C64-specific behaviors atop the emulator_6502.py code
#
# Just enough of a C64 for a SID tune's init and play routines: the $0001
# banking latch, an I/O area where the SID, VIC-II and CIA registers live
# (with their mirrors), and a stub KERNAL holding the interrupt vectors and
# entry code that SID drivers expect.  No ROM images are loaded.
#
# Notes:
# - All bank switching logic assumes the EXROM and GAME are both 1 (since not emulating
#   cartridges)
# - Only the first SID ($D400) is tracked for capture

from sidxport import constants
from sidxport import emulator_6502
from sidxport.errors import SidXPortValueError

# KERNAL ROM $FDDD-FDF3 gives these CIA#1 timer A cycle counts:
CIA_TIMER_NTSC = 17045
CIA_TIMER_PAL = 16421

IO_START = 0xd000
IO_END = 0xdfff

# (first, last, block size, canonical base) for the mirrored I/O ranges.  In a real C64:
# - $D040-$D3FF: every 64-byte block is a "mirror" of the VIC-II registers at $D000
# - $D420-$D7FF: every 32-byte block is a "mirror" of the SID registers at $D400
# - $DC10-$DCFF: every 16-byte block is a "mirror" of the CIA #1 registers at $DC00
# - $DD10-$DDFF: every 16-byte block is a "mirror" of the CIA #2 registers at $DD00
IO_MIRRORS = (
    (0xd040, 0xd3ff, 64, 0xd000),
    (0xd420, 0xd7ff, 32, 0xd400),
    (0xdc10, 0xdcff, 16, 0xdc00),
    (0xdd10, 0xddff, 16, 0xdd00),
)

# Unused VIC-II registers and unused SID read registers always read $FF and ignore writes
IO_UNCONNECTED = ((0xd02f, 0xd03f), (0xd41d, 0xd41f))


class ThinC64Emulator(emulator_6502.Cpu6502Emulator):
    def __init__(self, arch=constants.DEFAULT_ARCH):
        super().__init__()

        if arch not in constants.ARCH:
            raise SidXPortValueError('Error: unexpected architecture type "%s"' % arch)
        self.arch = arch
        self.is_ntsc = arch.startswith("NTSC")  # False if PAL

        self.set_mem_callback = None  # optional callback for processing memory writes

        self.rom_kernal = bytearray(8192)    # KERNAL ROM 57344-65535 ($E000-$FFFF)
        self.rom_basic = bytearray(8192)     # BASIC ROM 40960-49151 ($A000-$BFFF)
        self.rom_char = bytearray(4096)      # Character set ROM 53248-57343 ($D000-$DFFF)
        self.registers_io = bytearray(4096)  # Pretending I/O ($D000-$DFFF) are all registers

        self.see_basic = None
        self.see_kernal = None
        self.see_char = None
        self.see_io = None
        # bank in BASIC, KERNAL, and I/O (not char)
        self.set_mem(0x0001, 0b00110111)  # Sets the above four booleans

        # SID file specs say setting $02A6 is required
        if self.is_ntsc:
            self.memory[0x02a6] = 0x00
            self.set_le_word(0xdc04, CIA_TIMER_NTSC)
        else:
            self.memory[0x02a6] = 0x01
            self.set_le_word(0xdc04, CIA_TIMER_PAL)

        # KERNAL hardware vectors: NMI -> $FE43, RESET -> $FCE2, IRQ/BRK -> $FF48
        self.patch_kernal(emulator_6502.NMI, [0x43, 0xfe, 0xe2, 0xfc, 0x48, 0xff])

        # RAM vectors: $0314 IRQ -> $EA31, $0316 BRK -> $FE66, $0318 NMI -> $FE47
        self.inject_bytes(0x0314, [0x31, 0xea, 0x66, 0xfe, 0x47, 0xfe])

        # BASIC cold start / warm start vectors
        self.patch_basic(0xa000, [0x94, 0xe3, 0x7b, 0xe3])

        # $EA81: PLA, TAY, PLA, TAX, PLA, RTI (end of the KERNAL IRQ handler)
        self.patch_kernal(0xea81, [0x68, 0xa8, 0x68, 0xaa, 0x68, 0x40])

        # $FF48: KERNAL IRQ/BRK entry.  Saves A, X, Y then JMP ($0316) for BRK,
        # JMP ($0314) for a hardware IRQ
        self.patch_kernal(0xff48, [
            0x48, 0x8a, 0x48, 0x98, 0x48, 0xba, 0xbd, 0x04, 0x01, 0x29,
            0x10, 0xf0, 0x03, 0x6c, 0x16, 0x03, 0x6c, 0x14, 0x03
        ])

    def io_index(self, loc):
        """
        Map an address in $D000-$DFFF to its slot in registers_io, folding mirrors
        onto their canonical registers

        :return: index into registers_io, or None if unconnected
        :rtype: int
        """
        for first, last in IO_UNCONNECTED:
            if first <= loc <= last:
                return None
        for first, last, block, base in IO_MIRRORS:
            if first <= loc <= last:
                return base - IO_START + (loc - base) % block
        return loc - IO_START

    def get_mem(self, loc):
        self.mem_usage[loc] |= emulator_6502.MEM_USAGE_READ

        if loc < 0xa000 or (0xc000 <= loc <= 0xcfff):
            return self.memory[loc]

        if loc >= 0xe000:
            return self.rom_kernal[loc - 0xe000] if self.see_kernal else self.memory[loc]

        if loc <= 0xbfff:
            return self.rom_basic[loc - 0xa000] if self.see_basic else self.memory[loc]

        # only $D000 to $DFFF left to process
        if self.see_char:
            return self.rom_char[loc - IO_START]

        if self.see_io:
            index = self.io_index(loc)
            if index is None:
                return 0xff
            # Note: this low-fidelity emulator lets you read back anything stored in
            # a write-only SID register, which is how registers get sampled after play
            return self.registers_io[index]

        return self.memory[loc]

    def set_mem(self, loc, val):
        self.mem_usage[loc] |= emulator_6502.MEM_USAGE_WRITE

        if not (0 <= val <= 255):
            raise SidXPortValueError("Error: POKE(%d),%d out of range" % (loc, val))

        if self.set_mem_callback is not None:
            self.set_mem_callback(loc, val)

        # With I/O banked in, writes to $D000-$DFFF go to the chips, not RAM.
        # ROMs are never written; writes "under" them land in RAM.
        if IO_START <= loc <= IO_END and self.see_io:
            index = self.io_index(loc)
            if index is not None:
                self.registers_io[index] = val
            return

        self.memory[loc] = val

        if loc == 1:
            self.update_banks()

    def update_banks(self):
        # Assuming that loc $0000 is always xxxxx111, and EXROM/GAME are both 1:
        #
        # m1:b2   m1:b1   m1:b0   $A000-  $D000-  $E000-
        # CHAREN  HIRAM   LORAM   $BFFF   $DFFF   $FFFF
        # 1       1       1       BASIC   I/O     KERNAL
        # 1       1       0       RAM     I/O     KERNAL
        # 1       0       1       RAM     I/O     RAM
        # 1       0       0       RAM     RAM     RAM
        # 0       1       1       BASIC   CHAR    KERNAL
        # 0       1       0       RAM     CHAR    KERNAL
        # 0       0       1       RAM     CHAR    RAM
        # 0       0       0       RAM     RAM     RAM
        banks = self.memory[0x0001] & 0b00000111
        self.see_basic = banks & 0b011 == 0b011
        self.see_kernal = bool(banks & 0b010)
        self.see_io = 5 <= banks <= 7
        self.see_char = 1 <= banks <= 3

    def get_sid_registers(self, base_addr=constants.SID_BASE_ADDRESS):
        """
        Snapshot the SID's write registers without touching memory usage tracking

        :param base_addr: SID base address, defaults to $D400
        :type base_addr: int
        :return: the 25 register values $D400-$D418
        :rtype: bytes
        """
        start = base_addr - IO_START
        return bytes(self.registers_io[start:start + constants.SID_REGISTER_COUNT])

    def patch_kernal(self, mem_loc, bytes):
        mem_loc -= 0xe000
        self.rom_kernal[mem_loc:mem_loc + len(bytes)] = bytes

    def patch_basic(self, mem_loc, bytes):
        mem_loc -= 0xa000
        self.rom_basic[mem_loc:mem_loc + len(bytes)] = bytes

    def get_timer_base_loc(self, cia_num, timer):
        """
        Get the base address for the given cia and cia timer

        :param cia_num: cia chip number
        :type cia_num: int
        :param timer: cia timer designation
        :type timer: str
        :return: base address of cia timer
        :rtype: int
        """
        if cia_num not in (1, 2):
            raise SidXPortValueError("Error: Invalid cia number %s" % cia_num)
        timer = timer.lower()
        if timer not in ('a', 'b'):
            raise SidXPortValueError("Error: Invalid cia timer %s" % timer)
        base = 0xdc04 if cia_num == 1 else 0xdd04
        return base if timer == 'a' else base + 2

    def get_cia_timer(self, cia_num, timer):
        """
        Get the requested 16 bit timer latch value (without mem_usage noticing)
        """
        index = self.get_timer_base_loc(cia_num, timer) - IO_START
        return self.registers_io[index] | (self.registers_io[index + 1] << 8)

    def word_was_updated(self, base_addr):
        """
        Returns true if the 16-bit value at base_addr was written to

        :param base_addr: lo byte of the 16-bit lo/hi value
        :type base_addr: int
        :return: True if value was written to
        :rtype: bool
        """
        return ((self.mem_usage[base_addr] & emulator_6502.MEM_USAGE_WRITE != 0)
                or (self.mem_usage[base_addr + 1] & emulator_6502.MEM_USAGE_WRITE != 0))
