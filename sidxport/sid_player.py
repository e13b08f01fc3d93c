# Drives a SID tune's init and play routines on the thin C64 emulator
#
# The init routine is called once with the subtune number in the accumulator.
# After that each call of the play routine advances the tune by one frame, and
# the SID's 25 write registers can be sampled from the emulated I/O area.

from sidxport import thin_c64_emulator
from sidxport.base import log_message
from sidxport.constants import ARCH
from sidxport.errors import SidXPortContentError, SidXPortValueError

# Instruction budget for a single init or play call
MAX_INSTR = 0x100000

# KERNAL IRQ exit code ($EA31 handler through the $EA81 restore)
KERNAL_IRQ_EXIT_START = 0xea31
KERNAL_IRQ_EXIT_END = 0xea83


class SidPlayer:
    """
    Runs a parsed SID file one frame at a time.

    Provides the capture interface used by capture_frames():
    advance_one_frame() and read_registers().
    """

    def __init__(self, sid_file, arch=None, verbose=False):
        """
        :param sid_file: a parsed SID file
        :type sid_file: SidFile
        :param arch: architecture name, defaults to the one given in the SID headers
        :type arch: str, optional
        :param verbose: print progress messages, defaults to False
        :type verbose: bool, optional
        """
        if sid_file.contains_basic():
            raise SidXPortContentError("Error: BASIC code SIDs not supported")

        self.sid_file = sid_file
        self.arch = arch if arch is not None else sid_file.get_arch_from_headers()
        self.verbose = verbose
        self.cpu_state = thin_c64_emulator.ThinC64Emulator(self.arch)
        self.cpu_state.exit_on_empty_stack = True
        self.play_address = sid_file.play_address
        self.subtune = None
        self.play_calls = 0

    def log(self, message):
        if self.verbose:
            log_message(message)

    def sid_init(self, subtune=None):
        """
        Load the payload into memory and run the tune's init routine

        :param subtune: zero-indexed subtune, defaults to the file's start song
        :type subtune: int, optional
        """
        if subtune is None:
            subtune = self.sid_file.start_song - 1
        if not 0 <= subtune < self.sid_file.num_subtunes:
            raise SidXPortValueError("Error: subtune %d out of range (0 to %d)"
                                     % (subtune, self.sid_file.num_subtunes - 1))
        self.subtune = subtune

        self.cpu_state.inject_bytes(self.sid_file.load_address, self.sid_file.c64_payload)

        if self.sid_file.is_rsid:
            # RSIDs only have the initial bank setup
            self.cpu_state.set_mem(0x0001, 0b00110111)  # 0x37: I/O, KERNAL, BASIC
        else:
            self.set_banks_before_psid_call(self.sid_file.init_address)

        if self.verbose:
            if self.sid_file.is_rsid:
                self.log("SID type: RSID")
            elif self.sid_file.headers_specify_cia_timer(subtune):
                self.log("SID type: PSID, headers indicate CIA timer driven")
            else:
                self.log("SID type: PSID, headers indicate VBI driven")
            self.log("Architecture: %s (%.2f frames per second)"
                     % (self.arch, ARCH[self.arch].frame_rate))

        # records if there was R or W activity per loc, so the play address can be found
        self.cpu_state.clear_memory_usage()

        self.log("Calling init routine at $%04X for subtune %d"
                 % (self.sid_file.init_address, subtune))
        self.cpu_state.init_cpu(self.sid_file.init_address, subtune)
        self.run_until_return('init')

        # This is often an indication of a problem
        if self.cpu_state.last_instruction == 0x00:
            print("Warning: SID init routine exited with a BRK")

        # When play address is 0, the init routine installs an interrupt handler which
        # calls the music player (always the case with RSID files).  Rather than emulate
        # the interrupt, take the handler address from the vector and call it directly.
        if self.play_address == 0:
            if self.cpu_state.word_was_updated(0x0314):
                # pointer to the KERNAL's standard interrupt service routine
                self.play_address = self.cpu_state.get_le_word(0x0314)
            elif self.cpu_state.word_was_updated(0xfffe):
                # 6502-defined IRQ vector, used when the KERNAL is banked out
                self.play_address = self.cpu_state.get_le_word(0xfffe)
            else:
                raise SidXPortContentError("Error: unable to determine play address")
            self.log("Play address taken from IRQ vector: $%04X" % self.play_address)

        self.play_calls = 0

    def sid_play(self):
        """
        Emulate one call to the tune's play routine

        Returns once emulation hits a BRK, an RTI or RTS on an (almost) empty
        stack, or jumps into the KERNAL's interrupt exit code.
        """
        if self.subtune is None:
            raise SidXPortValueError("Error: sid_init() must be called before sid_play()")

        if not self.sid_file.is_rsid:
            self.set_banks_before_psid_call(self.play_address)

        # This resets the stack each time
        self.cpu_state.init_cpu(self.play_address)
        self.run_until_return('play')
        self.play_calls += 1

    def run_until_return(self, routine):
        while self.cpu_state.runcpu():
            if self.cpu_state.instructions > MAX_INSTR:
                raise SidXPortContentError(
                    "Error: CPU executed a high number of instructions in %s routine" % routine)

            # Test if exiting through KERNAL interrupt handler
            #     e.g., $EA31, $EA7E, and $EA81 exit attempts:
            if (routine == 'play' and self.cpu_state.see_kernal
                    and KERNAL_IRQ_EXIT_START <= self.cpu_state.pc <= KERNAL_IRQ_EXIT_END):
                return

        if routine == 'play' and self.cpu_state.last_instruction == 0x00:
            print("Warning: SID play routine exited with a BRK")

    def set_banks_before_psid_call(self, call_address):
        """
        Before any PSID init or play call, the bank settings must be reasserted
        (according to the expected SID environment settings, specified here
        https://www.hvsc.c64.org/download/C64Music/DOCUMENTS/SID_file_format.txt)
        This is not to be called for RSIDs.

        :param call_address: the PSID's init or play address
        :type call_address: int
        """
        if call_address < 0xa000:
            self.cpu_state.set_mem(0x0001, 0b00110111)  # 0x37: I/O, KERNAL, BASIC
        elif call_address < 0xd000:
            self.cpu_state.set_mem(0x0001, 0b00110110)  # 0x36: I/O, KERNAL
        elif call_address < 0xe000:
            self.cpu_state.set_mem(0x0001, 0b00110101)  # 0x35: I/O
        else:
            self.cpu_state.set_mem(0x0001, 0b00110100)  # 0x34: A full 64K of RAM exposed

    def advance_one_frame(self):
        self.sid_play()

    def read_registers(self):
        """
        :return: the 25 SID registers after the most recent play call
        :rtype: bytes
        """
        return self.cpu_state.get_sid_registers()
