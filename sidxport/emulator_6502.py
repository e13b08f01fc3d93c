# 6502 instruction-level emulation
#
# This module emulates 6502 machine language program execution at an instruction-level
# of granularity (not a cycle-level).  Only the documented (legal) opcodes are
# implemented; anything else raises SidXPortNotImplemented.
#
# runcpu() can be called in a while loop.  It returns 1 while execution should
# continue, and 0 on these (non-error) exit conditions:
# - BRK
# - RTI or RTS if exit_on_empty_stack is True and stack is empty or has already wrapped
#
# Each opcode maps to a (mnemonic, addressing mode) pair.  The addressing mode
# resolves to an effective address before the instruction handler runs; for
# immediate mode that address is the operand byte itself, so every handler can
# simply get_mem() its operand.

from sidxport.errors import SidXPortNotImplemented, SidXPortValueError

# 6502 vector locations
NMI = 0xfffa  # on C64, vector points to NMI routine at $FE43/65091
RESET = 0xfffc  # on C64, vector points to power-on routine $FCE2/64738
IRQ = 0xfffe  # on C64, vector points to IRQ handler routine at $FF48/65352

FN = 0b10000000  # Negative
FV = 0b01000000  # oVerflow
FU = 0b00100000  # Unused
FB = 0b00010000  # Break
FD = 0b00001000  # Decimal
FI = 0b00000100  # Interrupt
FZ = 0b00000010  # Zero
FC = 0b00000001  # Carry

# A cutoff point for determining if an RTI or RTS should exit emulation when the
# stack has wrapped (i.e. 0 <= SP < STACK_WRAP_AREA).
STACK_WRAP_AREA = 0x0f

MEM_USAGE_READ  = 0b00000001  # noqa:E221
MEM_USAGE_WRITE = 0b00000010

# Addressing modes
IMP = 'implied'
ACC = 'accumulator'
IMM = 'immediate'
ZP = 'zp'
ZPX = 'zp,x'
ZPY = 'zp,y'
ABS = 'abs'
ABX = 'abs,x'
ABY = 'abs,y'
IND = '(abs)'
IZX = '(zp,x)'
IZY = '(zp),y'
REL = 'relative'

# Operand bytes following the opcode
OPERAND_LENGTH = {
    IMP: 0, ACC: 0, IMM: 1, ZP: 1, ZPX: 1, ZPY: 1, REL: 1, IZX: 1, IZY: 1,
    ABS: 2, ABX: 2, ABY: 2, IND: 2,
}

OPCODES = {
    0x69: ('ADC', IMM), 0x65: ('ADC', ZP), 0x75: ('ADC', ZPX), 0x6d: ('ADC', ABS),
    0x7d: ('ADC', ABX), 0x79: ('ADC', ABY), 0x61: ('ADC', IZX), 0x71: ('ADC', IZY),

    0x29: ('AND', IMM), 0x25: ('AND', ZP), 0x35: ('AND', ZPX), 0x2d: ('AND', ABS),
    0x3d: ('AND', ABX), 0x39: ('AND', ABY), 0x21: ('AND', IZX), 0x31: ('AND', IZY),

    0x0a: ('ASL', ACC), 0x06: ('ASL', ZP), 0x16: ('ASL', ZPX), 0x0e: ('ASL', ABS),
    0x1e: ('ASL', ABX),

    0x90: ('BCC', REL), 0xb0: ('BCS', REL), 0xf0: ('BEQ', REL), 0x30: ('BMI', REL),
    0xd0: ('BNE', REL), 0x10: ('BPL', REL), 0x50: ('BVC', REL), 0x70: ('BVS', REL),

    0x24: ('BIT', ZP), 0x2c: ('BIT', ABS),

    0x00: ('BRK', IMP),

    0x18: ('CLC', IMP), 0xd8: ('CLD', IMP), 0x58: ('CLI', IMP), 0xb8: ('CLV', IMP),

    0xc9: ('CMP', IMM), 0xc5: ('CMP', ZP), 0xd5: ('CMP', ZPX), 0xcd: ('CMP', ABS),
    0xdd: ('CMP', ABX), 0xd9: ('CMP', ABY), 0xc1: ('CMP', IZX), 0xd1: ('CMP', IZY),

    0xe0: ('CPX', IMM), 0xe4: ('CPX', ZP), 0xec: ('CPX', ABS),
    0xc0: ('CPY', IMM), 0xc4: ('CPY', ZP), 0xcc: ('CPY', ABS),

    0xc6: ('DEC', ZP), 0xd6: ('DEC', ZPX), 0xce: ('DEC', ABS), 0xde: ('DEC', ABX),
    0xca: ('DEX', IMP), 0x88: ('DEY', IMP),

    0x49: ('EOR', IMM), 0x45: ('EOR', ZP), 0x55: ('EOR', ZPX), 0x4d: ('EOR', ABS),
    0x5d: ('EOR', ABX), 0x59: ('EOR', ABY), 0x41: ('EOR', IZX), 0x51: ('EOR', IZY),

    0xe6: ('INC', ZP), 0xf6: ('INC', ZPX), 0xee: ('INC', ABS), 0xfe: ('INC', ABX),
    0xe8: ('INX', IMP), 0xc8: ('INY', IMP),

    0x4c: ('JMP', ABS), 0x6c: ('JMP', IND),
    0x20: ('JSR', ABS),

    0xa9: ('LDA', IMM), 0xa5: ('LDA', ZP), 0xb5: ('LDA', ZPX), 0xad: ('LDA', ABS),
    0xbd: ('LDA', ABX), 0xb9: ('LDA', ABY), 0xa1: ('LDA', IZX), 0xb1: ('LDA', IZY),

    0xa2: ('LDX', IMM), 0xa6: ('LDX', ZP), 0xb6: ('LDX', ZPY), 0xae: ('LDX', ABS),
    0xbe: ('LDX', ABY),

    0xa0: ('LDY', IMM), 0xa4: ('LDY', ZP), 0xb4: ('LDY', ZPX), 0xac: ('LDY', ABS),
    0xbc: ('LDY', ABX),

    0x4a: ('LSR', ACC), 0x46: ('LSR', ZP), 0x56: ('LSR', ZPX), 0x4e: ('LSR', ABS),
    0x5e: ('LSR', ABX),

    0xea: ('NOP', IMP),

    0x09: ('ORA', IMM), 0x05: ('ORA', ZP), 0x15: ('ORA', ZPX), 0x0d: ('ORA', ABS),
    0x1d: ('ORA', ABX), 0x19: ('ORA', ABY), 0x01: ('ORA', IZX), 0x11: ('ORA', IZY),

    0x48: ('PHA', IMP), 0x08: ('PHP', IMP), 0x68: ('PLA', IMP), 0x28: ('PLP', IMP),

    0x2a: ('ROL', ACC), 0x26: ('ROL', ZP), 0x36: ('ROL', ZPX), 0x2e: ('ROL', ABS),
    0x3e: ('ROL', ABX),

    0x6a: ('ROR', ACC), 0x66: ('ROR', ZP), 0x76: ('ROR', ZPX), 0x6e: ('ROR', ABS),
    0x7e: ('ROR', ABX),

    0x40: ('RTI', IMP), 0x60: ('RTS', IMP),

    0xe9: ('SBC', IMM), 0xe5: ('SBC', ZP), 0xf5: ('SBC', ZPX), 0xed: ('SBC', ABS),
    0xfd: ('SBC', ABX), 0xf9: ('SBC', ABY), 0xe1: ('SBC', IZX), 0xf1: ('SBC', IZY),

    0x38: ('SEC', IMP), 0xf8: ('SED', IMP), 0x78: ('SEI', IMP),

    0x85: ('STA', ZP), 0x95: ('STA', ZPX), 0x8d: ('STA', ABS), 0x9d: ('STA', ABX),
    0x99: ('STA', ABY), 0x81: ('STA', IZX), 0x91: ('STA', IZY),

    0x86: ('STX', ZP), 0x96: ('STX', ZPY), 0x8e: ('STX', ABS),
    0x84: ('STY', ZP), 0x94: ('STY', ZPX), 0x8c: ('STY', ABS),

    0xaa: ('TAX', IMP), 0xa8: ('TAY', IMP), 0xba: ('TSX', IMP), 0x8a: ('TXA', IMP),
    0x9a: ('TXS', IMP), 0x98: ('TYA', IMP),
}

# flag tested by each branch, and the flag state that takes the branch
BRANCHES = {
    'BCC': (FC, False), 'BCS': (FC, True), 'BNE': (FZ, False), 'BEQ': (FZ, True),
    'BPL': (FN, False), 'BMI': (FN, True), 'BVC': (FV, False), 'BVS': (FV, True),
}


class Cpu6502Emulator:
    def __init__(self):
        self.memory = bytearray(0x10000)     # 64K memory
        self.mem_usage = bytearray(0x10000)  # monitor a program's memory r/w usage
        self.a = 0                           # accumulator (byte)
        self.x = 0                           # x register (byte)
        self.y = 0                           # y register (byte)
        self.flags = FU                      # processor flags (byte)
        self.sp = 0xff                       # stack pointer (byte)
        self.pc = 0                          # program counter (16-bit)
        self.instructions = 0                # instructions executed since init_cpu()
        self.last_instruction = None         # last opcode processed
        self.exit_on_empty_stack = False     # True = RTI/RTS exits on empty stack
        self.debug = False

        self._dispatch = {}
        for opcode, (mnemonic, mode) in OPCODES.items():
            if mnemonic in BRANCHES:
                handler = self.branch
            else:
                handler = getattr(self, 'op_' + mnemonic)
            self._dispatch[opcode] = (mnemonic, handler, mode)

    def get_mem(self, loc):
        return self.memory[loc]

    def set_mem(self, loc, val):
        if not (0 <= val <= 255):
            raise SidXPortValueError("Error: POKE(%d),%d out of range" % (loc, val))
        self.memory[loc] = val

    def fetch(self):
        val = self.get_mem(self.pc)
        self.pc = (self.pc + 1) & 0xffff
        return val

    def push(self, data):
        self.set_mem(0x100 + self.sp, data)
        self.sp = (self.sp - 1) & 0xff  # this will wrap -1 to 255, as it should

    def pop(self):
        # If popping from an empty stack (sp == $FF), this must wrap to 0
        # http://forum.6502.org/viewtopic.php?f=8&t=1446
        self.sp = (self.sp + 1) & 0xff
        return self.get_mem(0x100 + self.sp)

    def operand_address(self, mode):
        """
        Resolve the effective address for an addressing mode and step the PC
        past the operand bytes

        :param mode: addressing mode
        :type mode: str
        :return: effective address, or None for implied/accumulator modes
        :rtype: int
        """
        pc = self.pc
        if mode in (IMP, ACC):
            return None

        if mode == IMM:
            addr = pc
        elif mode == ZP:
            addr = self.get_mem(pc)
        elif mode == ZPX:
            addr = (self.get_mem(pc) + self.x) & 0xff
        elif mode == ZPY:
            addr = (self.get_mem(pc) + self.y) & 0xff
        elif mode == ABS:
            addr = self.get_le_word(pc)
        elif mode == ABX:
            addr = (self.get_le_word(pc) + self.x) & 0xffff
        elif mode == ABY:
            addr = (self.get_le_word(pc) + self.y) & 0xffff
        elif mode == IND:
            # NMOS bug: the pointer's high byte never carries into the next page
            ptr = self.get_le_word(pc)
            addr = self.get_mem(ptr) | (self.get_mem((ptr & 0xff00) | ((ptr + 1) & 0xff)) << 8)
        elif mode == IZX:
            zp = (self.get_mem(pc) + self.x) & 0xff
            addr = self.get_mem(zp) | (self.get_mem((zp + 1) & 0xff) << 8)
        elif mode == IZY:
            zp = self.get_mem(pc)
            addr = ((self.get_mem(zp) | (self.get_mem((zp + 1) & 0xff) << 8)) + self.y) & 0xffff
        elif mode == REL:
            offset = self.get_mem(pc)
            if offset >= 0x80:
                offset -= 0x100
            addr = (pc + 1 + offset) & 0xffff
        else:
            raise SidXPortValueError("Error: unknown addressing mode %s" % mode)

        self.pc = (pc + OPERAND_LENGTH[mode]) & 0xffff
        return addr

    def set_flag(self, flag, on):
        if on:
            self.flags |= flag
        else:
            self.flags &= ~flag & 0xff

    def set_flags(self, a_byte):
        """
        Set N and Z from a register value (i.e., a,x,y)
        """
        self.set_flag(FZ, a_byte == 0)
        self.set_flag(FN, a_byte & FN)

    def read_operand(self, mode, addr):
        if mode == ACC:
            return self.a
        return self.get_mem(addr)

    def write_operand(self, mode, addr, val):
        if mode == ACC:
            self.a = val
        else:
            self.set_mem(addr, val)

    def add_with_carry(self, data):
        carry = self.flags & FC
        if self.flags & FD:
            lo = (self.a & 0x0f) + (data & 0x0f) + carry
            if lo > 0x09:
                lo += 0x06
            hi = (self.a >> 4) + (data >> 4) + (1 if lo > 0x0f else 0)
            # NMOS: Z comes from the binary sum, N and V from the partial BCD sum
            self.set_flag(FZ, ((self.a + data + carry) & 0xff) == 0)
            self.set_flag(FN, hi & 0x08)
            self.set_flag(FV, ((hi << 4) ^ self.a) & 0x80 and not ((self.a ^ data) & 0x80))
            if hi > 0x09:
                hi += 0x06
            self.set_flag(FC, hi > 0x0f)
            self.a = ((hi << 4) | (lo & 0x0f)) & 0xff
        else:
            result = self.a + data + carry
            self.set_flag(FV, not ((self.a ^ data) & 0x80) and ((self.a ^ result) & 0x80))
            self.set_flag(FC, result > 0xff)
            self.a = result & 0xff
            self.set_flags(self.a)

    def compare(self, reg, data):
        self.set_flag(FC, reg >= data)
        self.set_flags((reg - data) & 0xff)

    def branch(self, mode, addr):
        flag, taken_when = BRANCHES[OPCODES[self.last_instruction][0]]
        if bool(self.flags & flag) == taken_when:
            self.pc = addr

    # Load / store

    def op_LDA(self, mode, addr):
        self.a = self.get_mem(addr)
        self.set_flags(self.a)

    def op_LDX(self, mode, addr):
        self.x = self.get_mem(addr)
        self.set_flags(self.x)

    def op_LDY(self, mode, addr):
        self.y = self.get_mem(addr)
        self.set_flags(self.y)

    def op_STA(self, mode, addr):
        self.set_mem(addr, self.a)

    def op_STX(self, mode, addr):
        self.set_mem(addr, self.x)

    def op_STY(self, mode, addr):
        self.set_mem(addr, self.y)

    # Arithmetic and logic

    def op_ADC(self, mode, addr):
        self.add_with_carry(self.get_mem(addr))

    def op_SBC(self, mode, addr):
        data = self.get_mem(addr)
        if not self.flags & FD:
            self.add_with_carry(data ^ 0xff)
            return

        borrow = 1 - (self.flags & FC)
        binary = self.a - data - borrow
        lo = (self.a & 0x0f) - (data & 0x0f) - borrow
        hi = (self.a >> 4) - (data >> 4)
        if lo < 0:
            lo -= 0x06
            hi -= 1
        if hi < 0:
            hi -= 0x06
        # NMOS: all flags come from the binary difference
        self.set_flag(FC, binary >= 0)
        self.set_flag(FV, ((self.a ^ binary) & 0x80) and ((self.a ^ data) & 0x80))
        self.set_flags(binary & 0xff)
        self.a = ((hi << 4) | (lo & 0x0f)) & 0xff

    def op_AND(self, mode, addr):
        self.a &= self.get_mem(addr)
        self.set_flags(self.a)

    def op_ORA(self, mode, addr):
        self.a |= self.get_mem(addr)
        self.set_flags(self.a)

    def op_EOR(self, mode, addr):
        self.a ^= self.get_mem(addr)
        self.set_flags(self.a)

    def op_BIT(self, mode, addr):
        data = self.get_mem(addr)
        self.flags = (self.flags & ~(FN | FV) & 0xff) | (data & (FN | FV))
        self.set_flag(FZ, (data & self.a) == 0)

    def op_CMP(self, mode, addr):
        self.compare(self.a, self.get_mem(addr))

    def op_CPX(self, mode, addr):
        self.compare(self.x, self.get_mem(addr))

    def op_CPY(self, mode, addr):
        self.compare(self.y, self.get_mem(addr))

    # Shifts and rotates (memory or accumulator)

    def op_ASL(self, mode, addr):
        val = self.read_operand(mode, addr)
        self.set_flag(FC, val & 0x80)
        val = (val << 1) & 0xff
        self.write_operand(mode, addr, val)
        self.set_flags(val)

    def op_LSR(self, mode, addr):
        val = self.read_operand(mode, addr)
        self.set_flag(FC, val & 0x01)
        val >>= 1
        self.write_operand(mode, addr, val)
        self.set_flags(val)

    def op_ROL(self, mode, addr):
        val = self.read_operand(mode, addr)
        carry = self.flags & FC
        self.set_flag(FC, val & 0x80)
        val = ((val << 1) | carry) & 0xff
        self.write_operand(mode, addr, val)
        self.set_flags(val)

    def op_ROR(self, mode, addr):
        val = self.read_operand(mode, addr)
        carry = self.flags & FC
        self.set_flag(FC, val & 0x01)
        val = (val >> 1) | (carry << 7)
        self.write_operand(mode, addr, val)
        self.set_flags(val)

    # Increments and decrements

    def op_INC(self, mode, addr):
        val = (self.get_mem(addr) + 1) & 0xff
        self.set_mem(addr, val)
        self.set_flags(val)

    def op_DEC(self, mode, addr):
        val = (self.get_mem(addr) - 1) & 0xff
        self.set_mem(addr, val)
        self.set_flags(val)

    def op_INX(self, mode, addr):
        self.x = (self.x + 1) & 0xff
        self.set_flags(self.x)

    def op_INY(self, mode, addr):
        self.y = (self.y + 1) & 0xff
        self.set_flags(self.y)

    def op_DEX(self, mode, addr):
        self.x = (self.x - 1) & 0xff
        self.set_flags(self.x)

    def op_DEY(self, mode, addr):
        self.y = (self.y - 1) & 0xff
        self.set_flags(self.y)

    # Register transfers

    def op_TAX(self, mode, addr):
        self.x = self.a
        self.set_flags(self.x)

    def op_TAY(self, mode, addr):
        self.y = self.a
        self.set_flags(self.y)

    def op_TXA(self, mode, addr):
        self.a = self.x
        self.set_flags(self.a)

    def op_TYA(self, mode, addr):
        self.a = self.y
        self.set_flags(self.a)

    def op_TSX(self, mode, addr):
        self.x = self.sp
        self.set_flags(self.x)

    def op_TXS(self, mode, addr):
        self.sp = self.x  # the only transfer that leaves the flags alone

    # Stack

    def op_PHA(self, mode, addr):
        self.push(self.a)

    def op_PHP(self, mode, addr):
        self.push(self.flags | FB | FU)

    def op_PLA(self, mode, addr):
        self.a = self.pop()
        self.set_flags(self.a)

    def op_PLP(self, mode, addr):
        self.flags = (self.pop() & ~FB & 0xff) | FU

    # Flags

    def op_CLC(self, mode, addr):
        self.set_flag(FC, False)

    def op_CLD(self, mode, addr):
        self.set_flag(FD, False)

    def op_CLI(self, mode, addr):
        self.set_flag(FI, False)

    def op_CLV(self, mode, addr):
        self.set_flag(FV, False)

    def op_SEC(self, mode, addr):
        self.set_flag(FC, True)

    def op_SED(self, mode, addr):
        self.set_flag(FD, True)

    def op_SEI(self, mode, addr):
        self.set_flag(FI, True)

    def op_NOP(self, mode, addr):
        pass

    # Control flow.  Returning False ends the runcpu() loop.

    def op_JMP(self, mode, addr):
        self.pc = addr

    def op_JSR(self, mode, addr):
        return_addr = (self.pc - 1) & 0xffff  # last byte of the JSR instruction
        self.push(return_addr >> 8)
        self.push(return_addr & 0xff)
        self.pc = addr

    def op_RTS(self, mode, addr):
        if self.exit_on_empty_stack and (self.sp >= 0xfe or self.sp <= STACK_WRAP_AREA):
            return False
        self.pc = self.pop()
        self.pc |= self.pop() << 8
        self.pc = (self.pc + 1) & 0xffff

    def op_RTI(self, mode, addr):
        if self.exit_on_empty_stack and (self.sp >= 0xfd or self.sp <= STACK_WRAP_AREA):
            return False
        self.flags = (self.pop() & ~FB & 0xff) | FU
        self.pc = self.pop()
        self.pc |= self.pop() << 8

    def op_BRK(self, mode, addr):
        self.pc = (self.pc + 1) & 0xffff  # BRK is a 2-byte opcode (2nd byte is padding)
        self.push(self.pc >> 8)
        self.push(self.pc & 0xff)
        self.push(self.flags | FB | FU)
        self.flags |= FI
        self.pc = self.get_le_word(IRQ)
        return False

    def init_cpu(self, newpc, newa=0, newx=0, newy=0, flags=FU):
        self.pc = newpc
        self.a = newa
        self.x = newx
        self.y = newy
        self.flags = flags
        self.sp = 0xff
        self.instructions = 0

    def runcpu(self):
        """
        Execute one instruction

        :return: 0 if execution ended (BRK, or RTS/RTI on an empty stack), else 1
        :rtype: int
        """
        if self.debug:
            print("{:08d},PC=${:04x},A=${:02x},X=${:02x},Y=${:02x},SP=${:02x},P=%{:08b}"
                  .format(self.instructions, self.pc, self.a, self.x, self.y, self.sp, self.flags))

        instruction = self.fetch()
        self.last_instruction = instruction
        self.instructions += 1

        if instruction not in self._dispatch:
            raise SidXPortNotImplemented("Error: unknown/unimplemented opcode %s at %s"
                                         % (hex(instruction), hex((self.pc - 1) & 0xffff)))

        _, handler, mode = self._dispatch[instruction]
        addr = self.operand_address(mode)
        if handler(mode, addr) is False:
            return 0
        return 1

    def get_le_word(self, mem_loc):
        """
        Get a little-endian 16-bit value from a given memory loc

        :param mem_loc: location from which to retreive 16-bit value
        :type mem_loc: int
        :return: 16-bit le value at mem_loc
        :rtype: int
        """
        return self.get_mem(mem_loc) | (self.get_mem((mem_loc + 1) & 0xffff) << 8)

    def set_le_word(self, mem_loc, word):
        """
        Set a little-endian 16-bit value at the given memory loc

        :param mem_loc: location at which to set 16-bit value
        :type mem_loc: int
        :param word: value to store in memory
        :type word: int
        """
        if not 0 <= word <= 65535:
            raise SidXPortValueError('Error: word value "%s" out of range' % word)
        self.set_mem(mem_loc, word & 0xff)
        self.set_mem((mem_loc + 1) & 0xffff, word >> 8)

    def inject_bytes(self, mem_loc, bytes):
        """
        Puts bytes directly into RAM (pays no attention to banking)

        :param mem_loc: starting memory location
        :type mem_loc: int
        :param bytes: bytes to inject into RAM
        :type bytes: bytes
        """
        if mem_loc + len(bytes) > 0x10000:
            raise SidXPortValueError("Error: data continues past end of memory")
        self.memory[mem_loc:mem_loc + len(bytes)] = bytes

    def clear_memory_usage(self):
        """
        Clears the R/W memory usage tracking.
        Useful for removing the records of memory setup actions before a program starts
        running.
        """
        self.mem_usage = bytearray(0x10000)
