import logging

from chip8.errors import AddressOutOfBounds, ProgramTooLarge, StackOverflow, StackUnderflow

logger = logging.getLogger(__name__)

MEMORY_SIZE = 4096
PROGRAM_START_ADDRESS = 0x200
ETI660_START_ADDRESS = 0x600
FONT_START_ADDRESS = 0x050
FONT_GLYPH_SIZE = 5     # each hex digit glyph is 5 rows of 8 pixels
STACK_LIMIT = 16

FONTS = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


def font_address(digit: int) -> int:
    """address of the built-in glyph for the low nibble of digit"""
    return FONT_START_ADDRESS + (digit & 0xF) * FONT_GLYPH_SIZE


# ********** 16 RETURN ADDRESSES AT MOST, NEVER SILENTLY TRUNCATED
class Stack:
    def __init__(self, limit: int = STACK_LIMIT):
        self.limit = limit
        self.addr_list = []

    def __len__(self):
        return len(self.addr_list)

    def __repr__(self):
        return "[" + ", ".join(f"0x{a:04x}" for a in self.addr_list) + "]"

    def append(self, address: int):
        if len(self.addr_list) >= self.limit:
            raise StackOverflow(self.limit)
        self.addr_list.append(address)

    def pop(self) -> int:
        if not self.addr_list:
            raise StackUnderflow()
        return self.addr_list.pop()


# ********** 4KB OF BYTE ADDRESSABLE MEMORY, FONTS PRELOADED
class Memory:
    def __init__(self):
        self.inner = bytearray(MEMORY_SIZE)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS + len(FONTS)] = FONTS

    def __len__(self):
        return MEMORY_SIZE

    def __getitem__(self, address):
        return self.read(address)

    def __setitem__(self, address, value):
        self.write(address, value)

    @staticmethod
    def _check(address: int):
        if not 0 <= address < MEMORY_SIZE:
            raise AddressOutOfBounds(address)

    def check_range(self, address: int, count: int):
        """fail before touching anything if address..address+count-1 is not all addressable"""
        self._check(address)
        self._check(address + count - 1)

    def read(self, address: int) -> int:
        self._check(address)
        return self.inner[address]

    def write(self, address: int, value: int):
        self._check(address)
        self.inner[address] = value & 0xFF

    def load_program(self, program: bytes, at: int = PROGRAM_START_ADDRESS):
        """copy the program bytes into memory starting at address `at`"""
        self._check(at)
        capacity = MEMORY_SIZE - at
        if len(program) > capacity:
            raise ProgramTooLarge(len(program), at, capacity)
        self.inner[at:at + len(program)] = program
        logger.debug("loaded %d bytes at 0x%04x", len(program), at)
