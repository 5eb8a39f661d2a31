"""Faults raised by the CHIP-8 core.

Every fault carries a ``fatal`` flag: the host is expected to end the session
on fatal faults and may choose to log and carry on for the others.
"""


class Fault(Exception):
    fatal = True


class AddressOutOfBounds(Fault):
    def __init__(self, address):
        super().__init__(f"address 0x{address:04x} is outside the 4KB address space")
        self.address = address


class InvalidOpcode(Fault):
    fatal = False

    def __init__(self, opcode, pc):
        super().__init__(f"invalid opcode 0x{opcode:04x} at 0x{pc:04x}")
        self.opcode = opcode
        self.pc = pc


class StackOverflow(Fault):
    def __init__(self, limit):
        super().__init__(f"the CHIP-8 stack can contain at most {limit} addresses. Limit exceeded")
        self.limit = limit


class StackUnderflow(Fault):
    def __init__(self):
        super().__init__("return with an empty stack")


class ProgramTooLarge(Fault):
    fatal = False

    def __init__(self, size, load_address, capacity):
        super().__init__(
            f"program of {size} bytes does not fit at 0x{load_address:04x} "
            f"({capacity} bytes available)"
        )
        self.size = size
        self.load_address = load_address
        self.capacity = capacity
