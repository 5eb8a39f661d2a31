# CHIP-8 INFO
# http://devernay.free.fr/hacks/chip8/C8TECH10.HTM
# https://chip-8.github.io/extensions/#chip-8
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite

import logging
import random
from collections import namedtuple
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Optional

from chip8.errors import InvalidOpcode
from chip8.memory import Memory, Stack, PROGRAM_START_ADDRESS, font_address
from chip8.peripherals import DisplayBuffer, Keypad

logger = logging.getLogger(__name__)

TIMER_FREQUENCY = 60    # Hz, independent from the instruction rate
REGISTER_COUNT = 16
FLAG = 0xF

# masks selecting the bits that identify an instruction inside each family,
# families not listed here are identified by their high nibble alone
FAMILY_MASKS = {
    0x0: 0xFFFF,
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF,
}

# fields of an opcode, nibbles n1 n2 n3 n4:
#   x = n2, y = n3, n = n4, kk = n3 n4, nnn = n2 n3 n4
Instruction = namedtuple("Instruction", ["opcode", "x", "y", "n", "kk", "nnn"])


def split(opcode: int) -> Instruction:
    return Instruction(
        opcode=opcode,
        x=(opcode & 0x0F00) >> 8,
        y=(opcode & 0x00F0) >> 4,
        n=opcode & 0x000F,
        kk=opcode & 0x00FF,
        nnn=opcode & 0x0FFF,
    )


# ******************** CONFIGURATION SECTION
@dataclass(frozen=True)
class Quirks:
    """behaviours that differ between historical interpreters, defaults follow Cowgod's reference"""
    shift_uses_vy: bool = False
    load_store_increments_i: bool = False
    jump_bnnn_uses_vx_as_xnn: bool = False
    add_to_i_sets_vf: bool = False
    logic_resets_vf: bool = False

    @classmethod
    def cosmac_vip(cls):
        return cls(shift_uses_vy=True, load_store_increments_i=True, logic_resets_vf=True)

    @classmethod
    def super_chip(cls):
        return cls(jump_bnnn_uses_vx_as_xnn=True)


@dataclass(frozen=True)
class MachineConfig:
    program_bytes: bytes = b""
    load_address: int = PROGRAM_START_ADDRESS
    quirks: Quirks = field(default_factory=Quirks)
    seed: Optional[int] = None     # seeds the generator used by RND


class Mode(Enum):
    RUNNING = "running"
    BLOCKED_ON_KEY = "blocked on key"


# ******************** UTILITIES SECTION
def asm(msg):
    """decorator to log the ASM of the instruction being executed"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(self, ins):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("0x%04x    %s", self.current_address, msg.format(**ins._asdict()))
            fn(self, ins)
        return wrapper_fn
    return decorator


# ******************** CPU SECTION
class Chip8:
    def __init__(self, config: Optional[MachineConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or MachineConfig()
        self.quirks = self.config.quirks
        self.rng = rng or random.Random(self.config.seed)
        self.keypad = Keypad()
        self.instructions = {
            0x00E0: self._clear_screen,
            0x00EE: self._return,
            0x1000: self._jump,
            0x2000: self._call_addr,
            0x3000: self._skip_if_eq,
            0x4000: self._skip_if_not_eq,
            0x5000: self._skip_if_eq_regs,
            0x6000: self._set_vk,
            0x7000: self._add_to_vk,
            0x8000: self._set_vx_to_vy,
            0x8001: self._set_vx_or_vy,
            0x8002: self._set_vx_and_vy,
            0x8003: self._set_vx_xor_vy,
            0x8004: self._add_vx_vy,
            0x8005: self._sub_vx_vy,
            0x8006: self._shr,
            0x8007: self._subn_vx_vy,
            0x800E: self._shl,
            0x9000: self._skip_if_not_eq_regs,
            0xA000: self._set_idx,
            0xB000: self._jump_plus,
            0xC000: self._random_byte_and,
            0xD000: self._to_screen,
            0xE09E: self._skip_if_pressed,
            0xE0A1: self._skip_if_not_pressed,
            0xF007: self._set_vx_dt,
            0xF00A: self._wait_keypress,
            0xF015: self._set_dt_vx,
            0xF018: self._set_st,
            0xF01E: self._add_to_idx,
            0xF029: self._select_char,
            0xF033: self._bcd_repr,
            0xF055: self._store_vregs,
            0xF065: self._load_vregs,
        }
        self.reset()

    def reset(self):
        """bring the machine back to its power-on state with the program loaded"""
        self.mem = Memory()
        self.mem.load_program(self.config.program_bytes, self.config.load_address)
        self.stack = Stack()
        self.display = DisplayBuffer()
        self.v_regs = [0] * REGISTER_COUNT
        self.pc = self.config.load_address
        self.current_address = self.pc
        self.idx = 0    # points at sprites and at the BCD/load/store area
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, beeps when non-zero
        self.mode = Mode.RUNNING
        self.key_register = None
        self.draw = False   # set when the frame changed, the host clears it after rendering
        self.keypad.forget_presses()
        if self.config.seed is not None:
            self.rng.seed(self.config.seed)

    def __str__(self):
        registers = " ".join(f"V{i:X}:0x{v:02x}" for i, v in enumerate(self.v_regs))
        return (
            f"PC:0x{self.pc:04x} | I:0x{self.idx:04x} | DT:{self.dt} | ST:{self.st} | MODE:{self.mode.value}\n"
            f"REGISTERS: {registers}\n"
            f"STACK: {self.stack!r}\n"
            f"KEYPAD: {self.keypad}"
        )

    # ********** read-only views for hosts
    @property
    def v(self):
        return tuple(self.v_regs)

    @property
    def index(self):
        return self.idx

    @property
    def delay_timer(self):
        return self.dt

    @property
    def sound_timer(self):
        return self.st

    @property
    def stack_depth(self):
        return len(self.stack)

    # ********** host entry points
    def step(self):
        """execute one instruction, or look for a key press while blocked on Fx0A"""
        if self.mode is Mode.BLOCKED_ON_KEY:
            self._poll_keypress()
            return
        # fetch (each instruction is two bytes long, big-endian)
        self.current_address = self.pc
        opcode = self.mem[self.pc] << 8 | self.mem[self.pc + 1]
        self._goto_next_instruction()
        # decode + execute
        instruction = self.decode(opcode)
        instruction(split(opcode))

    def tick_timers(self):
        """called by the host at 60Hz, never from step()"""
        if self.dt > 0:
            self.dt -= 1
        if self.st > 0:
            self.st -= 1

    def display_snapshot(self):
        return self.display.snapshot()

    def set_key(self, index: int, pressed: bool):
        self.keypad[index] = pressed

    def sound_active(self) -> bool:
        return self.st > 0

    def decode(self, opcode: int):
        """select the handler for opcode using the mask of its family"""
        mask = FAMILY_MASKS.get(opcode >> 12, 0xF000)
        try:
            return self.instructions[opcode & mask]
        except KeyError:
            raise InvalidOpcode(opcode, self.current_address) from None

    def _goto_next_instruction(self):
        self.pc += 0x2

    def _poll_keypress(self):
        if self.keypad.untouched():
            return
        key = self.keypad.first()
        self.v_regs[self.key_register] = key
        logger.debug("key 0x%x released V%X from its wait", key, self.key_register)
        self.mode = Mode.RUNNING
        self.key_register = None

    # ********** 0x0 / 0x1 / 0x2 / 0xB: flow
    @asm("CLS")
    def _clear_screen(self, ins):
        self.display.clear()
        self.draw = True

    @asm("RET")
    def _return(self, ins):
        self.pc = self.stack.pop()

    @asm("JP 0x{nnn:03x}")
    def _jump(self, ins):
        self.pc = ins.nnn

    @asm("CALL 0x{nnn:03x}")
    def _call_addr(self, ins):
        self.stack.append(self.pc)
        self.pc = ins.nnn

    @asm("JP V0, 0x{nnn:03x}")
    def _jump_plus(self, ins):
        if self.quirks.jump_bnnn_uses_vx_as_xnn:
            self.pc = ins.nnn + self.v_regs[ins.x]     # Bxnn
        else:
            self.pc = ins.nnn + self.v_regs[0x0]

    # ********** 0x3 / 0x4 / 0x5 / 0x9: conditional skips
    @asm("SE V{x:X}, 0x{kk:02x}")
    def _skip_if_eq(self, ins):
        if self.v_regs[ins.x] == ins.kk:
            self._goto_next_instruction()

    @asm("SNE V{x:X}, 0x{kk:02x}")
    def _skip_if_not_eq(self, ins):
        if self.v_regs[ins.x] != ins.kk:
            self._goto_next_instruction()

    @asm("SE V{x:X}, V{y:X}")
    def _skip_if_eq_regs(self, ins):
        if self.v_regs[ins.x] == self.v_regs[ins.y]:
            self._goto_next_instruction()

    @asm("SNE V{x:X}, V{y:X}")
    def _skip_if_not_eq_regs(self, ins):
        if self.v_regs[ins.x] != self.v_regs[ins.y]:
            self._goto_next_instruction()

    # ********** 0x6 / 0x7: immediates
    @asm("LD V{x:X}, 0x{kk:02x}")
    def _set_vk(self, ins):
        self.v_regs[ins.x] = ins.kk

    @asm("ADD V{x:X}, 0x{kk:02x}")
    def _add_to_vk(self, ins):
        self.v_regs[ins.x] = (self.v_regs[ins.x] + ins.kk) & 0xFF   # VF untouched

    # ********** 0x8: register ALU, VF is always the last register written
    @asm("LD V{x:X}, V{y:X}")
    def _set_vx_to_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.y]

    @asm("OR V{x:X}, V{y:X}")
    def _set_vx_or_vy(self, ins):
        self.v_regs[ins.x] |= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG] = 0

    @asm("AND V{x:X}, V{y:X}")
    def _set_vx_and_vy(self, ins):
        self.v_regs[ins.x] &= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG] = 0

    @asm("XOR V{x:X}, V{y:X}")
    def _set_vx_xor_vy(self, ins):
        self.v_regs[ins.x] ^= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG] = 0

    @asm("ADD V{x:X}, V{y:X}")
    def _add_vx_vy(self, ins):
        total = self.v_regs[ins.x] + self.v_regs[ins.y]
        self.v_regs[ins.x] = total & 0xFF
        self.v_regs[FLAG] = 1 if total > 0xFF else 0

    @asm("SUB V{x:X}, V{y:X}")
    def _sub_vx_vy(self, ins):
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = (vx - vy) & 0xFF
        self.v_regs[FLAG] = 1 if vx >= vy else 0     # NOT borrow

    @asm("SUBN V{x:X}, V{y:X}")
    def _subn_vx_vy(self, ins):
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = (vy - vx) & 0xFF
        self.v_regs[FLAG] = 1 if vy >= vx else 0

    @asm("SHR V{x:X}, V{y:X}")
    def _shr(self, ins):
        source = self.v_regs[ins.y] if self.quirks.shift_uses_vy else self.v_regs[ins.x]
        self.v_regs[ins.x] = source >> 1
        self.v_regs[FLAG] = source & 0x1

    @asm("SHL V{x:X}, V{y:X}")
    def _shl(self, ins):
        source = self.v_regs[ins.y] if self.quirks.shift_uses_vy else self.v_regs[ins.x]
        self.v_regs[ins.x] = (source << 1) & 0xFF
        self.v_regs[FLAG] = (source & 0x80) >> 7

    # ********** 0xA / 0xC / 0xD
    @asm("LD I, 0x{nnn:03x}")
    def _set_idx(self, ins):
        self.idx = ins.nnn

    @asm("RND V{x:X}, 0x{kk:02x}")
    def _random_byte_and(self, ins):
        self.v_regs[ins.x] = self.rng.randint(0, 0xFF) & ins.kk

    @asm("DRW V{x:X}, V{y:X}, {n}")
    def _to_screen(self, ins):
        """XOR an n-byte sprite read from I onto the frame at (Vx, Vy), VF = collision"""
        origin_x = self.v_regs[ins.x] % self.display.w
        origin_y = self.v_regs[ins.y] % self.display.h
        collision = 0
        for row in range(ins.n):
            sprite_byte = self.mem[self.idx + row]
            for col in range(8):
                if sprite_byte & (0x80 >> col) and self.display.flip_pixel(origin_x + col, origin_y + row):
                    collision = 1
        self.v_regs[FLAG] = collision
        self.draw = True

    # ********** 0xE: keypad
    @asm("SKP V{x:X}")
    def _skip_if_pressed(self, ins):
        if self.keypad[self.v_regs[ins.x]]:
            self._goto_next_instruction()

    @asm("SKNP V{x:X}")
    def _skip_if_not_pressed(self, ins):
        if not self.keypad[self.v_regs[ins.x]]:
            self._goto_next_instruction()

    # ********** 0xF: timers, keypad wait, index and memory
    @asm("LD V{x:X}, DT")
    def _set_vx_dt(self, ins):
        self.v_regs[ins.x] = self.dt

    @asm("LD V{x:X}, K")
    def _wait_keypress(self, ins):
        """suspend execution until a key goes down, step() then stores it in Vx"""
        self.keypad.forget_presses()
        self.mode = Mode.BLOCKED_ON_KEY
        self.key_register = ins.x

    @asm("LD DT, V{x:X}")
    def _set_dt_vx(self, ins):
        self.dt = self.v_regs[ins.x]

    @asm("LD ST, V{x:X}")
    def _set_st(self, ins):
        self.st = self.v_regs[ins.x]

    @asm("ADD I, V{x:X}")
    def _add_to_idx(self, ins):
        total = self.idx + self.v_regs[ins.x]
        self.idx = total & 0xFFFF
        if self.quirks.add_to_i_sets_vf:
            self.v_regs[FLAG] = 1 if total > 0x0FFF else 0

    @asm("LD F, V{x:X}")
    def _select_char(self, ins):
        self.idx = font_address(self.v_regs[ins.x])

    @asm("LD B, V{x:X}")
    def _bcd_repr(self, ins):
        """hundreds digit of Vx at I, tens at I+1, ones at I+2"""
        value = self.v_regs[ins.x]
        self.mem.check_range(self.idx, 3)
        self.mem[self.idx] = value // 100
        self.mem[self.idx + 1] = value // 10 % 10
        self.mem[self.idx + 2] = value % 10

    @asm("LD [I], V{x:X}")
    def _store_vregs(self, ins):
        self.mem.check_range(self.idx, ins.x + 1)
        for offset in range(ins.x + 1):
            self.mem[self.idx + offset] = self.v_regs[offset]
        if self.quirks.load_store_increments_i:
            self.idx = (self.idx + ins.x + 1) & 0xFFFF

    @asm("LD V{x:X}, [I]")
    def _load_vregs(self, ins):
        self.mem.check_range(self.idx, ins.x + 1)
        for offset in range(ins.x + 1):
            self.v_regs[offset] = self.mem[self.idx + offset]
        if self.quirks.load_store_increments_i:
            self.idx = (self.idx + ins.x + 1) & 0xFFFF


def initialize(config: MachineConfig) -> Chip8:
    """build a machine with fonts and program loaded, ready for step()"""
    chip = Chip8(config)
    logger.info(
        "machine ready: %d program bytes at 0x%04x, %s",
        len(config.program_bytes), config.load_address, config.quirks,
    )
    return chip
