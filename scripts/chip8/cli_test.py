import os
import tempfile
import unittest

from chip8.cli import Emulator, build_config, load_rom, parse_args
from chip8.cpu import Chip8, MachineConfig, Quirks
from chip8.errors import InvalidOpcode, StackUnderflow
import pygame


class FakeScreen:
    def __init__(self):
        self.frames = []

    def render(self, snapshot):
        self.frames.append(snapshot)


class FakeBeeper:
    def __init__(self):
        self.calls = []

    def update(self, active):
        self.calls.append(active)


def emulator(*opcodes, **kwargs):
    program = b"".join(op.to_bytes(2, "big") for op in opcodes)
    chip = Chip8(MachineConfig(program_bytes=program))
    return Emulator(chip, FakeScreen(), FakeBeeper(), **kwargs)


class TestArguments(unittest.TestCase):
    def test_defaults(self):
        args = parse_args(["-f", "pong.ch8"])
        config = build_config(args, b"\x00\xe0")
        self.assertEqual(config.load_address, 0x200)
        self.assertEqual(config.quirks, Quirks())
        self.assertEqual(config.program_bytes, b"\x00\xe0")
        self.assertIsNone(config.seed)
        self.assertEqual(args.speed, 600)

    def test_load_address_and_quirks(self):
        args = parse_args(["-f", "pong.ch8", "--load-address", "0x300", "--vip", "--jump-uses-vx", "--seed", "7"])
        config = build_config(args, b"")
        self.assertEqual(config.load_address, 0x300)
        self.assertEqual(config.seed, 7)
        self.assertEqual(config.quirks, Quirks(
            shift_uses_vy=True,
            load_store_increments_i=True,
            jump_bnnn_uses_vx_as_xnn=True,
            logic_resets_vf=True,
        ))

    def test_eti660(self):
        config = build_config(parse_args(["-f", "a.ch8", "--eti660"]), b"")
        self.assertEqual(config.load_address, 0x600)

    def test_rejected_arguments(self):
        for argv in (["--vip"], ["-f", "a.ch8", "--vip", "--schip"], ["-f", "a.ch8", "--speed", "30"]):
            with self.assertRaises(SystemExit):
                parse_args(argv)

    def test_load_rom(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "rom.ch8")
            with open(path, "wb") as f:
                f.write(b"\x12\x00")
            self.assertEqual(load_rom(path), b"\x12\x00")


class TestEmulator(unittest.TestCase):
    def test_steps_per_frame(self):
        self.assertEqual(emulator(speed=600).steps_per_frame, 10)

    def test_invalid_opcode_stops_by_default(self):
        emu = emulator(0xFFFF, 0x6001)
        self.assertFalse(emu.execute(2))
        self.assertFalse(emu.running)
        self.assertIsInstance(emu.fault, InvalidOpcode)
        self.assertEqual(emu.chip.v[0], 0)

    def test_tolerant_skips_invalid_opcode(self):
        emu = emulator(0xFFFF, 0x6001, tolerant=True)
        with self.assertLogs("chip8.cli", level="WARNING"):
            self.assertTrue(emu.execute(2))
        self.assertTrue(emu.running)
        self.assertEqual(emu.chip.v[0], 1)

    def test_fatal_fault_stops_even_when_tolerant(self):
        emu = emulator(0x00EE, tolerant=True)
        self.assertFalse(emu.execute(1))
        self.assertIsInstance(emu.fault, StackUnderflow)

    def test_keys_reach_the_keypad(self):
        emu = emulator()
        emu.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_w))
        self.assertTrue(emu.chip.keypad[0x5])
        emu.handle_event(pygame.event.Event(pygame.KEYUP, key=pygame.K_w))
        self.assertFalse(emu.chip.keypad[0x5])

    def test_escape_and_quit(self):
        emu = emulator()
        emu.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
        self.assertFalse(emu.running)
        emu = emulator()
        emu.handle_event(pygame.event.Event(pygame.QUIT))
        self.assertFalse(emu.running)

    def test_space_steps_in_step_mode(self):
        emu = emulator(0x6005, 0xF015, 0x6101, step_mode=True)
        space = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE)
        emu.handle_event(space)
        emu.handle_event(space)
        self.assertEqual(emu.chip.pc, 0x204)
        self.assertEqual(emu.chip.delay_timer, 4)     # a step is one timer tick
        emu.handle_event(space)
        self.assertEqual(emu.chip.delay_timer, 3)

    def test_backspace_resets(self):
        emu = emulator(0x6005)
        emu.execute(1)
        emu.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_BACKSPACE))
        self.assertEqual(emu.chip.pc, 0x200)
        self.assertEqual(emu.chip.v[0], 0)


if __name__ == "__main__":
    unittest.main()
