import argparse
import logging
import os
import sys
from pathlib import Path

from chip8.cpu import TIMER_FREQUENCY, MachineConfig, Quirks, initialize
from chip8.errors import Fault, InvalidOpcode
from chip8.memory import PROGRAM_START_ADDRESS, ETI660_START_ADDRESS
from chip8.frontend import SCALE, Beeper, Screen, translate_key
import pygame

logger = logging.getLogger(__name__)

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
DEFAULT_SPEED = 600     # instructions per second


# ******************** UTILITIES SECTION
def load_rom(path):
    return Path(path).read_bytes()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 emulator")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--speed", type=int, default=DEFAULT_SPEED, help="instructions per second")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in screen pixels of one CHIP-8 pixel")
    parser.add_argument("--load-address", type=lambda s: int(s, 0), default=PROGRAM_START_ADDRESS,
                        help="address the rom is loaded at, e.g. 0x200")
    parser.add_argument("--eti660", action="store_true", help=f"load the rom at 0x{ETI660_START_ADDRESS:03x}")
    parser.add_argument("--seed", type=int, default=None, help="seed for the RND instruction")
    parser.add_argument("--tolerant", action="store_true", help="log and skip invalid opcodes instead of stopping")
    parser.add_argument("--step", action="store_true", help="execute one instruction per SPACE press")
    presets = parser.add_mutually_exclusive_group()
    presets.add_argument("--vip", action="store_true", help="COSMAC VIP quirks")
    presets.add_argument("--schip", action="store_true", help="SUPER-CHIP quirks")
    quirks = parser.add_argument_group("quirks")
    quirks.add_argument("--shift-uses-vy", action="store_true", help="8xy6/8xyE shift Vy into Vx")
    quirks.add_argument("--load-store-increments-i", action="store_true", help="Fx55/Fx65 advance I")
    quirks.add_argument("--jump-uses-vx", action="store_true", help="Bxnn jumps to xnn + Vx")
    quirks.add_argument("--add-to-i-sets-vf", action="store_true", help="Fx1E sets VF on overflow")
    quirks.add_argument("--logic-resets-vf", action="store_true", help="8xy1/8xy2/8xy3 reset VF")
    args = parser.parse_args(argv)
    if args.speed < TIMER_FREQUENCY:
        parser.error(f"--speed must be at least {TIMER_FREQUENCY}")
    return args


def build_quirks(args):
    if args.vip:
        base = Quirks.cosmac_vip()
    elif args.schip:
        base = Quirks.super_chip()
    else:
        base = Quirks()
    return Quirks(
        shift_uses_vy=base.shift_uses_vy or args.shift_uses_vy,
        load_store_increments_i=base.load_store_increments_i or args.load_store_increments_i,
        jump_bnnn_uses_vx_as_xnn=base.jump_bnnn_uses_vx_as_xnn or args.jump_uses_vx,
        add_to_i_sets_vf=base.add_to_i_sets_vf or args.add_to_i_sets_vf,
        logic_resets_vf=base.logic_resets_vf or args.logic_resets_vf,
    )


def build_config(args, program):
    return MachineConfig(
        program_bytes=program,
        load_address=ETI660_START_ADDRESS if args.eti660 else args.load_address,
        quirks=build_quirks(args),
        seed=args.seed,
    )


# ******************** HOST SECTION
class Emulator:
    """drives a machine at a fixed instruction rate with 60Hz timers, one frame per timer tick"""

    def __init__(self, chip, screen, beeper, speed=DEFAULT_SPEED, tolerant=False, step_mode=False):
        self.chip = chip
        self.screen = screen
        self.beeper = beeper
        self.steps_per_frame = speed // TIMER_FREQUENCY
        self.tolerant = tolerant
        self.step_mode = step_mode
        self.running = True
        self.fault = None

    def handle_event(self, event):
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type in (pygame.KEYDOWN, pygame.KEYUP):
            pressed = event.type == pygame.KEYDOWN
            if pressed and event.key == pygame.K_ESCAPE:
                self.running = False
            elif pressed and event.key == pygame.K_BACKSPACE:
                logger.info("reset")
                self.chip.reset()
            elif pressed and event.key == pygame.K_SPACE and self.step_mode:
                self.execute(1)
                self.chip.tick_timers()
            else:
                key = translate_key(event.key)
                if key is not None:
                    self.chip.set_key(key, pressed)     # register keypress

    def execute(self, count):
        """run count steps, return False once a fault has ended the session"""
        for _ in range(count):
            try:
                self.chip.step()
            except InvalidOpcode as e:
                if not self.tolerant:
                    self.halt(e)
                    return False
                logger.warning("%s, skipped", e)
            except Fault as e:
                self.halt(e)
                return False
        return True

    def halt(self, fault):
        logger.error("%s", fault)
        self.running = False
        self.fault = fault

    def frame(self):
        for event in pygame.event.get():
            self.handle_event(event)
        if self.running and not self.step_mode:
            self.execute(self.steps_per_frame)
            self.chip.tick_timers()
        if self.chip.draw:
            self.screen.render(self.chip.display_snapshot())
            self.chip.draw = False
        self.beeper.update(self.chip.sound_active())

    def run(self):
        clock = pygame.time.Clock()
        self.screen.render(self.chip.display_snapshot())
        while self.running:
            clock.tick(TIMER_FREQUENCY)
            self.frame()
        self.beeper.update(False)
        return self.fault


# ******************** ENTRY POINT SECTION
def main(argv=None):
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    args = parse_args(argv)
    rom_path = Path(args.file)
    try:
        config = build_config(args, load_rom(rom_path))
        chip = initialize(config)
    except OSError as e:
        sys.exit(f"cannot read rom: {e}")
    except Fault as e:
        sys.exit(f"cannot load rom: {e}")
    pygame.init()
    try:
        emulator = Emulator(
            chip,
            Screen(title=rom_path.name, s=args.scale),
            Beeper.open(),
            speed=args.speed,
            tolerant=args.tolerant,
            step_mode=args.step,
        )
        fault = emulator.run()
    finally:
        pygame.quit()
    if fault is not None:
        sys.exit(f"********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE\n{chip}")


if __name__ == "__main__":
    main()
