import logging
import os
from array import array

os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame

from chip8.peripherals import SCREEN_WIDTH, SCREEN_HEIGHT

logger = logging.getLogger(__name__)

SCALE = 15
BLUE = pygame.Color(80, 69, 155, 255)
LIGHT_BLUE = pygame.Color(136, 126, 203, 255)
BEEP_FREQUENCY = 440    # Hz
BEEP_VOLUME = 0.2

# COSMAC VIP keypad      modern keyboard
#   1 2 3 C                1 2 3 4
#   4 5 6 D                Q W E R
#   7 8 9 E                A S D F
#   A 0 B F                Z X C V
KEY_MAPPINGS = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}


def translate_key(key):
    """keypad index for a pygame key constant, None for keys outside the layout"""
    return KEY_MAPPINGS.get(key)


def square_wave_samples(rate, bits=-16, frequency=BEEP_FREQUENCY, volume=BEEP_VOLUME):
    """one period of a signed 16-bit square wave, looped by the mixer while the beep is on"""
    period = max(2, int(round(rate / frequency)))
    amplitude = int((2 ** (abs(bits) - 1) - 1) * volume)
    return array("h", [amplitude if t < period / 2 else -amplitude for t in range(period)])


# ******************** I/O SECTION
class Screen:
    def __init__(self, title="CHIP-8", w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        pygame.display.set_caption(title)
        self.surface = pygame.display.set_mode((w * self.scale, h * self.scale))
        self.surface.fill(self.background)

    def render(self, snapshot):
        """paint a display snapshot and make it visible"""
        self.surface.fill(self.background)
        for y, row in enumerate(snapshot):
            for x, lit in enumerate(row):
                if lit:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()


class Beeper:
    """plays the sound-timer tone, stays silent when no audio device is available"""

    def __init__(self, sound=None):
        self.sound = sound
        self.playing = False

    @classmethod
    def open(cls):
        """open the mixer and build the looping tone"""
        try:
            pygame.mixer.init(frequency=44100, size=-16, channels=1)
        except pygame.error as e:
            logger.warning("audio disabled: %s", e)
            return cls()
        rate, bits, channels = pygame.mixer.get_init()
        samples = square_wave_samples(rate, bits)
        if channels > 1:
            samples = array("h", [s for s in samples for _ in range(channels)])
        return cls(pygame.mixer.Sound(buffer=samples.tobytes()))

    def update(self, active):
        """start or stop the tone to follow the sound timer"""
        if self.sound is None or active == self.playing:
            return
        if active:
            self.sound.play(loops=-1)
        else:
            self.sound.stop()
        self.playing = active
