import unittest

from chip8.frontend import KEY_MAPPINGS, Beeper, square_wave_samples, translate_key
import pygame


class TestKeyMapping(unittest.TestCase):
    def test_cosmac_layout(self):
        self.assertEqual(translate_key(pygame.K_1), 0x1)
        self.assertEqual(translate_key(pygame.K_4), 0xC)
        self.assertEqual(translate_key(pygame.K_x), 0x0)
        self.assertEqual(translate_key(pygame.K_v), 0xF)
        self.assertIsNone(translate_key(pygame.K_ESCAPE))

    def test_every_key_mapped_once(self):
        self.assertEqual(sorted(KEY_MAPPINGS.values()), list(range(16)))


class TestBeep(unittest.TestCase):
    def test_square_wave_period(self):
        samples = square_wave_samples(44100)
        self.assertEqual(len(samples), 100)
        self.assertGreater(samples[0], 0)
        self.assertEqual(samples[0], -samples[-1])
        self.assertEqual(sum(samples), 0)

    def test_square_wave_volume(self):
        loud = square_wave_samples(22050, volume=1.0)
        self.assertEqual(max(loud), 2 ** 15 - 1)


class FakeSound:
    def __init__(self):
        self.calls = []

    def play(self, loops=0):
        self.calls.append(("play", loops))

    def stop(self):
        self.calls.append(("stop",))


class TestBeeper(unittest.TestCase):
    def test_follows_sound_timer(self):
        sound = FakeSound()
        beeper = Beeper(sound)
        beeper.update(False)
        beeper.update(True)
        beeper.update(True)
        beeper.update(False)
        beeper.update(False)
        self.assertEqual(sound.calls, [("play", -1), ("stop",)])
        self.assertFalse(beeper.playing)

    def test_silent_without_audio(self):
        beeper = Beeper()
        beeper.update(True)
        self.assertFalse(beeper.playing)


if __name__ == "__main__":
    unittest.main()
