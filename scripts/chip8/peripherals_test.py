import unittest

from chip8.peripherals import SCREEN_HEIGHT, SCREEN_WIDTH, DisplayBuffer, Keypad


class TestDisplayBuffer(unittest.TestCase):
    def test_flip_reports_erased_pixels(self):
        display = DisplayBuffer()
        self.assertFalse(display.flip_pixel(3, 4))
        self.assertTrue(display.read_pixel(3, 4))
        self.assertTrue(display.flip_pixel(3, 4))
        self.assertFalse(display.read_pixel(3, 4))

    def test_flip_wraps(self):
        display = DisplayBuffer()
        display.flip_pixel(SCREEN_WIDTH + 1, SCREEN_HEIGHT + 2)
        self.assertTrue(display.read_pixel(1, 2))

    def test_snapshot_is_a_copy(self):
        display = DisplayBuffer()
        before = display.snapshot()
        display.flip_pixel(0, 0)
        self.assertFalse(before[0][0])
        self.assertTrue(display.snapshot()[0][0])
        self.assertEqual(len(before), SCREEN_HEIGHT)
        self.assertEqual(len(before[0]), SCREEN_WIDTH)

    def test_clear(self):
        display = DisplayBuffer()
        display.flip_pixel(10, 10)
        display.clear()
        self.assertNotIn("#", str(display))


class TestKeypad(unittest.TestCase):
    def test_state(self):
        keypad = Keypad()
        keypad[0xA] = True
        self.assertTrue(keypad[0xA])
        self.assertTrue(keypad[0x1A])   # only the low nibble selects a key
        keypad[0xA] = False
        self.assertFalse(keypad[0xA])

    def test_fresh_presses_are_queued_once(self):
        keypad = Keypad()
        self.assertTrue(keypad.untouched())
        keypad[3] = True
        keypad[3] = True
        keypad[1] = True
        self.assertEqual(keypad.first(), 3)
        self.assertEqual(keypad.first(), 1)
        self.assertTrue(keypad.untouched())

    def test_forget_presses_keeps_state(self):
        keypad = Keypad()
        keypad[2] = True
        keypad.forget_presses()
        self.assertTrue(keypad.untouched())
        self.assertTrue(keypad[2])

    def test_queue_holds_one_entry_per_key(self):
        keypad = Keypad()
        for _ in range(100):
            keypad[7] = True
            keypad[7] = False
        self.assertEqual(keypad.pressed_keys, [7])

    def test_index_out_of_range(self):
        with self.assertRaises(ValueError):
            Keypad()[16] = True


if __name__ == "__main__":
    unittest.main()
