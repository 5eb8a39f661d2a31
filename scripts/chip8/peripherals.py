SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
KEY_COUNT = 16


# ******************** DISPLAY SECTION
class DisplayBuffer:
    """64x32 monochrome frame, one boolean per pixel stored row after row"""

    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [False] * w * h

    def read_pixel(self, x, y):
        return self.buffer[y * self.w + x]

    def flip_pixel(self, x, y):
        """XOR a lit pixel onto the frame, coordinates wrap on both axes.
        Return True if the pixel was lit before and has now been erased
        """
        pos = (y % self.h) * self.w + (x % self.w)
        was_lit = self.buffer[pos]
        self.buffer[pos] = not was_lit
        return was_lit

    def clear(self):
        self.buffer = [False] * self.w * self.h

    def snapshot(self):
        """read-only copy of the frame as a tuple of rows"""
        return tuple(
            tuple(self.buffer[row * self.w:(row + 1) * self.w])
            for row in range(self.h)
        )

    def __str__(self):
        return "\n".join("".join("#" if lit else "." for lit in row) for row in self.snapshot())


# ******************** KEYPAD SECTION
class Keypad:
    """state of the 16 hex keys plus the queue of fresh presses

    A press is fresh when the key goes from released to pressed, holding a key
    down does not queue it again
    """

    def __init__(self):
        self.state = [False] * KEY_COUNT
        self.pressed_keys = []

    def __getitem__(self, key):
        return self.state[key & 0xF]

    def __setitem__(self, key, pressed):
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"keypad index must be in 0..{KEY_COUNT - 1}, got {key}")
        # at most one pending entry per key, the queue never outgrows the keypad
        if pressed and not self.state[key] and key not in self.pressed_keys:
            self.pressed_keys.append(key)
        self.state[key] = bool(pressed)

    def untouched(self):
        return len(self.pressed_keys) == 0

    def first(self):
        """get first fresh press present in the queue"""
        return self.pressed_keys.pop(0)

    def forget_presses(self):
        self.pressed_keys.clear()

    def __str__(self):
        return " ".join(f"{k:X}:{int(s)}" for k, s in enumerate(self.state))
