import unittest

from src.minify import BASE62_ALPHABET, MinifyOptions, hash_text, minify_key


class TestMinifyKey(unittest.TestCase):
    LONG_TEXT = "The quick brown fox jumps over the lazy dog, again and again."

    def test_short_text_is_kept(self):
        self.assertEqual(minify_key("Hello", 24, "T.", 127), "Hello")
        # exactly at the threshold is still short
        self.assertEqual(minify_key("abcd", 8, "", 4), "abcd")

    def test_zero_length_disables_minification(self):
        self.assertEqual(minify_key(self.LONG_TEXT, 0, "T.", 0), self.LONG_TEXT)

    def test_long_text_gets_prefixed_fixed_width_key(self):
        for length in (1, 8, 12, 24):
            key = minify_key(self.LONG_TEXT, length, "T.", 10)
            self.assertTrue(key.startswith("T."))
            self.assertEqual(len(key), len("T.") + length)
            self.assertTrue(all(ch in BASE62_ALPHABET for ch in key[2:]))

    def test_shorter_keys_are_prefixes_of_longer_ones(self):
        self.assertTrue(minify_key(self.LONG_TEXT, 24, "", 0).startswith(minify_key(self.LONG_TEXT, 6, "", 0)))

    def test_deterministic(self):
        first = minify_key(self.LONG_TEXT, 16, "", 0)
        self.assertEqual(first, minify_key(self.LONG_TEXT, 16, "", 0))
        # other texts hashed in between do not matter
        minify_key("something else entirely", 16, "", 0)
        self.assertEqual(first, minify_key(self.LONG_TEXT, 16, "", 0))

    def test_different_texts_get_different_keys(self):
        self.assertNotEqual(
            minify_key("Hello, world!", 24, "", 0),
            minify_key("Hello, world?", 24, "", 0),
        )

    def test_hash_has_fixed_width(self):
        self.assertEqual(len(hash_text("")), 33)
        self.assertEqual(len(hash_text(self.LONG_TEXT)), 33)

    def test_length_out_of_range(self):
        with self.assertRaises(ValueError):
            minify_key(self.LONG_TEXT, 25, "", 0)
        with self.assertRaises(ValueError):
            minify_key(self.LONG_TEXT, -1, "", 0)


class TestMinifyOptions(unittest.TestCase):
    def test_disabled_returns_text(self):
        options = MinifyOptions(enabled=False, length=8, prefix="", thresh=0)
        self.assertEqual(options.key_for("Some long text"), "Some long text")

    def test_enabled_uses_settings(self):
        options = MinifyOptions(enabled=True, length=8, prefix="k_", thresh=4)
        self.assertEqual(options.key_for("Some long text"), minify_key("Some long text", 8, "k_", 4))
        self.assertEqual(options.key_for("tiny"), "tiny")


if __name__ == '__main__':
    unittest.main()
