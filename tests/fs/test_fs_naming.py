"""
Tests for local naming conventions.

Covers:
1. Bundle folder names are "<name> [<5-char fingerprint prefix>]" and parse back
2. Filenames are sanitized for every desktop filesystem
"""

import hashlib
import unittest

from src.harvester.fs.naming import (
    MAX_FILENAME_BYTES,
    generate_bundle_folder_name,
    parse_bundle_folder_name,
    sanitize_filename,
)

FINGERPRINT = "0123456789abcdef0123456789abcdef"


class TestBundleFolderNaming(unittest.TestCase):
    """Tests for bundle folder names."""

    def test_generate_format(self):
        self.assertEqual(generate_bundle_folder_name("Cool Song", FINGERPRINT), "Cool Song [01234]")

    def test_generated_name_parses(self):
        parsed = parse_bundle_folder_name(generate_bundle_folder_name("Cool Song", FINGERPRINT))
        self.assertIsNotNone(parsed)
        self.assertEqual(parsed.name, "Cool Song")
        self.assertEqual(parsed.prefix, "01234")

    def test_parse_with_path_and_rejects_others(self):
        parsed = parse_bundle_folder_name("/library/Alice/pack.zip [abcde]")
        self.assertEqual(parsed.name, "pack.zip")
        self.assertIsNone(parse_bundle_folder_name("Cool Song"))
        self.assertIsNone(parse_bundle_folder_name("Cool Song [xyz12]"))

    def test_name_is_sanitized(self):
        self.assertEqual(generate_bundle_folder_name("AC/DC: Live?", FINGERPRINT), "AC／DC꞉ Live？ [01234]")

    def test_long_name_fits_limit(self):
        folder = generate_bundle_folder_name("é" * 300, FINGERPRINT)
        self.assertLessEqual(len(folder.encode("utf-8")), MAX_FILENAME_BYTES)
        self.assertTrue(folder.endswith(" [01234]"))


class TestSanitizeFilename(unittest.TestCase):
    """Tests for filename sanitizing."""

    def test_plain_name_unchanged(self):
        self.assertEqual(sanitize_filename("notes.chart"), "notes.chart")

    def test_invalid_characters_replaced_with_look_alikes(self):
        self.assertEqual(sanitize_filename('a<b>c"d|e*f'), "a❮b❯c'd⏐e⁎f")

    def test_control_characters(self):
        self.assertEqual(sanitize_filename("a\tb\x00c"), "a_b_c")

    def test_trailing_dots_and_spaces(self):
        self.assertEqual(sanitize_filename("Song. . "), "Song")

    def test_reserved_names(self):
        self.assertEqual(sanitize_filename("CON"), "_CON")
        self.assertEqual(sanitize_filename("lpt1.txt"), "_lpt1.txt")
        self.assertEqual(sanitize_filename("console"), "console")

    def test_empty_result_uses_hash(self):
        self.assertEqual(sanitize_filename(".."), hashlib.md5(b"..").hexdigest()[:5])
        self.assertEqual(sanitize_filename(" "), hashlib.md5(b" ").hexdigest()[:5])

    def test_truncated_to_byte_limit(self):
        result = sanitize_filename("ü" * 200)
        self.assertLessEqual(len(result.encode("utf-8")), MAX_FILENAME_BYTES)
        self.assertEqual(result, "ü" * 127)

    def test_truncation_keeps_extension(self):
        result = sanitize_filename("a" * 300 + ".ogg")
        self.assertEqual(result, "a" * 251 + ".ogg")
        self.assertEqual(len(result.encode("utf-8")), MAX_FILENAME_BYTES)

    def test_no_trailing_space_after_truncation(self):
        self.assertEqual(sanitize_filename("a" * 254 + " " + "b" * 10), "a" * 254)


if __name__ == "__main__":
    unittest.main()
