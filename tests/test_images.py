from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from services.images import Image, new_image_path


class ImageTests(unittest.TestCase):
    def test_from_bytes_encodes_standard_base64(self) -> None:
        image = Image.from_bytes(b"\xff\xfe IMG")
        self.assertEqual(image.base64, "//4gSU1H")
        self.assertEqual(image.bytes(), b"\xff\xfe IMG")

    def test_invalid_base64_raises_value_error(self) -> None:
        with self.assertRaises(ValueError):
            Image.from_base64("not base64!!").bytes()

    def test_save_and_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.png"
            Image.from_bytes(b"IMG2").save(path)

            self.assertEqual(path.read_bytes(), b"IMG2")
            self.assertEqual(Image.from_file(path), Image.from_bytes(b"IMG2"))

    def test_images_are_immutable(self) -> None:
        image = Image.from_bytes(b"x")
        with self.assertRaises(AttributeError):
            image.base64 = "eQ=="

    def test_new_image_path_creates_directory_with_unique_names(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            images_dir = os.path.join(tmp, "images")
            first = new_image_path(images_dir)
            second = new_image_path(images_dir)

            self.assertTrue(os.path.isdir(images_dir))
            self.assertNotEqual(first, second)
            self.assertEqual(first.parent, Path(images_dir))
            self.assertTrue(first.name.startswith("image-"))
            self.assertEqual(first.suffix, ".png")


if __name__ == "__main__":
    unittest.main()
