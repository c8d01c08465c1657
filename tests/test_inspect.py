import unittest

from printshop.files import (
    GB,
    MB,
    CandidateFile,
    Dimensions,
    detect_type,
    format_file_size,
    has_security_risk,
    is_executable,
    read_image_info,
    sanitize_filename,
)

from tests.factories import jpeg_bytes, pdf_bytes, png_bytes


class TestFormatFileSize(unittest.TestCase):

    def test_units(self):
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(512), "512 Bytes")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * MB), "5 MB")
        self.assertEqual(format_file_size(2 * GB + GB // 4), "2.25 GB")


class TestFilenames(unittest.TestCase):

    def test_sanitize(self):
        self.assertEqual(sanitize_filename("../../etc/my card (final).pdf"), "my_card__final_.pdf")
        self.assertEqual(sanitize_filename("C:\\art\\.hidden.png"), "_hidden.png")
        self.assertEqual(sanitize_filename("dir/"), "unnamed")

    def test_security_risk(self):
        self.assertTrue(has_security_risk("..\\boot.ini"))
        self.assertTrue(has_security_risk("name\x00.pdf"))
        self.assertTrue(has_security_risk("run.BAT"))
        self.assertFalse(has_security_risk("front-side_v2.pdf"))

    def test_extension(self):
        self.assertEqual(CandidateFile("Front.JPEG", "image/jpeg", b"").extension, ".jpeg")
        self.assertEqual(CandidateFile("folder\\back.png", "image/png", b"").extension, ".png")
        self.assertEqual(CandidateFile("README", "text/plain", b"").extension, "")


class TestSignatures(unittest.TestCase):

    def test_detect_type(self):
        self.assertEqual(detect_type(png_bytes()), "image/png")
        self.assertEqual(detect_type(jpeg_bytes()), "image/jpeg")
        self.assertEqual(detect_type(pdf_bytes()), "application/pdf")
        self.assertEqual(detect_type(b"II*\x00rest"), "image/tiff")
        self.assertIsNone(detect_type(b"plain text"))

    def test_executables(self):
        self.assertTrue(is_executable(b"MZ\x90\x00"))
        self.assertTrue(is_executable(b"\x7fELF\x02\x01"))
        self.assertFalse(is_executable(pdf_bytes()))


class TestImageHeaders(unittest.TestCase):

    def test_png(self):
        info = read_image_info(png_bytes(2100, 1200, dpi=300))
        self.assertEqual(info.dimensions, Dimensions(2100, 1200, 300))
        self.assertEqual(info.color_space, "RGB")
        self.assertFalse(info.has_transparency)

    def test_png_without_density(self):
        info = read_image_info(png_bytes(dpi=None, color_type=0))
        self.assertIsNone(info.dimensions.dpi)
        self.assertEqual(info.color_space, "Grayscale")

    def test_jpeg(self):
        info = read_image_info(jpeg_bytes(800, 600, dpi=72, components=1))
        self.assertEqual(info.dimensions, Dimensions(800, 600, 72))
        self.assertEqual(info.color_space, "Grayscale")

    def test_other_formats(self):
        self.assertIsNone(read_image_info(pdf_bytes()))
        self.assertIsNone(read_image_info(b"\xff\xd8\xff\xd9"))


if __name__ == "__main__":
    unittest.main()
