import unittest

from image_builders import (
    APP0,
    APP1,
    APP1_OFFSET,
    COM_OFFSET,
    COM_TEXT_OFFSET,
    DHT,
    EOI,
    SOI,
    jpeg_segment,
    sample_jpeg,
    sof_payload,
)
from imgmeta.model import (
    ImageMetadata,
    InvalidFrameMarkerError,
    InvalidSegmentLengthError,
    NoSofMarkerError,
    NoSoiMarkerError,
    SofDataTooShortError,
)
from imgmeta.parsers.jpeg_meta import JpegSegment, JpegSegments, parse_jpeg


def read_sof(data: bytes):
    segment = JpegSegment(0xFFC0, 0, data)
    assert segment.is_sof
    return segment.read_sof()


class TestJpegSegment(unittest.TestCase):
    def test_is_sof_marker(self):
        for marker in (0xFFC0, 0xFFC1, 0xFFC2, 0xFFC3, 0xFFC5, 0xFFC6, 0xFFC7,
                       0xFFC9, 0xFFCA, 0xFFCB, 0xFFCD, 0xFFCE, 0xFFCF):
            self.assertTrue(JpegSegment(marker, 0, b"").is_sof, hex(marker))
        # DHT, JPG, DAC
        for marker in (0xFFC4, 0xFFC8, 0xFFCC, 0xFFDA, 0xFFFE):
            self.assertFalse(JpegSegment(marker, 0, b"").is_sof, hex(marker))

    def test_read_sof(self):
        # Высота идет раньше ширины
        self.assertEqual(read_sof(bytes([0x08, 0x00, 0x01, 0x00, 0x01])), (1, 1))
        self.assertEqual(read_sof(bytes([0x08, 0x00, 0x02, 0x00, 0x01])), (1, 2))
        self.assertEqual(read_sof(bytes([0x08, 0x00, 0x01, 0x00, 0x02])), (2, 1))
        self.assertEqual(read_sof(bytes([0x08, 0x08, 0x00, 0x03, 0xE8])), (1000, 2048))
        self.assertEqual(read_sof(bytes([0x08, 0x01, 0x55, 0x02, 0x00])), (512, 341))

    def test_read_sof_too_short(self):
        segment = JpegSegment(0xFFC0, 77, b"\x08\x01\x55\x02")
        with self.assertRaises(SofDataTooShortError) as ctx:
            segment.read_sof()
        self.assertEqual(ctx.exception.position, 77)


class TestJpegSegments(unittest.TestCase):
    def test_comment_segment(self):
        data = sample_jpeg()
        segment = next(iter(JpegSegments(data, start=COM_OFFSET)))
        self.assertEqual(segment.marker, 0xFFFE)
        self.assertTrue(segment.is_com)
        self.assertEqual(segment.position, COM_OFFSET)
        self.assertEqual(bytes(segment.data), b"Buttercups")

    def test_resync_from_inside_comment(self):
        data = sample_jpeg()
        with self.assertLogs("imgmeta.parsers.jpeg_meta", level="WARNING"):
            segment = next(iter(JpegSegments(data, start=COM_TEXT_OFFSET + 3)))
        self.assertEqual(segment.marker, 0xFFE1)
        self.assertEqual(segment.position, APP1_OFFSET)

    def test_resync_near_end(self):
        # Без EOI в конце нет ни одного маркера после позиции чтения
        data = sample_jpeg()[:-2]
        segments = JpegSegments(data, start=len(data) - 10)
        self.assertEqual(list(segments), [])
        self.assertEqual(segments.position, len(data))

    def test_restartable(self):
        data = sample_jpeg()
        segments = JpegSegments(data)
        first = [(s.marker, s.position) for s in segments]
        second = [(s.marker, s.position) for s in segments]
        self.assertEqual(first, second)
        self.assertEqual(first[0], (0xFFE0, 2))
        self.assertEqual(first[-1][0], 0xFFDA)

    def test_sos_payload_not_read(self):
        data = SOI + jpeg_segment(0xFFC0, sof_payload(3, 4)) + b"\xFF\xDA"
        markers = [s.marker for s in JpegSegments(data)]
        self.assertEqual(markers, [0xFFC0, 0xFFDA])


class TestParseJpeg(unittest.TestCase):
    def test_buttercups(self):
        meta = parse_jpeg(sample_jpeg())
        self.assertEqual(meta, ImageMetadata(512, 341, [b"Buttercups"]))

    def test_comments_keep_order_and_duplicates(self):
        data = sample_jpeg(comments=(b"one", b"two", b"one"))
        self.assertEqual(parse_jpeg(data).comments, (b"one", b"two", b"one"))

    def test_comment_after_sof(self):
        body = [jpeg_segment(0xFFC2, sof_payload(10, 20)), jpeg_segment(0xFFFE, b"late")]
        meta = parse_jpeg(sample_jpeg(comments=(b"early",), body=body))
        self.assertEqual((meta.width, meta.height), (10, 20))
        self.assertEqual(meta.comments, (b"early", b"late"))

    def test_no_comments(self):
        self.assertEqual(parse_jpeg(sample_jpeg(comments=())).comments, ())

    def test_first_sof_wins(self):
        body = [
            jpeg_segment(0xFFC0, sof_payload(100, 50)),
            jpeg_segment(0xFFC1, sof_payload(7, 8)),
            # Короткий SOF после первого не разбирается
            jpeg_segment(0xFFC2, b"\x08"),
        ]
        meta = parse_jpeg(sample_jpeg(body=body))
        self.assertEqual((meta.width, meta.height), (100, 50))

    def test_zero_dimensions_pass_through(self):
        meta = parse_jpeg(sample_jpeg(width=0, height=0))
        self.assertEqual((meta.width, meta.height), (0, 0))

    def test_dac_is_not_sof(self):
        body = [jpeg_segment(0xFFCC, b"\x08\x00\x10\x00\x10"), jpeg_segment(0xFFC0, sof_payload(1, 2))]
        meta = parse_jpeg(sample_jpeg(body=body))
        self.assertEqual((meta.width, meta.height), (1, 2))

    def test_sof_too_short(self):
        sof_pos = len(SOI) + len(APP0)
        data = SOI + APP0 + jpeg_segment(0xFFC0, b"\x08\x01\x55\x02") + EOI
        with self.assertRaises(SofDataTooShortError) as ctx:
            parse_jpeg(data)
        self.assertEqual(ctx.exception.position, sof_pos)

    def test_no_sof_keeps_comments(self):
        data = SOI + APP0 + jpeg_segment(0xFFFE, b"Buttercups") + APP1 + EOI
        with self.assertRaises(NoSofMarkerError) as ctx:
            parse_jpeg(data)
        self.assertEqual(ctx.exception.comments, [b"Buttercups"])
        self.assertEqual(ctx.exception.position, len(data))

    def test_eoi_stops_scan(self):
        data = SOI + jpeg_segment(0xFFC0, sof_payload(5, 6)) + EOI + jpeg_segment(0xFFFE, b"ignored")
        self.assertEqual(parse_jpeg(data), ImageMetadata(5, 6, []))

    def test_garbage_between_segments_is_skipped(self):
        body = [APP1, b"\x00\x12\x34\xFF\x00\x56", jpeg_segment(0xFFC0, sof_payload(640, 480)), DHT]
        with self.assertLogs("imgmeta.parsers.jpeg_meta", level="WARNING"):
            meta = parse_jpeg(sample_jpeg(body=body))
        self.assertEqual((meta.width, meta.height), (640, 480))
        self.assertEqual(meta.comments, (b"Buttercups",))

    def test_repeated_soi_is_ignored(self):
        body = [SOI, jpeg_segment(0xFFC0, sof_payload(33, 44))]
        meta = parse_jpeg(sample_jpeg(body=body))
        self.assertEqual((meta.width, meta.height), (33, 44))

    def test_invalid_frame_marker(self):
        with self.assertRaises(InvalidFrameMarkerError) as ctx:
            parse_jpeg(SOI + b"\xFF\x00\x00\x10" + b"\x00" * 16)
        self.assertEqual(ctx.exception.word, 0xFF00)
        self.assertEqual(ctx.exception.position, 2)

        with self.assertRaises(InvalidFrameMarkerError) as ctx:
            parse_jpeg(SOI + APP0 + b"\xFF\xFF\xC0\x00\x11")
        self.assertEqual(ctx.exception.word, 0xFFFF)
        self.assertEqual(ctx.exception.position, len(SOI) + len(APP0))

    def test_invalid_segment_length(self):
        with self.assertRaises(InvalidSegmentLengthError) as ctx:
            parse_jpeg(SOI + b"\xFF\xE0\x00\x01" + b"\x00" * 8)
        self.assertEqual(ctx.exception.length, 1)

        # Длина сегмента больше оставшихся данных
        with self.assertRaises(InvalidSegmentLengthError) as ctx:
            parse_jpeg(SOI + b"\xFF\xFE\x00\x20" + b"short")
        self.assertEqual(ctx.exception.length, 0x20)

    def test_truncated_length_field_ends_scan(self):
        data = SOI + jpeg_segment(0xFFC0, sof_payload(9, 9)) + b"\xFF\xFE\x00"
        self.assertEqual(parse_jpeg(data), ImageMetadata(9, 9, []))

    def test_no_soi(self):
        with self.assertRaises(NoSoiMarkerError):
            parse_jpeg(b"\x00\x00\x00\x00")


if __name__ == "__main__":
    unittest.main()
