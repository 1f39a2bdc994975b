import struct

import numpy as np
import pytest

from graystudio.core import gb7
from graystudio.core.gb7 import FormatError, FormatErrorKind
from graystudio.core.pixel_buffer import PixelBuffer


def _gb7(width, height, pixels, flags=0, reserved=0, version=1):
    header = gb7.MAGIC + struct.pack(">BBHHH", version, flags, width, height, reserved)
    return header + bytes(pixels)


def test_decode_white_2x2_without_mask():
    result = gb7.decode(_gb7(2, 2, [0x7F] * 4))

    assert isinstance(result, PixelBuffer)
    assert result.size == (2, 2)
    assert (result.pixels == 255).all()


def test_decode_expands_gray_with_round_half_up():
    # 64/127*255 = 128.503..., 1/127*255 = 2.007...
    result = gb7.decode(_gb7(3, 1, [0, 1, 64]))

    assert result.pixels[0, :, 0].tolist() == [0, 2, 129]
    assert (result.pixels[..., 0] == result.pixels[..., 1]).all()
    assert (result.pixels[..., 0] == result.pixels[..., 2]).all()
    assert (result.pixels[..., 3] == 255).all()


def test_decode_mask_bit_controls_alpha():
    result = gb7.decode(_gb7(2, 1, [0x80 | 0x7F, 0x7F], flags=0x01))

    assert result.pixels[0, 0].tolist() == [255, 255, 255, 255]
    assert result.pixels[0, 1].tolist() == [255, 255, 255, 0]


def test_decode_ignores_bit7_without_mask_flag():
    result = gb7.decode(_gb7(1, 1, [0x80 | 0x10]))

    assert result.pixels[0, 0, 3] == 255
    assert result.pixels[0, 0, 0] == round(16 / 127 * 255)


def test_decode_rejects_bad_magic():
    data = b"PNG\x00" + _gb7(1, 1, [0])[4:]
    result = gb7.decode(data)

    assert isinstance(result, FormatError)
    assert result.kind is FormatErrorKind.BAD_MAGIC
    assert not result


def test_decode_rejects_nonzero_reserved():
    result = gb7.decode(_gb7(1, 1, [0], reserved=1))

    assert isinstance(result, FormatError)
    assert result.kind is FormatErrorKind.RESERVED_NOT_ZERO


def test_magic_is_checked_before_reserved():
    data = b"XXXX" + _gb7(1, 1, [0], reserved=5)[4:]

    assert gb7.decode(data).kind is FormatErrorKind.BAD_MAGIC


def test_decode_rejects_truncated_pixel_data():
    result = gb7.decode(_gb7(3, 3, [0] * 8))

    assert isinstance(result, FormatError)
    assert result.kind is FormatErrorKind.TRUNCATED


def test_decode_rejects_short_header():
    assert gb7.decode(gb7.MAGIC + b"\x01").kind is FormatErrorKind.TRUNCATED
    assert gb7.decode(b"GB").kind is FormatErrorKind.BAD_MAGIC


def test_decode_ignores_trailing_bytes():
    result = gb7.decode(_gb7(1, 1, [0x7F, 0x00, 0x00]))

    assert isinstance(result, PixelBuffer)
    assert result.size == (1, 1)


def test_read_header_fields():
    header = gb7.read_header(_gb7(300, 2, [0] * 600, flags=1))

    assert header.width == 300
    assert header.height == 2
    assert header.has_mask is True
    assert header.version == 1
    assert header.pixel_count == 600


def test_encode_header_layout():
    data = gb7.encode(PixelBuffer.filled(258, 3, (0, 0, 0, 255)))

    assert data[:4] == b"\x47\x42\x37\x1d"
    assert data[4] == 1
    assert data[5] == 0
    assert data[6:8] == b"\x01\x02"
    assert data[8:10] == b"\x00\x03"
    assert data[10:12] == b"\x00\x00"
    assert len(data) == 12 + 258 * 3


def test_encode_pure_red_scales_luma_to_7_bits():
    data = gb7.encode(PixelBuffer.filled(1, 1, (255, 0, 0, 255)))

    assert data[12] == 27


def test_encode_never_sets_mask_bit():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    arr[..., :3] = 255
    arr[0, 0, 3] = 0
    data = gb7.encode(PixelBuffer(arr))

    assert data[5] == 0
    assert all(b <= 0x7F for b in data[12:])
    assert data[12:] == bytes([127] * 4)


def test_encode_rejects_oversized_dimensions():
    buf = PixelBuffer(np.zeros((1, 70000, 4), dtype=np.uint8))

    with pytest.raises(ValueError):
        gb7.encode(buf)


def test_decode_of_encoded_gray_stays_within_quantisation_error(random_buffer):
    gray = random_buffer.pixels.copy()
    gray[..., 1] = gray[..., 0]
    gray[..., 2] = gray[..., 0]
    source = PixelBuffer(gray)

    decoded = gb7.decode(gb7.encode(source))

    diff = np.abs(decoded.pixels[..., 0].astype(int) - gray[..., 0].astype(int))
    # One 7-bit step is 255/127 ~ 2.008 in 8-bit units
    assert diff.max() <= 2


def test_decode_does_not_touch_input_bytes():
    data = bytearray(_gb7(2, 1, [0x10, 0x20]))
    snapshot = bytes(data)
    gb7.decode(data)

    assert bytes(data) == snapshot
