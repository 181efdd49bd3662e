"""
图片工具函数单元测试
"""

import logging

import pytest

from homework_grading.models.enums import ImageInputType
from homework_grading.utils.image import (
    MAX_BASE64_LENGTH,
    build_data_uri,
    classify_input,
    compress_image_data,
    estimate_decoded_size,
    get_image_format,
    read_image_size,
    strip_data_uri_prefix,
    to_data_uri,
    validate_base64_image,
)


PAYLOAD = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="


class TestValidateBase64Image:
    """Base64 图片验证测试"""

    @pytest.mark.parametrize("fmt", ["png", "jpg", "jpeg", "gif"])
    def test_accepts_supported_data_uri(self, fmt):
        is_valid, media_type = validate_base64_image(f"data:image/{fmt};base64,{PAYLOAD}")
        assert is_valid is True
        assert media_type == f"image/{fmt}"

    def test_accepts_bare_base64_as_jpeg(self):
        assert validate_base64_image(PAYLOAD) == (True, "image/jpeg")

    @pytest.mark.parametrize(
        "value",
        [
            f"data:image/webp;base64,{PAYLOAD}",
            f"data:image/bmp;base64,{PAYLOAD}",
            "data:image/png;base64,",
            "data:image/png;base64,abc$def",
            "not base64 at all!",
            "",
        ],
    )
    def test_rejects_malformed_input(self, value):
        assert validate_base64_image(value) == (False, "无效的Base64图片格式")

    @pytest.mark.parametrize("value", [f"data:image/png;base64,{PAYLOAD}\n", f"{PAYLOAD}\n"])
    def test_rejects_trailing_newline(self, value):
        """末尾换行不属于 Base64 字符集"""
        assert validate_base64_image(value) == (False, "无效的Base64图片格式")

    def test_rejects_oversized_payload(self):
        """编码长度超过 5MB * 4/3 时拒绝"""
        payload = "A" * (int(MAX_BASE64_LENGTH) + 1)
        is_valid, message = validate_base64_image(f"data:image/png;base64,{payload}")
        assert is_valid is False
        assert message == "图片文件过大，请使用小于5MB的图片"

    def test_accepts_payload_at_limit(self):
        payload = "A" * int(MAX_BASE64_LENGTH)
        assert validate_base64_image(f"data:image/png;base64,{payload}") == (True, "image/png")

    def test_size_limit_applies_to_bare_base64(self):
        payload = "A" * (int(MAX_BASE64_LENGTH) + 1)
        assert validate_base64_image(payload)[0] is False


class TestClassifyInput:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://example.com/homework.png", ImageInputType.URL),
            ("http://127.0.0.1:8000/a", ImageInputType.URL),
            (f"data:image/png;base64,{PAYLOAD}", ImageInputType.BASE64),
            (PAYLOAD, ImageInputType.BASE64),
            ("http://", ImageInputType.UNKNOWN),
            ("just some text", ImageInputType.UNKNOWN),
            ("example.com/a.png", ImageInputType.UNKNOWN),
            (f"{PAYLOAD}\n", ImageInputType.UNKNOWN),
        ],
    )
    def test_classify(self, value, expected):
        assert classify_input(value) == expected


class TestDataUriHelpers:
    def test_build_data_uri(self):
        assert build_data_uri("image/png", "QUJD") == "data:image/png;base64,QUJD"

    def test_to_data_uri_keeps_existing_uri(self):
        uri = f"data:image/gif;base64,{PAYLOAD}"
        assert to_data_uri(uri, "image/jpeg") == uri

    def test_to_data_uri_wraps_bare_payload(self):
        assert to_data_uri(PAYLOAD) == f"data:image/jpeg;base64,{PAYLOAD}"

    @pytest.mark.parametrize(
        "value",
        [
            f"data:image/png;base64,{PAYLOAD}",
            f"data:application/octet-stream;base64,{PAYLOAD}",
            PAYLOAD,
        ],
    )
    def test_strip_data_uri_prefix(self, value):
        assert strip_data_uri_prefix(value) == PAYLOAD

    @pytest.mark.parametrize(
        "value,expected",
        [
            (f"data:image/png;base64,{PAYLOAD}", "png"),
            (f"data:image/webp;base64,{PAYLOAD}", "webp"),
            (f"data:image/svg+xml;base64,{PAYLOAD}", "unknown"),
            (PAYLOAD, "unknown"),
        ],
    )
    def test_get_image_format(self, value, expected):
        assert get_image_format(value) == expected

    def test_estimate_decoded_size(self):
        assert estimate_decoded_size("A" * 400) == 300


class TestCompressImageData:
    """压缩环节只做大小检查"""

    def test_small_image_unchanged_without_warning(self, sample_png_data_uri, caplog):
        with caplog.at_level(logging.WARNING):
            assert compress_image_data(sample_png_data_uri) == sample_png_data_uri
        assert caplog.text == ""

    def test_large_image_unchanged_with_warning(self, caplog):
        large = "data:image/png;base64," + "A" * (2 * 1024 * 1024)
        with caplog.at_level(logging.WARNING):
            assert compress_image_data(large) is large
        assert "建议压缩" in caplog.text

    def test_warning_includes_dimensions_when_readable(self, sample_png_data_uri, caplog):
        with caplog.at_level(logging.WARNING):
            assert compress_image_data(sample_png_data_uri, max_size_kb=0) == sample_png_data_uri
        assert "1x1" in caplog.text

    def test_read_image_size(self, sample_png_data_uri):
        assert read_image_size(sample_png_data_uri) == (1, 1)

    def test_read_image_size_unreadable(self):
        assert read_image_size("data:image/png;base64,AAAA") is None
