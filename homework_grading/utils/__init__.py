"""工具函数模块"""

from homework_grading.utils.errors import (
    ArgumentValidationError,
    GradingFailedError,
    HomeworkGradingError,
    ImageDownloadError,
    ImageDownloadTimeoutError,
    ImageTooLargeError,
    ImageUnreachableError,
    InvalidBase64ImageError,
    MissingApiKeyError,
    ModelCallError,
    ResponseParseError,
    ResponseShapeError,
    UnsupportedContentTypeError,
)
from homework_grading.utils.image import (
    build_data_uri,
    classify_input,
    compress_image_data,
    estimate_decoded_size,
    get_image_format,
    strip_data_uri_prefix,
    to_data_uri,
    validate_base64_image,
)

__all__ = [
    "ArgumentValidationError",
    "GradingFailedError",
    "HomeworkGradingError",
    "ImageDownloadError",
    "ImageDownloadTimeoutError",
    "ImageTooLargeError",
    "ImageUnreachableError",
    "InvalidBase64ImageError",
    "MissingApiKeyError",
    "ModelCallError",
    "ResponseParseError",
    "ResponseShapeError",
    "UnsupportedContentTypeError",
    "build_data_uri",
    "classify_input",
    "compress_image_data",
    "estimate_decoded_size",
    "get_image_format",
    "strip_data_uri_prefix",
    "to_data_uri",
    "validate_base64_image",
]
