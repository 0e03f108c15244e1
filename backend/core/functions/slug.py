"""函数名校验"""

import re

from exceptions import InvalidFunctionSlugError

FUNCTION_SLUG_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def validate_function_slug(slug: str) -> None:
    """
    校验函数名

    Raises:
        InvalidFunctionSlugError: 不是以字母开头，或包含字母数字、下划线、连字符以外的字符
    """
    if not FUNCTION_SLUG_PATTERN.match(slug):
        raise InvalidFunctionSlugError(slug)
