# src/storage/layout.py — v2
"""Remote key layout for uploaded archives.

Keys come from a template with these placeholders:

    {year}   4-digit year of the group
    {month}  2-digit month of the group
    {group}  full "YYYY-MM" group key
    {zip}    generated archive name

The default "{year}/{zip}" files each archive under a year prefix.
"""

from __future__ import annotations

DEFAULT_KEY_FORMAT = "{year}/{zip}"
TEST_MODE_KEY_PREFIX = "test/"


def remote_key(key_format: str, group_key: str, archive_name: str) -> str:
    """Expand key_format for one archive.

    Unknown placeholders are left untouched.
    """
    template = key_format or DEFAULT_KEY_FORMAT
    year, _, month = group_key.partition("-")
    replacements = {
        "{year}": year,
        "{month}": month,
        "{group}": group_key,
        "{zip}": archive_name,
    }
    key = template
    for placeholder, value in replacements.items():
        key = key.replace(placeholder, value)
    return key.lstrip("/")


def with_test_prefix(key_format: str) -> str:
    """Return key_format nested under the test/ prefix."""
    template = key_format or DEFAULT_KEY_FORMAT
    if template.startswith(TEST_MODE_KEY_PREFIX):
        return template
    return TEST_MODE_KEY_PREFIX + template.lstrip("/")
