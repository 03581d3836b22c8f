import unittest
from datetime import datetime, timezone

from gdrivemirror.util.time import (
    normalize_dt,
    now_utc,
    parse_rfc3339,
    parse_rfc3339_or_none,
    to_rfc3339,
)


class TestUtilTime(unittest.TestCase):
    def test_now_utc_is_tz_aware(self) -> None:
        self.assertEqual(now_utc().tzinfo, timezone.utc)

    def test_normalize_dt_rejects_naive(self) -> None:
        with self.assertRaises(ValueError):
            normalize_dt(datetime(2025, 1, 1, 12, 0, 0))

    def test_parse_rfc3339_drive_format(self) -> None:
        dt = parse_rfc3339("2025-01-01T12:34:56.123Z")
        self.assertEqual(dt, datetime(2025, 1, 1, 12, 34, 56, 123000, tzinfo=timezone.utc))

    def test_parse_rfc3339_offset_converts_to_utc(self) -> None:
        dt = parse_rfc3339("2025-01-01T12:34:56+09:00")
        self.assertEqual(dt, datetime(2025, 1, 1, 3, 34, 56, tzinfo=timezone.utc))

    def test_parse_rfc3339_or_none_is_lenient(self) -> None:
        self.assertIsNone(parse_rfc3339_or_none(None))
        self.assertIsNone(parse_rfc3339_or_none("yesterday"))
        self.assertIsNotNone(parse_rfc3339_or_none("2025-01-01T00:00:00Z"))

    def test_to_rfc3339_roundtrips_through_parse(self) -> None:
        dt = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        s = to_rfc3339(dt)
        self.assertTrue(s.endswith("Z"))
        self.assertEqual(parse_rfc3339(s), dt)
