"""Tests for timestamp extraction and canonical file names."""

import os
import datetime as dt

import pytest

from cardimport.errors import RecordStateError
from cardimport.timestamps import (
    SOURCE_CREATION_TIME,
    SOURCE_FILENAME_DATE,
    SOURCE_FILENAME_DATETIME,
    apply_offset,
    build_canonical_name,
    extract,
    extract_timestamp,
)

CREATED = dt.datetime(2021, 7, 1, 9, 15, 42)


class TestExtractTimestamp:
    def test_embedded_datetime_prefix(self):
        ts, stem, ext, label = extract_timestamp("20240305_143000_IMG_0002.jpg", CREATED)
        assert ts == dt.datetime(2024, 3, 5, 14, 30, 0)
        assert stem == "_IMG_0002"
        assert ext == ".jpg"
        assert label == SOURCE_FILENAME_DATETIME

    def test_embedded_datetime_in_middle(self):
        ts, stem, _, _ = extract_timestamp("PXL_20230615_221105123.mp4", CREATED)
        # 9 trailing digits do not form a time token, only the bare date matches
        assert ts == dt.datetime(2023, 6, 15)
        assert stem == "PXL__221105123"

    def test_four_digit_time(self):
        ts, stem, ext, label = extract_timestamp("20240305_1430.jpg", CREATED)
        assert ts == dt.datetime(2024, 3, 5, 14, 30, 0)
        assert stem == ""
        assert label == SOURCE_FILENAME_DATETIME

    @pytest.mark.parametrize("sep", ["_", "-", ".", " ", "T"])
    def test_separators(self, sep):
        ts, _, _, _ = extract_timestamp(f"clip 20240305{sep}143000.mov", CREATED)
        assert ts == dt.datetime(2024, 3, 5, 14, 30, 0)

    def test_bare_date_uses_midnight(self):
        ts, stem, ext, label = extract_timestamp("IMG_20240305.jpg", CREATED)
        assert ts == dt.datetime(2024, 3, 5, 0, 0, 0)
        assert stem == "IMG_"
        assert label == SOURCE_FILENAME_DATE

    def test_no_date_uses_creation_time(self):
        ts, stem, ext, label = extract_timestamp("IMG_0001.jpg", CREATED)
        assert ts == CREATED
        assert stem == "IMG_0001"
        assert ext == ".jpg"
        assert label == SOURCE_CREATION_TIME

    def test_invalid_month_is_not_a_match(self):
        ts, stem, _, label = extract_timestamp("20241305_143000_x.jpg", CREATED)
        assert ts == CREATED
        assert stem == "20241305_143000_x"
        assert label == SOURCE_CREATION_TIME

    def test_invalid_time_falls_back_to_bare_date(self):
        ts, stem, _, label = extract_timestamp("20240305_256000_x.jpg", CREATED)
        assert ts == dt.datetime(2024, 3, 5)
        assert stem == "_256000_x"
        assert label == SOURCE_FILENAME_DATE

    def test_digits_glued_to_longer_run_are_ignored(self):
        ts, _, _, label = extract_timestamp("DSC120240305.jpg", CREATED)
        assert ts == CREATED
        assert label == SOURCE_CREATION_TIME

    def test_implausible_year_is_ignored(self):
        ts, _, _, _ = extract_timestamp("10000101.jpg", CREATED)
        assert ts == CREATED

    def test_first_valid_match_wins(self):
        ts, stem, _, _ = extract_timestamp("20241399_000000_20240306_101010.jpg", CREATED)
        assert ts == dt.datetime(2024, 3, 6, 10, 10, 10)
        assert stem == "20241399_000000_"

    def test_date_out_of_range_after_offset_falls_back(self):
        ts, stem, _, label = extract_timestamp("IMG_99991231.jpg", CREATED, offset_hours=24)
        assert ts == CREATED
        assert stem == "IMG_99991231"
        assert label == SOURCE_CREATION_TIME


class TestCanonicalName:
    def test_adds_separator(self):
        assert build_canonical_name(dt.datetime(2024, 3, 5, 14, 30), "IMG_0001", ".jpg") == "20240305_143000_IMG_0001.jpg"

    def test_no_double_separator(self):
        assert build_canonical_name(dt.datetime(2024, 3, 5, 16, 30), "_IMG_0002", ".jpg") == "20240305_163000_IMG_0002.jpg"

    def test_only_extension_left(self):
        assert build_canonical_name(dt.datetime(2024, 3, 5, 14, 30), "", ".jpg") == "20240305_143000.jpg"

    def test_suffix_before_extension(self):
        name = build_canonical_name(dt.datetime(2024, 3, 5, 14, 30), "_IMG", ".jpg", suffix="_ski")
        assert name == "20240305_143000_IMG_ski.jpg"

    def test_suffix_not_repeated(self):
        name = build_canonical_name(dt.datetime(2024, 3, 5, 14, 30), "_IMG_ski", ".jpg", suffix="_ski")
        assert name == "20240305_143000_IMG_ski.jpg"


class TestOffset:
    def test_positive(self):
        assert apply_offset(dt.datetime(2024, 3, 5, 14, 30), 2) == dt.datetime(2024, 3, 5, 16, 30)

    def test_negative_crosses_midnight(self):
        assert apply_offset(dt.datetime(2024, 3, 5, 1, 0), -3) == dt.datetime(2024, 3, 4, 22, 0)

    def test_zero(self):
        ts = dt.datetime(2024, 3, 5, 1, 0)
        assert apply_offset(ts, 0) == ts


class TestExtractStage:
    def test_creation_time_example(self, make_file, make_record):
        record = make_record(make_file("card/IMG_0001.jpg"), dt.datetime(2024, 3, 5, 14, 30, 0))
        extract(record)
        assert record.effective_timestamp == dt.datetime(2024, 3, 5, 14, 30, 0)
        assert record.canonical_name == "20240305_143000_IMG_0001.jpg"

    def test_already_canonical_with_offset(self, make_file, make_record):
        record = make_record(make_file("card/20240305_143000_IMG_0002.jpg"), CREATED)
        extract(record, offset_hours=2)
        assert record.effective_timestamp == dt.datetime(2024, 3, 5, 16, 30, 0)
        assert record.canonical_name == "20240305_163000_IMG_0002.jpg"

    def test_offset_leaves_file_times_alone(self, make_file, make_record):
        path = make_file("card/IMG_0003.jpg")
        os.utime(path, (1_600_000_000, 1_600_000_000))
        before = os.stat(path).st_mtime
        record = make_record(path, dt.datetime(2024, 3, 5, 14, 30))
        extract(record, offset_hours=-5)
        assert record.effective_timestamp == dt.datetime(2024, 3, 5, 9, 30)
        assert os.stat(path).st_mtime == before

    def test_fields_are_write_once(self, make_file, make_record):
        record = make_record(make_file("card/IMG_0004.jpg"))
        extract(record)
        with pytest.raises(RecordStateError):
            extract(record)
