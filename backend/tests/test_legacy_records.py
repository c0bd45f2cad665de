"""
Tests for reading the legacy JSON export.
"""

import json

import pytest

from services.legacy_records import LegacyDataError, load_legacy_export, parse_legacy_export


def record(**overrides):
    data = {
        "questionDone": ["p1"],
        "starQuestions": ["p2"],
        "userInfo": {"xx": "Sch", "xm": "Alice", "sfz": "111", "zp": "", "zy": "CS"},
        "operateTime": {"operateType": "login", "time": 1700000000},
        "userSettings": {"publicStat": False},
    }
    data.update(overrides)
    return data


class TestParseLegacyExport:

    def test_parses_records_in_document_order(self):
        raw = json.dumps({"222": record(), "111": record()})

        records = parse_legacy_export(raw)

        assert list(records) == ["222", "111"]
        assert records["222"].userInfo.xm == "Alice"
        assert records["222"].operateTime.time == 1700000000
        assert records["222"].public_stat is False

    def test_missing_settings_means_no_flag(self):
        data = record()
        del data["userSettings"]

        records = parse_legacy_export(json.dumps({"111": data}))

        assert records["111"].public_stat is None

    def test_non_boolean_public_stat_is_rejected(self):
        raw = json.dumps({"111": record(userSettings={"publicStat": "false"})})

        with pytest.raises(LegacyDataError):
            parse_legacy_export(raw)

    def test_malformed_json_is_fatal(self):
        with pytest.raises(LegacyDataError):
            parse_legacy_export('{"111": ')

    def test_top_level_must_be_a_mapping(self):
        with pytest.raises(LegacyDataError):
            parse_legacy_export("[]")

    def test_record_without_user_info_is_rejected(self):
        data = record()
        del data["userInfo"]

        with pytest.raises(LegacyDataError):
            parse_legacy_export(json.dumps({"111": data}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(LegacyDataError):
            load_legacy_export(tmp_path / "nope.json")
