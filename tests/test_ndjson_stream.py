"""Tests for the NDJSON record stream."""

import pytest

from migratepy.core.exceptions import FileOperationError, RecordParseError
from migratepy.models.records import ExportedUser
from migratepy.utils.ndjson_stream import ndjson_stream, validated_stream


class TestNdjsonStream:
    """Tests for ndjson_stream."""

    def test_yields_records_in_file_order(self, write_ndjson):
        path = write_ndjson("users.ndjson", [{"n": 1}, {"n": 2}, {"n": 3}])

        assert [r["n"] for r in ndjson_stream(path)] == [1, 2, 3]

    def test_blank_line_mid_file_raises(self, write_ndjson):
        path = write_ndjson("users.ndjson", [{"Id": "a"}, "", "   ", {"Id": "b"}])
        stream = ndjson_stream(path)

        assert next(stream) == {"Id": "a"}
        with pytest.raises(RecordParseError) as exc_info:
            next(stream)

        assert exc_info.value.line_number == 2
        assert "Blank line" in str(exc_info.value)

    def test_trailing_blank_lines_tolerated(self, tmp_path):
        path = tmp_path / "users.ndjson"
        path.write_text('{"Id": "a"}\n{"Id": "b"}\n\n  \n', encoding="utf-8")

        assert list(ndjson_stream(path)) == [{"Id": "a"}, {"Id": "b"}]

    def test_malformed_line_raises_with_line_number(self, write_ndjson):
        path = write_ndjson("users.ndjson", [{"n": 1}, "{not json", {"n": 3}])
        stream = ndjson_stream(path)

        assert next(stream) == {"n": 1}
        with pytest.raises(RecordParseError) as exc_info:
            next(stream)

        assert exc_info.value.line_number == 2
        assert "users.ndjson:2" in str(exc_info.value)

    def test_is_lazy(self, write_ndjson):
        """Nothing is parsed until the consumer pulls."""
        path = write_ndjson("users.ndjson", [{"n": 1}, "{broken"])
        stream = ndjson_stream(path)

        assert next(stream) == {"n": 1}
        with pytest.raises(RecordParseError):
            next(stream)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileOperationError) as exc_info:
            list(ndjson_stream(tmp_path / "missing.ndjson"))

        assert "File not found" in str(exc_info.value)

    def test_not_restartable(self, write_ndjson):
        path = write_ndjson("users.ndjson", [{"n": 1}])
        stream = ndjson_stream(path)

        assert list(stream) == [{"n": 1}]
        assert list(stream) == []


class TestValidatedStream:
    """Tests for validated_stream."""

    def test_validates_each_record(self, write_ndjson):
        path = write_ndjson(
            "users.ndjson",
            [
                {"Id": "auth0|1", "Email": "a@example.com", "Given Name": "Ann"},
                {"Id": "auth0|2", "Email": "b@example.com"},
            ],
        )

        users = list(validated_stream(path, ExportedUser))

        assert [u.id for u in users] == ["auth0|1", "auth0|2"]
        assert users[0].given_name == "Ann"

    def test_schema_failure_raises_parse_error(self, write_ndjson):
        path = write_ndjson(
            "users.ndjson",
            [{"Id": "auth0|1", "Email": "a@example.com"}, {"Email": "b@example.com"}],
        )

        with pytest.raises(RecordParseError) as exc_info:
            list(validated_stream(path, ExportedUser))

        assert exc_info.value.line_number == 2
        assert "Id" in str(exc_info.value)
