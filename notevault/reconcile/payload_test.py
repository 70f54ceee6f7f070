import pytest

from notevault.data_models.records import MergeStrategy
from notevault.errors import ValidationError
from notevault.reconcile.payload import parse_merge_strategy, validate_import_data
from notevault.storage.factories import FileEntryFactory, FolderEntryFactory, build_payload


class TestValidateImportData:
    def test_valid_payload(self):
        folder = FolderEntryFactory(id="d1", name="Inbox", parentId=None)
        file = FileEntryFactory(id="f1", folderId="d1", content="")

        payload = validate_import_data(build_payload([folder], [file]))

        assert payload.folders[0].parent_id is None
        assert payload.files[0].folder_id == "d1"
        assert payload.files[0].content == ""

    def test_float_timestamp_and_extra_keys_are_fine(self):
        data = build_payload(exported_at=1700000000000.5)
        data["generator"] = "other-app"
        assert validate_import_data(data).folders == []

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            "payload",
            {"version": "1.0", "exportedAt": 1, "files": []},
            {"version": "1.0", "exportedAt": 1, "folders": {}, "files": []},
            {"version": "1.0", "exportedAt": 1, "folders": [], "files": None},
            {"version": 1, "exportedAt": 1, "folders": [], "files": []},
            {"exportedAt": 1, "folders": [], "files": []},
            {"version": "1.0", "exportedAt": "yesterday", "folders": [], "files": []},
            {"version": "1.0", "exportedAt": True, "folders": [], "files": []},
        ],
    )
    def test_malformed_top_level(self, data):
        with pytest.raises(ValidationError, match="Invalid import data format"):
            validate_import_data(data)

    def test_folder_without_parent_key(self):
        folder = FolderEntryFactory()
        del folder["parentId"]
        with pytest.raises(ValidationError, match="folders.0.parentId"):
            validate_import_data(build_payload([folder]))

    @pytest.mark.parametrize("field", ["id", "name"])
    def test_folder_with_empty_identity(self, field):
        folder = FolderEntryFactory(**{field: ""})
        with pytest.raises(ValidationError):
            validate_import_data(build_payload([folder]))

    @pytest.mark.parametrize("field", ["id", "name", "folderId", "content"])
    def test_file_missing_required_key(self, field):
        file = FileEntryFactory()
        del file[field]
        with pytest.raises(ValidationError, match=f"files.0.{field}"):
            validate_import_data(build_payload(files=[file]))


class TestParseMergeStrategy:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("overwrite", MergeStrategy.OVERWRITE),
            ("skip", MergeStrategy.SKIP),
            ("duplicate", MergeStrategy.DUPLICATE),
            ("prompt", MergeStrategy.DUPLICATE),
            (MergeStrategy.SKIP, MergeStrategy.SKIP),
        ],
    )
    def test_known_values(self, value, expected):
        assert parse_merge_strategy(value) is expected

    def test_unknown_value(self):
        with pytest.raises(ValidationError, match="Unknown merge strategy 'merge'"):
            parse_merge_strategy("merge")
