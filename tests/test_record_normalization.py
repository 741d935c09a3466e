import unittest

from plexdash.field_kinds import KIND_INDEX, KIND_PASSTHROUGH, KIND_TIMESTAMP, field_kinds_for, kind_for
from plexdash.record_normalization import (
    camel_to_snake,
    case_alias,
    lookup,
    media_type_of,
    normalize_record,
    snake_to_camel,
)


class TestCaseTransforms(unittest.TestCase):
    def test_camel_to_snake(self) -> None:
        self.assertEqual(camel_to_snake("addedAt"), "added_at")
        self.assertEqual(camel_to_snake("originallyAvailableAt"), "originally_available_at")
        self.assertEqual(camel_to_snake("librarySectionID"), "library_section_id")

    def test_snake_to_camel(self) -> None:
        self.assertEqual(snake_to_camel("last_viewed_at"), "lastViewedAt")
        self.assertEqual(snake_to_camel("title"), "title")

    def test_private_style_keys_get_no_alias(self) -> None:
        self.assertIsNone(case_alias("_internal"))
        self.assertIsNone(case_alias("trailing_"))
        self.assertIsNone(case_alias("double__under"))
        self.assertIsNone(case_alias("title"))


class TestNormalizeRecord(unittest.TestCase):
    def test_synthesizes_both_spellings(self) -> None:
        normalized = normalize_record({"addedAt": 10, "grandparent_title": "Queen"})
        self.assertEqual(normalized["added_at"], 10)
        self.assertEqual(normalized["grandparentTitle"], "Queen")

    def test_flat_fields_win_over_raw_including_aliases(self) -> None:
        normalized = normalize_record(
            {
                "title": "Flat",
                "addedAt": 2,
                "raw_data": {"title": "Raw", "added_at": 1, "studio": "Warner"},
            }
        )
        self.assertEqual(normalized["title"], "Flat")
        self.assertEqual(normalized["added_at"], 2)
        self.assertEqual(normalized["addedAt"], 2)
        self.assertEqual(normalized["studio"], "Warner")
        self.assertNotIn("raw_data", normalized)

    def test_existing_alias_not_overwritten(self) -> None:
        normalized = normalize_record({"added_at": 1, "addedAt": 2})
        self.assertEqual(normalized["added_at"], 1)
        self.assertEqual(normalized["addedAt"], 2)

    def test_idempotent(self) -> None:
        record = {"addedAt": 5, "media_index": 2, "rawData": {"parent_media_index": 1}}
        once = normalize_record(record)
        self.assertEqual(normalize_record(once), once)

    def test_non_mapping_input(self) -> None:
        self.assertEqual(normalize_record(None), {})
        self.assertEqual(normalize_record("title"), {})


class TestLookup(unittest.TestCase):
    def test_key_specific_aliases(self) -> None:
        record = normalize_record({"parentIndex": 3, "index": 7, "librarySectionID": 4})
        self.assertEqual(lookup(record, "parent_media_index"), 3)
        self.assertEqual(lookup(record, "media_index"), 7)
        self.assertEqual(lookup(record, "section_id"), 4)

    def test_alias_resolves_back_to_canonical(self) -> None:
        record = {"media_type": "show"}
        self.assertEqual(lookup(record, "mediaType"), "show")

    def test_missing_key(self) -> None:
        self.assertIsNone(lookup({}, "title"))

    def test_media_type_of(self) -> None:
        self.assertEqual(media_type_of({"mediaType": "Show"}), "show")
        self.assertEqual(media_type_of({"type": "episode"}), "episode")
        self.assertEqual(media_type_of({}), "")


class TestFieldKinds(unittest.TestCase):
    def test_kind_lookup(self) -> None:
        self.assertEqual(kind_for("added_at"), KIND_TIMESTAMP)
        self.assertEqual(kind_for("lastViewedAt"), KIND_TIMESTAMP)
        self.assertEqual(kind_for("parentIndex"), KIND_INDEX)
        self.assertEqual(kind_for("title"), KIND_PASSTHROUGH)

    def test_category_override(self) -> None:
        self.assertEqual(kind_for("last_played", field_kinds_for("libraries")), KIND_TIMESTAMP)
        self.assertEqual(kind_for("last_played", field_kinds_for("users")), KIND_PASSTHROUGH)


if __name__ == "__main__":
    unittest.main()
