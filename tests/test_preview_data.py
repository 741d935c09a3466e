import unittest
from datetime import datetime, timezone

from plexdash.preview_data import apply_formats, example_record, format_records, select_formats


NOW = datetime(2026, 3, 31, 12, 0, 0, tzinfo=timezone.utc)
NOW_EPOCH = int(NOW.timestamp())


class TestExampleRecords(unittest.TestCase):
    def test_timestamps_are_relative_to_now(self) -> None:
        record = example_record("recentlyAdded", "shows", now=NOW)
        self.assertEqual(record["addedAt"], NOW_EPOCH - 25 * 60)
        self.assertEqual(record["grandparent_title"], "Breaking Bad")

    def test_examples_are_copies(self) -> None:
        first = example_record("libraries", "music", now=NOW)
        first["section_name"] = "Changed"
        self.assertEqual(example_record("libraries", "music", now=NOW)["section_name"], "Music")

    def test_unknown_media_type_falls_back_to_first_example(self) -> None:
        self.assertEqual(example_record("downloads", "movies")["subtitle"], "Matrix")
        self.assertEqual(example_record("nope"), {})

    def test_example_renders_through_formats(self) -> None:
        record = example_record("recentlyAdded", "shows", now=NOW)
        rendered = apply_formats(
            record,
            [{"name": "Episode", "template": "{grandparent_title} S{parent_media_index}E{media_index} - {addedAt:relative}"}],
            now=NOW,
        )
        self.assertEqual(rendered, {"Episode": "Breaking Bad S05E02 - 25 minutes ago"})


class TestSelectAndApply(unittest.TestCase):
    FORMATS = [
        {"name": "Everywhere", "template": "{title}"},
        {"name": "Section 1", "template": "{title} ({year})", "sectionId": "1"},
        {"name": "All sections", "template": "{year}", "sectionId": "all"},
        {"name": "Shows only", "template": "{grandparent_title}", "mediaType": "shows"},
    ]

    def test_scope_filtering(self) -> None:
        names = [entry["name"] for entry in select_formats(self.FORMATS, section_id=1, media_type="movies")]
        self.assertEqual(names, ["Everywhere", "Section 1", "All sections"])

        names = [entry["name"] for entry in select_formats(self.FORMATS, section_id="2", media_type="shows")]
        self.assertEqual(names, ["Everywhere", "All sections", "Shows only"])

        names = [entry["name"] for entry in select_formats(self.FORMATS)]
        self.assertEqual(names, ["Everywhere", "All sections"])

    def test_format_records_leaves_input_untouched(self) -> None:
        records = [{"title": "Up", "year": 2009}]
        output = format_records(records, self.FORMATS[:2])
        self.assertEqual(output[0]["formatted"], {"Everywhere": "Up", "Section 1": "Up (2009)"})
        self.assertNotIn("formatted", records[0])

    def test_nameless_formats_skipped(self) -> None:
        self.assertEqual(apply_formats({"title": "Up"}, [{"name": " ", "template": "{title}"}]), {})


if __name__ == "__main__":
    unittest.main()
