import unittest
from datetime import datetime, timezone
from unittest import mock

import plexdash.format_template as format_template
from plexdash.field_kinds import KIND_DURATION
from plexdash.format_template import (
    render,
    render_details,
    template_keys,
    tokenize,
    validate_template,
)


NOW = datetime(2026, 3, 31, 12, 0, 0, tzinfo=timezone.utc)
NOW_EPOCH = int(NOW.timestamp())


class TestTokenize(unittest.TestCase):
    def test_splits_key_and_format_arg(self) -> None:
        tokens = tokenize("{title} added {added_at:relative}")
        self.assertEqual([t.key for t in tokens], ["title", "added_at"])
        self.assertEqual([t.arg for t in tokens], ["default", "relative"])
        self.assertEqual(tokens[1].text, "{added_at:relative}")
        self.assertEqual(tokens[1].start, len("{title} added "))

    def test_splits_on_first_colon_only(self) -> None:
        token = tokenize("{added_at:time:extra}")[0]
        self.assertEqual(token.key, "added_at")
        self.assertEqual(token.arg, "time:extra")

    def test_unterminated_brace_is_not_a_token(self) -> None:
        self.assertEqual(tokenize("Hello {title"), [])

    def test_inner_brace_starts_a_new_token(self) -> None:
        tokens = tokenize("{a{title}")
        self.assertEqual([t.text for t in tokens], ["{title}"])

    def test_template_keys_are_distinct_and_ordered(self) -> None:
        self.assertEqual(template_keys("{year} {title} {year:x}"), ["year", "title"])


class TestRender(unittest.TestCase):
    def test_movie_scenario(self) -> None:
        data = {"title": "The Matrix", "year": 1999, "duration": 8160}
        self.assertEqual(render("{title} ({year}) - {duration}", data), "The Matrix (1999) - 2h 16m")

    def test_show_scenario_keeps_literal_prefix_letters(self) -> None:
        data = {
            "grandparent_title": "Breaking Bad",
            "parent_media_index": 5,
            "media_index": 2,
            "mediaType": "show",
        }
        result = render("{grandparent_title} S{parent_media_index}E{media_index}", data)
        self.assertEqual(result, "Breaking Bad S05E02")

    def test_index_prefix_in_show_context(self) -> None:
        data = {"parent_media_index": 5, "media_index": 2, "mediaType": "show"}
        self.assertEqual(render("{parent_media_index}", data), "S05")
        self.assertEqual(render("{media_index}", data), "E02")
        self.assertEqual(render("{parent_media_index} - {media_index}", data), "S05 - E02")

    def test_index_padding_without_show_context(self) -> None:
        self.assertEqual(render("{media_index}", {"media_index": 5}), "05")
        self.assertEqual(render("{media_index}", {}), "00")

    def test_plex_index_aliases(self) -> None:
        data = {"parentIndex": 3, "index": 7, "type": "episode"}
        self.assertEqual(render("{parent_media_index}{media_index}", data), "S03E07")

    def test_relative_added_at(self) -> None:
        data = {"added_at": NOW_EPOCH - 3661}
        self.assertEqual(render("{added_at:relative}", data, now=NOW), "1 hour ago")

    def test_case_alias_symmetry(self) -> None:
        for data in ({"added_at": NOW_EPOCH - 120}, {"addedAt": NOW_EPOCH - 120}):
            snake = render("{added_at:relative}", data, now=NOW)
            camel = render("{addedAt:relative}", data, now=NOW)
            self.assertEqual(snake, camel)
            self.assertEqual(snake, "2 minutes ago")

    def test_unknown_key_renders_empty_and_keeps_literal_text(self) -> None:
        self.assertEqual(render("{nonexistent_field}", {}), "")
        self.assertEqual(render("Title: {nonexistent_field}!", {}), "Title: !")

    def test_malformed_token_left_literal(self) -> None:
        self.assertEqual(render("Hello {title", {"title": "x"}), "Hello {title")

    def test_repeated_tokens_all_replaced(self) -> None:
        self.assertEqual(render("{title}/{title}", {"title": "Up"}), "Up/Up")

    def test_absent_timestamp_renders_never(self) -> None:
        self.assertEqual(render("Seen {last_seen:relative}", {}), "Seen Never")

    def test_raw_data_merged_under_flat_fields(self) -> None:
        data = {"title": "Flat", "raw_data": {"title": "Raw", "year": 1999}}
        self.assertEqual(render("{title} ({year})", data), "Flat (1999)")

    def test_precomputed_duration_preferred(self) -> None:
        data = {"duration": 8160, "formatted_duration": "2h 21m"}
        self.assertEqual(render("{duration}", data), "2h 21m")

    def test_precomputed_last_seen_only_for_default_format(self) -> None:
        data = {"last_seen": NOW_EPOCH - 30, "last_seen_formatted": "just now"}
        self.assertEqual(render("{last_seen}", data, now=NOW), "just now")
        self.assertEqual(render("{last_seen:relative}", data, now=NOW), "30 seconds ago")

    def test_kind_specific_values(self) -> None:
        data = {
            "genres": ["Action", "Drama"],
            "count": 1250,
            "is_active": True,
            "state": "playing",
        }
        self.assertEqual(
            render("{genres} | {count} | {is_active} | {state}", data),
            "Action, Drama | 1,250 | Active | watching",
        )
        self.assertEqual(render("{state} {is_active}", {}), "watched Inactive")

    def test_category_override_for_library_last_played(self) -> None:
        data = {"last_played": NOW_EPOCH - 86400}
        self.assertEqual(render("{last_played:relative}", data, category="libraries", now=NOW), "1 day ago")
        self.assertEqual(render("{last_played}", {"last_played": "Madrigal"}, category="users"), "Madrigal")

    def test_non_string_template_and_data(self) -> None:
        self.assertEqual(render(None, {"title": "x"}), "")
        self.assertEqual(render("{title}-", None), "-")
        self.assertEqual(render("{title}", ["not", "a", "mapping"]), "")

    def test_failing_token_does_not_blank_template(self) -> None:
        def _boom(value, token, scope):
            raise RuntimeError("bad shape")

        with mock.patch.dict(format_template.KIND_FORMATTERS, {KIND_DURATION: _boom}):
            result = render_details("{title} - {duration}", {"title": "Up", "duration": 60})

        self.assertFalse(result["ok"])
        self.assertEqual(result["text"], "Up - ")
        self.assertEqual(len(result["errors"]), 1)
        self.assertEqual(result["errors"][0]["token"], "{duration}")
        self.assertIn("bad shape", result["errors"][0]["error"])

    def test_render_details_ok_for_clean_render(self) -> None:
        result = render_details("{title}", {"title": "Up"})
        self.assertEqual(result, {"ok": True, "text": "Up", "errors": []})

    def test_out_of_range_timestamps_render_invalid_date(self) -> None:
        result = render_details("{added_at} | {addedAt:short}", {"added_at": 10**400, "addedAt": "-1"})
        self.assertEqual(result, {"ok": True, "text": "Invalid Date | Invalid Date", "errors": []})


class TestValidateTemplate(unittest.TestCase):
    def test_empty_template_is_invalid(self) -> None:
        self.assertFalse(validate_template("   ")["valid"])
        self.assertFalse(validate_template(None)["valid"])

    def test_unterminated_brace_warns(self) -> None:
        validation = validate_template("{title} {year")
        self.assertTrue(validation["valid"])
        self.assertTrue(any("unterminated" in warning for warning in validation["warnings"]))

    def test_unknown_date_format_warns(self) -> None:
        validation = validate_template("{added_at:fortnight}")
        self.assertTrue(any("fortnight" in warning for warning in validation["warnings"]))

    def test_unknown_variable_for_category_warns(self) -> None:
        validation = validate_template("{friendly_name} {bogus}", category="users")
        self.assertEqual(validation["keys"], ["friendly_name", "bogus"])
        self.assertEqual(len(validation["warnings"]), 1)
        self.assertIn("bogus", validation["warnings"][0])


if __name__ == "__main__":
    unittest.main()
