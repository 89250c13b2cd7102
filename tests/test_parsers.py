"""
Unit tests for the gitpub parsers.

Covers the three input encodings (microformats2 JSON, form fields, stored
documents) and the conversion back to microformats2 JSON.
"""

import copy
import unittest

from gitpub.parsers import (
    get_property_value,
    items_to_array,
    from_structured,
    from_form,
    from_document,
    to_structured,
    split_document,
    StructuredParser,
    FormParser,
    DocumentParser,
)
from gitpub.content import serialize


LIKED_URL = "https://domain.tld"

JSON_POST = {
    "type": ["h-entry"],
    "properties": {
        "name": ["Title"],
        "content": ["Content goes here\r\nAnd thats all"],
        "category": ["one", "two", "three"],
        "post-status": ["published"],
        "visibility": ["public"],
        "mp-slug": ["this-is-a-slug"],
        "like-of": [LIKED_URL],
        "bookmark-of": [LIKED_URL],
        "in-reply-to": [LIKED_URL],
        "rsvp": ["maybe"],
        "deleted": [True],
        "photo": [LIKED_URL],
    },
}

FORM_POST = {
    "h": "entry",
    "content": "Content goes here\r\nAnd thats all",
    "name": "Title",
    "category": ["one", "two", "three"],
    "mp-slug": "this-is-a-slug",
    "like-of": LIKED_URL,
    "bookmark-of": LIKED_URL,
    "in-reply-to": LIKED_URL,
    "photo": LIKED_URL,
    "rsvp": "maybe",
    "deleted": True,
}

DOCUMENT = (
    "---\n"
    "date: 2021-09-09T12:23:34.120Z\n"
    'title: "Title"\n'
    "tags:\n"
    " - one\n"
    " - two\n"
    " - three\n"
    "updated: 2021-10-09T12:23:34.120Z\n"
    f"like-of: {LIKED_URL}\n"
    f"bookmark-of: {LIKED_URL}\n"
    f"in-reply-to: {LIKED_URL}\n"
    "rsvp: maybe\n"
    "deleted: true\n"
    "---\n"
    "\n"
    "Content goes here\r\nAnd thats all"
)

CHECKIN_POST = {
    "type": ["h-entry"],
    "properties": {
        "published": ["2025-06-30T09:21:17+02:00"],
        "syndication": ["https://www.swarmapp.com/user/1399634990/checkin/68623aeded37c54e6215ca7c"],
        "checkin": [{
            "type": ["h-card"],
            "properties": {
                "name": ["MazeMap AS"],
                "url": ["https://foursquare.com/v/641c535d7e3e0f67a6a86e0f", "https://www.mazemap.com"],
                "latitude": [63.432685],
                "longitude": [10.407206],
                "locality": ["Trondheim"],
                "country-name": ["Norway"],
            },
            "value": "https://foursquare.com/v/641c535d7e3e0f67a6a86e0f",
        }],
        "location": [{
            "type": ["h-adr"],
            "properties": {
                "latitude": [63.432685],
                "longitude": [10.407206],
            },
        }],
    },
}


class TestValueHelpers(unittest.TestCase):
    """Test the property value helpers."""

    def test_get_property_value(self):
        """Test first-element extraction."""
        self.assertEqual(get_property_value(["test"]), "test")
        self.assertEqual(get_property_value("test"), "test")
        self.assertIsNone(get_property_value([]))
        self.assertIsNone(get_property_value(None))
        self.assertEqual(get_property_value(["one", "two"]), "one")

    def test_items_to_array(self):
        """Test scalar wrapping."""
        self.assertEqual(items_to_array("sample"), ["sample"])
        self.assertEqual(len(items_to_array(["one", "two"])), 2)
        self.assertEqual(items_to_array(None), [])


class TestFromStructured(unittest.TestCase):
    """Test microformats2 JSON parsing."""

    def setUp(self):
        """Set up test fixtures."""
        self.post = copy.deepcopy(JSON_POST)

    def test_data_with_categories(self):
        """Test a full post is reduced to the canonical record."""
        data = from_structured(self.post)

        self.assertEqual(data["type"], "h-entry")
        self.assertEqual(data["name"], "Title")
        self.assertEqual(data["category"], ["one", "two", "three"])
        self.assertEqual(data["like-of"], LIKED_URL)
        self.assertEqual(data["bookmark-of"], LIKED_URL)
        self.assertEqual(data["in-reply-to"], LIKED_URL)
        self.assertEqual(data["rsvp"], "maybe")
        self.assertIs(data["deleted"], True)
        self.assertEqual(data["slug"], "this-is-a-slug")
        self.assertNotIn("mp-slug", data)

    def test_data_without_categories(self):
        """Test a missing category leaves the key absent."""
        del self.post["properties"]["category"]
        data = from_structured(self.post)

        self.assertEqual(data["name"], "Title")
        self.assertNotIn("category", data)

    def test_single_category_stays_a_list(self):
        """Test category is never unwrapped."""
        self.post["properties"]["category"] = ["one"]
        self.assertEqual(from_structured(self.post)["category"], ["one"])

    def test_multi_valued_property_kept_whole(self):
        """Test properties with several values lose nothing."""
        self.post["properties"]["syndication"] = ["https://a.example", "https://b.example"]
        data = from_structured(self.post)
        self.assertEqual(data["syndication"], ["https://a.example", "https://b.example"])

    def test_empty_property_is_absent(self):
        """Test an empty value list yields no key."""
        self.post["properties"]["summary"] = []
        self.assertNotIn("summary", from_structured(self.post))

    def test_photo_without_alt(self):
        """Test bare photo URLs are kept as strings."""
        data = from_structured(self.post)
        self.assertEqual(data["photo"], [LIKED_URL])

    def test_photo_with_alt(self):
        """Test photo objects keep value and alt."""
        self.post["properties"]["photo"] = [{"value": LIKED_URL, "alt": "alt-text"}]
        data = from_structured(self.post)

        self.assertEqual(len(data["photo"]), 1)
        self.assertEqual(data["photo"][0]["value"], LIKED_URL)
        self.assertEqual(data["photo"][0]["alt"], "alt-text")

    def test_checkin_with_location(self):
        """Test checkin and location sub-objects pass through verbatim."""
        data = from_structured(copy.deepcopy(CHECKIN_POST))

        self.assertEqual(data["published"], "2025-06-30T09:21:17+02:00")
        self.assertEqual(
            data["syndication"],
            "https://www.swarmapp.com/user/1399634990/checkin/68623aeded37c54e6215ca7c",
        )
        self.assertEqual(len(data["checkin"]), 1)
        self.assertEqual(data["checkin"][0]["properties"]["name"][0], "MazeMap AS")
        self.assertEqual(data["checkin"][0], CHECKIN_POST["properties"]["checkin"][0])
        self.assertEqual(data["location"][0]["properties"]["latitude"][0], 63.432685)

    def test_html_content(self):
        """Test structured content is reduced to its html."""
        self.post["properties"]["content"] = [{"html": "<p>Hi</p>", "value": "Hi"}]
        self.assertEqual(from_structured(self.post)["content"], "<p>Hi</p>")

        self.post["properties"]["content"] = [{"value": "Hi"}]
        self.assertEqual(from_structured(self.post)["content"], "Hi")

    def test_draft_status(self):
        """Test post-status draft becomes the draft flag."""
        self.post["properties"]["post-status"] = ["draft"]
        data = from_structured(self.post)
        self.assertIs(data["draft"], True)
        self.assertNotIn("post-status", data)

    def test_server_commands_dropped(self):
        """Test mp-* commands other than mp-slug are not stored."""
        self.post["properties"]["mp-syndicate-to"] = ["https://social.example"]
        self.assertNotIn("mp-syndicate-to", from_structured(self.post))

    def test_type_as_string(self):
        """Test a plain string type is accepted."""
        data = from_structured({"type": "h-entry", "properties": {"content": ["x"]}})
        self.assertEqual(data["type"], "h-entry")

    def test_invalid_input(self):
        """Test missing or non-mapping input yields an empty record."""
        self.assertEqual(from_structured(None), {})
        self.assertEqual(from_structured("nope"), {})
        self.assertEqual(StructuredParser().parse([]), {})


class TestFromForm(unittest.TestCase):
    """Test form field parsing."""

    def setUp(self):
        """Set up test fixtures."""
        self.form = dict(FORM_POST)

    def test_multiple_categories(self):
        """Test a full form post."""
        data = from_form(self.form)

        self.assertEqual(data["type"], "h-entry")
        self.assertEqual(data["name"], "Title")
        self.assertEqual(len(data["category"]), 3)
        self.assertEqual(data["like-of"], LIKED_URL)
        self.assertEqual(data["bookmark-of"], LIKED_URL)
        self.assertEqual(data["in-reply-to"], LIKED_URL)
        self.assertEqual(data["rsvp"], "maybe")
        self.assertIs(data["deleted"], True)
        self.assertEqual(data["slug"], "this-is-a-slug")

    def test_single_array_of_categories(self):
        """Test a one-element category list."""
        self.form["category"] = ["one"]
        self.assertEqual(from_form(self.form)["category"], ["one"])

    def test_single_string_category(self):
        """Test a single category string becomes a list."""
        self.form["category"] = "one"
        self.assertEqual(from_form(self.form)["category"], ["one"])

    def test_bracketed_category(self):
        """Test category[] values are collected."""
        del self.form["category"]
        self.form["category[]"] = ["one", "two"]
        self.assertEqual(from_form(self.form)["category"], ["one", "two"])

    def test_combine_photos(self):
        """Test photo, photo[], file and file[] merge in order."""
        self.form["photo"] = "image1"
        self.form["photo[]"] = ["image2", "image3"]
        self.form["file"] = "image4"
        self.form["file[]"] = ["image5"]
        data = from_form(self.form)
        self.assertEqual(data["photo"], ["image1", "image2", "image3", "image4", "image5"])

    def test_photo_without_alt(self):
        """Test a single photo URL."""
        data = from_form(self.form)
        self.assertEqual(data["photo"], [LIKED_URL])

    def test_control_fields_dropped(self):
        """Test request control fields are not properties."""
        self.form.update({"access_token": "secret", "action": "create", "url": "https://x"})
        data = from_form(self.form)
        for field in ("access_token", "action", "url", "h"):
            self.assertNotIn(field, data)

    def test_h_selects_type(self):
        """Test the h field selects the microformat type."""
        self.assertEqual(from_form({"h": "event", "name": "Party"})["type"], "h-event")
        self.assertEqual(from_form({"content": "hi"})["type"], "h-entry")

    def test_draft_status(self):
        """Test post-status=draft becomes the draft flag."""
        data = from_form({"content": "hi", "post-status": "draft"})
        self.assertIs(data["draft"], True)

    def test_invalid_input(self):
        """Test non-mapping input yields an empty record."""
        self.assertEqual(FormParser().parse(None), {})


class TestFromDocument(unittest.TestCase):
    """Test stored document parsing."""

    def test_parse_document(self):
        """Test a stored document is mapped back to the record."""
        parsed = from_document(DOCUMENT)

        self.assertEqual(parsed["type"], "h-entry")
        self.assertEqual(parsed["name"], "Title")
        self.assertEqual(parsed["category"], ["one", "two", "three"])
        self.assertEqual(parsed["content"], FORM_POST["content"])
        self.assertEqual(parsed["like-of"], LIKED_URL)
        self.assertEqual(parsed["bookmark-of"], LIKED_URL)
        self.assertEqual(parsed["in-reply-to"], LIKED_URL)
        self.assertEqual(parsed["rsvp"], "maybe")
        self.assertTrue(parsed["deleted"])

    def test_timestamps_stay_strings(self):
        """Test YAML timestamps are normalized back to ISO-8601 strings."""
        parsed = from_document(DOCUMENT)
        self.assertEqual(parsed["published"], "2021-09-09T12:23:34.120Z")
        self.assertEqual(parsed["updated"], "2021-10-09T12:23:34.120Z")

    def test_single_tag_becomes_list(self):
        """Test a scalar tags header still yields a category list."""
        parsed = from_document("---\ntags: one\n---\nbody\n")
        self.assertEqual(parsed["category"], ["one"])
        self.assertEqual(parsed["content"], "body")

    def test_document_without_header(self):
        """Test a document without a header is all body."""
        parsed = from_document("Just text")
        self.assertEqual(parsed["content"], "Just text")
        self.assertEqual(parsed["type"], "h-entry")

    def test_invalid_header(self):
        """Test an unparseable header yields an empty record."""
        self.assertEqual(from_document("---\ntitle: [unclosed\n---\nbody\n"), {})
        self.assertEqual(from_document("---\n- a list\n---\nbody\n"), {})
        self.assertEqual(DocumentParser().parse(None), {})

    def test_split_document(self):
        """Test header and body are split on the delimiter lines."""
        header, body = split_document("---\na: 1\n---\nbody\n")
        self.assertEqual(header, "a: 1\n")
        self.assertEqual(body, "body\n")

    def test_crlf_document(self):
        """Test CRLF line endings leave no carriage returns in the record."""
        parsed = from_document("---\r\ntitle: T\r\n---\r\nBody\r\n")
        self.assertEqual(parsed["name"], "T")
        self.assertEqual(parsed["content"], "Body")

        parsed = from_document("---\r\ntitle: T\r\n---\r\n\r\nFirst\r\nSecond\r\n")
        self.assertEqual(parsed["content"], "First\r\nSecond")

    def test_unclosed_header(self):
        """Test a document without a closing delimiter is all body."""
        parsed = from_document("---\ntitle: T\n")
        self.assertNotIn("name", parsed)
        self.assertEqual(parsed["content"], "---\ntitle: T")

    def test_serialized_document_round_trip(self):
        """Test a serialized record parses back to the same properties."""
        record = {
            "type": "h-entry",
            "date": "2021-09-09T12:23:34.120Z",
            "name": "Title",
            "category": ["one", "two"],
            "content": "    indented\n\nLine two  ",
        }
        parsed = from_document(serialize(record))

        self.assertEqual(parsed["name"], "Title")
        self.assertEqual(parsed["category"], ["one", "two"])
        self.assertEqual(parsed["published"], "2021-09-09T12:23:34.120Z")
        self.assertEqual(parsed["content"], "    indented\n\nLine two  ")


class TestToStructured(unittest.TestCase):
    """Test conversion back to microformats2 JSON."""

    def test_json_to_source(self):
        """Test a parsed JSON post converts back."""
        source = to_structured(from_structured(copy.deepcopy(JSON_POST)))

        self.assertEqual(source["type"], ["h-entry"])
        self.assertIn("properties", source)
        self.assertEqual(len(source["properties"]["category"]), 3)
        self.assertEqual(source["properties"]["name"], ["Title"])
        self.assertEqual(source["properties"]["mp-slug"], ["this-is-a-slug"])
        self.assertNotIn("type", source["properties"])

    def test_form_to_source(self):
        """Test a parsed form post converts back."""
        source = to_structured(from_form(dict(FORM_POST)))

        self.assertEqual(len(source["properties"]["category"]), 3)
        self.assertEqual(source["properties"]["name"], ["Title"])

    def test_draft_flag(self):
        """Test the draft flag becomes post-status."""
        source = to_structured({"type": "h-entry", "content": "x", "draft": True})
        self.assertEqual(source["properties"]["post-status"], ["draft"])
        self.assertNotIn("draft", source["properties"])

    def test_nested_mapping_wrapped(self):
        """Test mapping values become one-element lists."""
        source = to_structured({"location_picture": {"dark": "a.png", "light": "b.png"}})
        self.assertEqual(source["properties"]["location_picture"], [{"dark": "a.png", "light": "b.png"}])

    def test_properties_filter(self):
        """Test the properties filter restricts the answer."""
        record = from_structured(copy.deepcopy(JSON_POST))

        source = to_structured(record, ["name", "category"])
        self.assertEqual(sorted(source["properties"]), ["category", "name"])

        source = to_structured(record, "name")
        self.assertEqual(list(source["properties"]), ["name"])

    def test_round_trip(self):
        """Test structured input survives a trip through to_structured."""
        for post in (JSON_POST, CHECKIN_POST):
            record = from_structured(copy.deepcopy(post))
            self.assertEqual(from_structured(to_structured(record)), record)

    def test_missing_record(self):
        """Test a missing record yields an empty property set."""
        self.assertEqual(to_structured(None), {"type": ["h-entry"], "properties": {}})


if __name__ == '__main__':
    unittest.main(verbosity=2)
