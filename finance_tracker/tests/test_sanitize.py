# finance_tracker/tests/test_sanitize.py
# Tests for the XSS sanitization helpers

from finance_tracker.sanitize import (
    escape_html, remove_special_characters, sanitize_basic, sanitize_budget_notes,
    sanitize_chatbot_response, sanitize_email, sanitize_filename, sanitize_json, sanitize_list,
    sanitize_object, sanitize_rich, sanitize_strict, sanitize_transaction_description, sanitize_url
)


def test_strict_strips_every_tag():
    assert sanitize_strict("<b>Lunch</b> at <i>Jollibee</i>") == "Lunch at Jollibee"
    assert "<" not in sanitize_strict('<img src=x onerror="alert(1)">Coffee')
    assert sanitize_transaction_description("<p>Rent</p>") == "Rent"


def test_non_strings_become_empty():
    for value in (None, "", 42, ["<b>x</b>"]):
        assert sanitize_strict(value) == ""
        assert sanitize_basic(value) == ""


def test_basic_keeps_simple_formatting():
    cleaned = sanitize_basic('<b>Save</b> <a href="http://evil">more</a>')
    assert "<b>Save</b>" in cleaned
    assert "<a" not in cleaned
    assert sanitize_budget_notes("<em>Groceries</em>") == "<em>Groceries</em>"


def test_rich_keeps_links_but_not_handlers():
    cleaned = sanitize_rich('<a href="https://example.com" onclick="steal()">tips</a>')
    assert 'href="https://example.com"' in cleaned
    assert "onclick" not in cleaned
    assert "<h2>" in sanitize_chatbot_response("<h2>Budget</h2>")
    assert "<script>" not in sanitize_chatbot_response("<script>alert(1)</script>Hi")


def test_sanitize_object_and_list():
    original = {"description": "<b>x</b>", "amount": 10, "notes": "<i>y</i>"}
    cleaned = sanitize_object(original, ["description"])
    assert cleaned == {"description": "x", "amount": 10, "notes": "<i>y</i>"}
    assert original["description"] == "<b>x</b>"

    assert sanitize_list([{"name": "<b>a</b>"}, {"name": "b"}], ["name"]) == [{"name": "a"}, {"name": "b"}]


def test_remove_special_characters():
    assert remove_special_characters(" a\x00b\x07c\tline\n ") == "abc\tline"


def test_sanitize_email():
    assert sanitize_email("  Juan@Example.COM ") == "juan@example.com"
    assert sanitize_email("not-an-email") == ""


def test_sanitize_url():
    assert sanitize_url("https://example.com/a?b=1") == "https://example.com/a?b=1"
    assert sanitize_url("javascript:alert(1)") == ""
    assert sanitize_url("ftp://example.com") == ""
    assert sanitize_url("http://") == ""


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "etcpasswd"
    assert sanitize_filename('re<port>:"march".csv') == "reportmarch.csv"


def test_escape_html():
    assert escape_html('<a href="/x">&</a>') == "&lt;a href=&quot;&#x2F;x&quot;&gt;&amp;&lt;&#x2F;a&gt;"


def test_sanitize_json():
    assert sanitize_json('{ "a": [1, 2] }') == '{"a":[1,2]}'
    assert sanitize_json("{broken") == "{}"
    assert sanitize_json(None) == "{}"
