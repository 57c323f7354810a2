from shared.text import escape_markup


class TestEscapeMarkup:
    def test_escapes_angle_brackets(self):
        assert escape_markup("<script>alert(1)</script>") == "&lt;script&gt;alert(1)&lt;/script&gt;"

    def test_escapes_ampersand_and_quotes(self):
        assert escape_markup("a & \"b\" 'c'") == "a &amp; &quot;b&quot; &#x27;c&#x27;"

    def test_plain_text_unchanged(self):
        assert escape_markup("Alice") == "Alice"

    def test_non_string_is_stringified(self):
        assert escape_markup(42) == "42"
