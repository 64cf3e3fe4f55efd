"""Tests for comment content validation and sanitization."""

import pytest

from blog_comments.comments.errors import CommentValidationError
from blog_comments.comments.validation import sanitize_content, validate_content


class TestValidateContent:
    """Tests for validate_content."""

    @pytest.mark.parametrize("content", [None, "", "   ", "\n\t "])
    def test_empty_content_rejected(self, content: str | None) -> None:
        """Blank input fails with reason 'empty'."""
        with pytest.raises(CommentValidationError) as exc_info:
            validate_content(content)
        assert exc_info.value.reason == "empty"
        assert exc_info.value.code == "validation_error"

    def test_too_short(self) -> None:
        """Fewer than 5 trimmed characters is too short."""
        with pytest.raises(CommentValidationError) as exc_info:
            validate_content("  abcd  ")
        assert exc_info.value.reason == "too_short"

    def test_too_long(self) -> None:
        """More than 2000 characters is too long."""
        with pytest.raises(CommentValidationError) as exc_info:
            validate_content("a" * 2001)
        assert exc_info.value.reason == "too_long"

    @pytest.mark.parametrize("length", [5, 2000])
    def test_boundaries_accepted(self, length: int) -> None:
        """Both ends of the allowed range are valid."""
        assert validate_content("x" * length) == "x" * length

    def test_returns_trimmed_text(self) -> None:
        """Surrounding whitespace is removed from the result."""
        assert validate_content("   Great post!  \n") == "Great post!"

    def test_length_measured_after_trim(self) -> None:
        """Padding does not count towards the maximum."""
        assert len(validate_content("  " + "y" * 2000 + "  ")) == 2000

    def test_custom_limits(self) -> None:
        """Limits come from the caller."""
        with pytest.raises(CommentValidationError):
            validate_content("hello world", min_length=20)


class TestSanitizeContent:
    """Tests for sanitize_content."""

    def test_plain_text_unchanged(self) -> None:
        """Text without markup passes through."""
        assert sanitize_content("Great post, thanks!") == "Great post, thanks!"

    def test_script_block_removed_with_body(self) -> None:
        """Script tags are dropped together with their code."""
        assert sanitize_content("Hello <script>alert('x')</script>world") == "Hello world"

    def test_style_block_removed_with_body(self) -> None:
        """Style blocks disappear entirely."""
        assert sanitize_content("<style>body { color: red }</style>Nice post") == "Nice post"

    def test_script_block_case_insensitive_multiline(self) -> None:
        """Script detection ignores case and spans lines."""
        content = "Before<SCRIPT type='text/javascript'>\nvar a = 1;\n</Script>After"
        assert sanitize_content(content) == "BeforeAfter"

    def test_tags_removed_inner_text_kept(self) -> None:
        """Formatting tags go, their text stays."""
        assert sanitize_content("<b>bold</b> and <i>italic</i>") == "bold and italic"

    def test_pseudo_protocol_stripped(self) -> None:
        """javascript: and friends are removed from plain text."""
        assert sanitize_content("javascript:alert(1)") == "alert(1)"
        assert sanitize_content("VBScript:msgbox") == "msgbox"

    def test_link_with_script_href(self) -> None:
        """Anchor markup is removed, leaving only the link text."""
        assert sanitize_content('<a href="javascript:alert(1)">click me</a>') == "click me"

    def test_event_handler_pattern_stripped(self) -> None:
        """Inline handler assignments are removed."""
        assert sanitize_content("hover onmouseover=steal() here") == "hover steal() here"

    def test_result_trimmed(self) -> None:
        """Whitespace left around removed markup is trimmed."""
        assert sanitize_content("  <p>spaced</p>  ") == "spaced"

    def test_markup_only_becomes_empty(self) -> None:
        """Input made only of markup sanitizes to an empty string."""
        assert sanitize_content("<div><br/></div>") == ""

    @pytest.mark.parametrize(
        "content",
        [
            "Hello <script>alert('x')</script>world",
            "<b>bold</b> onclick=x javascript:y",
            "<<b>>text<</b>>",
        ],
    )
    def test_idempotent(self, content: str) -> None:
        """Sanitizing twice gives the same result as once."""
        once = sanitize_content(content)
        assert sanitize_content(once) == once

    @pytest.mark.parametrize(
        "content",
        [
            "plain words only",
            "<em>emphasis</em> matters",
            "x <span class='a'>y</span> z",
        ],
    )
    def test_never_longer_and_tag_free(self, content: str) -> None:
        """Sanitized text is no longer than the input and has no tags."""
        sanitized = sanitize_content(validate_content(content))
        assert len(sanitized) <= len(content)
        assert "<" not in sanitized
        assert ">" not in sanitized
