"""Tests for the spam heuristics."""

import pytest

from blog_comments.comments.validation import SpamHeuristics, SpamVerdict
from blog_comments.config import Settings
from blog_comments.config.settings import DEFAULT_SPAM_KEYWORDS


@pytest.fixture
def heuristics() -> SpamHeuristics:
    return SpamHeuristics(keywords=DEFAULT_SPAM_KEYWORDS)


class TestKeywords:
    """Denylist keyword rule."""

    def test_clean_text_not_spam(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("Great post, thanks!")
        assert verdict.is_spam is False
        assert verdict.reasons == []
        assert verdict.summary is None

    @pytest.mark.parametrize("keyword", ["viagra", "casino", "click here", "free money"])
    def test_keyword_flags_spam(self, heuristics: SpamHeuristics, keyword: str) -> None:
        """Any denylisted keyword is sufficient, and the reason names it."""
        verdict = heuristics.check(f"Nice article. Also {keyword} for you")
        assert verdict.is_spam is True
        assert any(keyword in reason for reason in verdict.reasons)

    def test_keyword_match_is_case_insensitive(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("Visit the best Casino in town today")
        assert verdict.reasons == ['Contains spam keyword: "casino"']

    def test_keyword_match_is_substring(self) -> None:
        heuristics = SpamHeuristics(keywords=["crypto"])
        assert heuristics.check("Cheap CRYPTOCOINS here").is_spam is True

    def test_blank_keywords_ignored(self) -> None:
        heuristics = SpamHeuristics(keywords=["", "  "])
        assert heuristics.check("perfectly normal text").is_spam is False


class TestUrls:
    """URL count rule."""

    def test_two_urls_allowed(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("See http://a.org and https://b.org for details")
        assert verdict.is_spam is False

    def test_more_than_two_urls_flagged(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("http://a.org http://b.org www.c.org")
        assert verdict.is_spam is True
        assert "Too many URLs (3)" in verdict.reasons

    def test_bare_dot_com_counts(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("shop.com deals.com stuff.com")
        assert "Too many URLs (3)" in verdict.reasons

    def test_threshold_configurable(self) -> None:
        heuristics = SpamHeuristics(keywords=[], max_urls=0)
        assert heuristics.check("read https://example.org").is_spam is True


class TestCapitalization:
    """Shouting rule."""

    def test_mostly_caps_long_text_flagged(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("THIS IS A VERY LOUD COMMENT INDEED")
        assert "Excessive capitalization" in verdict.reasons

    def test_short_caps_text_allowed(self, heuristics: SpamHeuristics) -> None:
        """Texts of 20 characters or fewer are exempt."""
        assert heuristics.check("HELLO THERE").is_spam is False

    def test_normal_case_long_text_allowed(self, heuristics: SpamHeuristics) -> None:
        assert heuristics.check("I Really Liked This Article A Lot").is_spam is False


class TestRepetition:
    """Repeated character rule."""

    def test_six_repeats_flagged(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check("Nooooooo way that happened")
        assert "Repetitive characters detected" in verdict.reasons

    def test_five_repeats_allowed(self, heuristics: SpamHeuristics) -> None:
        assert heuristics.check("Hmmmmm, interesting").is_spam is False

    def test_repeated_punctuation_flagged(self, heuristics: SpamHeuristics) -> None:
        assert heuristics.check("Wow!!!!!! amazing").is_spam is True


class TestVerdict:
    """Verdict aggregation and configuration."""

    def test_all_triggered_rules_reported(self, heuristics: SpamHeuristics) -> None:
        verdict = heuristics.check(
            "BUY NOW FROM HTTP://A.ORG HTTP://B.ORG HTTP://C.ORG " + "Z" * 20
        )
        assert 'Contains spam keyword: "buy now"' in verdict.reasons
        assert "Too many URLs (3)" in verdict.reasons
        assert "Excessive capitalization" in verdict.reasons
        assert "Repetitive characters detected" in verdict.reasons

    def test_summary_joins_reasons(self) -> None:
        verdict = SpamVerdict(is_spam=True, reasons=["one", "two"])
        assert verdict.summary == "one; two"

    def test_from_settings(self) -> None:
        settings = Settings(
            environment="testing",
            comment_spam_keywords=["foobar"],
            comment_spam_max_urls=5,
            comment_spam_repeat_run=3,
        )
        heuristics = SpamHeuristics.from_settings(settings)
        assert heuristics.check("a foobar b").is_spam is True
        assert heuristics.check("viagra").is_spam is False
        assert heuristics.check("zzz").is_spam is True
