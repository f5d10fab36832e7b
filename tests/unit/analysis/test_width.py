"""Tests for visual width estimation and bullet shortening."""

import pytest


class TestCharWidth:
    def test_character_classes(self):
        from jobfit.analysis.width import char_width

        assert char_width(" ") == 0.55
        assert char_width("W") == 1.25
        assert char_width("%") == 1.25
        assert char_width("m") == 1.15
        assert char_width("O") == 1.15
        assert char_width("i") == 0.55
        assert char_width(".") == 0.55
        assert char_width("-") == 0.70
        assert char_width("7") == 1.00
        assert char_width("E") == 1.10
        assert char_width("e") == 1.00
        assert char_width("é") == 0.80


class TestCalculateVisualWidth:
    def test_empty_text_has_zero_width(self):
        from jobfit.analysis.width import calculate_visual_width

        assert calculate_visual_width("") == 0

    def test_sums_character_weights(self):
        from jobfit.analysis.width import calculate_visual_width

        # I(.55) n(1) c(1) r(.55) e(1) a(1) s(1) e(1) d(1) + space + 18%(3.25)
        assert calculate_visual_width("Increased 18%") == pytest.approx(8.1 + 0.55 + 3.25)

    def test_appending_characters_never_shrinks_width(self):
        from jobfit.analysis.width import calculate_visual_width

        text = "Built a reporting pipeline"
        for suffix in (" ", ".", "x", "W", "-", "1"):
            assert calculate_visual_width(text + suffix) > calculate_visual_width(text)

    def test_wide_text_is_wider_than_narrow_text(self):
        from jobfit.analysis.width import calculate_visual_width

        assert calculate_visual_width("MMMM") > calculate_visual_width("iiii")


class TestAssessWidth:
    def test_flags_are_mutually_consistent(self):
        from jobfit.analysis.width import assess_width

        short = assess_width("Led launches", min_width=125, max_width=179)
        assert short.below_min is True
        assert short.exceeds_max is False
        assert short.is_within_range is False

        long = assess_width("word " * 60, min_width=125, max_width=179)
        assert long.exceeds_max is True
        assert long.is_within_range is False

    def test_in_range_text(self):
        from jobfit.analysis.width import assess_width

        text = (
            "Increased checkout conversion 18% by redesigning the payment flow and "
            "shipping address validation for 40,000 weekly shoppers across web and "
            "mobile in six months"
        )
        result = assess_width(text, min_width=125, max_width=179)
        assert result.is_within_range is True
        assert 125 <= result.width <= 179


class TestOptimizeBulletLength:
    def test_returns_text_unchanged_when_it_fits(self):
        from jobfit.analysis.width import optimize_bullet_length

        text = "Reduced cloud spend 32% within two quarters"
        assert optimize_bullet_length(text, 179) is text

    def test_drops_short_filler_words_until_it_fits(self):
        from jobfit.analysis.width import calculate_visual_width, optimize_bullet_length

        text = (
            "Improved the onboarding flow for all of the new enterprise customers and "
            "cut the time to first value by 40% so that the sales team and the support "
            "team could focus on the accounts that were at risk of churn across three "
            "regions during the busiest quarter of the year"
        )
        assert calculate_visual_width(text) > 179

        result = optimize_bullet_length(text, 179)

        assert result != text
        assert calculate_visual_width(result) <= 179
        assert result.split()[0] == "Improved"
        assert "40%" in result
        assert "onboarding" in result

    def test_keeps_protected_words(self):
        from jobfit.analysis.width import optimize_bullet_length

        text = "Managed the a an of to in on at by " + "implementation " * 9 + "2024"
        result = optimize_bullet_length(text, 140)

        words = result.split()
        assert len(words) < len(text.split())
        assert words[0] == "Managed"
        assert "2024" in words
        assert words.count("implementation") == 9

    def test_returns_original_when_shortening_cannot_fit(self):
        from jobfit.analysis.width import optimize_bullet_length

        text = "Developed " + " ".join(["infrastructure"] * 20) + " and the of"
        assert optimize_bullet_length(text, 179) == text
