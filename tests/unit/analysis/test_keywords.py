"""Tests for keyword matching and bullet keyword verification."""

from dataclasses import dataclass, field


@dataclass
class _Bullet:
    text: str
    keywords_used: list[str] = field(default_factory=list)


class TestIsKeywordInText:
    def test_exact_requires_whole_word(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        text = "Managed a team of five"
        assert is_keyword_in_text(text, "manage", "exact") is False
        assert is_keyword_in_text(text, "managed", "exact") is True
        assert is_keyword_in_text(text, "TEAM", "exact") is True

    def test_flexible_allows_suffix_variations(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        text = "Managed a team of five"
        assert is_keyword_in_text(text, "manage", "flexible") is True
        assert is_keyword_in_text(text, "managing", "flexible") is True
        assert is_keyword_in_text("Led development of APIs", "developed", "flexible") is True

    def test_flexible_rejects_two_letter_keywords(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        assert is_keyword_in_text("Worked at Acme", "at", "flexible") is False
        assert is_keyword_in_text("at", "at", "flexible") is False

    def test_flexible_short_words_need_exact_match(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        assert is_keyword_in_text("Wrote SQL reports", "SQL", "flexible") is True
        assert is_keyword_in_text("Wrote SQLite reports", "SQL", "flexible") is False

    def test_flexible_multi_word_requires_every_word(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        text = "Managed the product roadmap"
        assert is_keyword_in_text(text, "product management", "flexible") is True
        assert is_keyword_in_text(text, "project management", "flexible") is False

    def test_special_characters_are_escaped(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        assert is_keyword_in_text("Wrote C++ services", "C++", "exact") is False
        assert is_keyword_in_text("Built Node.js services", "Node.js", "exact") is True
        assert is_keyword_in_text("Built Nodexjs services", "Node.js", "exact") is False

    def test_empty_keyword_never_matches(self):
        from jobfit.analysis.keywords import is_keyword_in_text

        assert is_keyword_in_text("anything", "", "exact") is False
        assert is_keyword_in_text("anything", "   ", "flexible") is False


class TestVerifyKeywordsInBullets:
    def test_drops_claims_not_present_in_text(self):
        from jobfit.analysis.keywords import verify_keywords_in_bullets

        bullets = {
            "Acme - Analyst": [
                _Bullet("Built SQL dashboards for finance", ["SQL", "Python", "dashboards"]),
            ]
        }

        result = verify_keywords_in_bullets(bullets, ["SQL", "Python", "dashboards", "Excel"])

        verified = result.verified_bullets["Acme - Analyst"][0]
        assert verified.keywords_used == ("SQL", "dashboards")
        assert result.actual_keywords_used == ["SQL", "dashboards"]
        assert result.actual_keywords_not_used == ["Python", "Excel"]

    def test_verified_keywords_are_subset_of_claims(self):
        from jobfit.analysis.keywords import verify_keywords_in_bullets

        bullets = {
            "Acme - Analyst": [
                _Bullet("Forecasted demand with Python", ["Python", "forecasting"]),
                _Bullet("Automated reporting", []),
            ],
            "Beta - Engineer": [_Bullet("Migrated services to AWS", ["AWS", "GCP"])],
        }

        result = verify_keywords_in_bullets(bullets, ["Python", "AWS", "GCP"], "flexible")

        for role_key, verified_bullets in result.verified_bullets.items():
            for original, verified in zip(bullets[role_key], verified_bullets, strict=True):
                assert set(verified.keywords_used) <= set(original.keywords_used)
        used = set(result.actual_keywords_used)
        assert used.isdisjoint(result.actual_keywords_not_used)

    def test_input_bullets_are_not_modified(self):
        from jobfit.analysis.keywords import verify_keywords_in_bullets

        bullet = _Bullet("Built SQL dashboards", ["SQL", "Tableau"])
        verify_keywords_in_bullets({"Acme - Analyst": [bullet]}, ["SQL", "Tableau"])

        assert bullet.keywords_used == ["SQL", "Tableau"]

    def test_keywords_outside_the_list_are_reported_after_listed_ones(self):
        from jobfit.analysis.keywords import verify_keywords_in_bullets

        bullets = {"Acme - Analyst": [_Bullet("Built SQL and dbt models", ["dbt", "SQL"])]}

        result = verify_keywords_in_bullets(bullets, ["SQL"])

        assert result.actual_keywords_used == ["SQL", "dbt"]
        assert result.actual_keywords_not_used == []
