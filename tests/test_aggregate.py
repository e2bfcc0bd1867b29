"""
Tests for mention merging and candidate selection.
"""

from companyresolver.aggregate import aggregate, merge_mentions, score_candidates
from companyresolver.schema import CandidateMention
from companyresolver.scoring import score_glassdoor_candidate

URL = "https://www.glassdoor.co.uk/Reviews/Acme-Reviews-E123.htm"
TOKENS = ["acme"]


def constant_score(candidate, tokens):
    return 10


class TestMergeMentions:
    """Test evidence merging per canonical URL."""

    def test_same_url_variants_merge(self):
        """URL variants of one page should merge into a single candidate."""
        mentions = [
            CandidateMention(url=URL + "?sort=date", context="short"),
            CandidateMention(url=URL + "/", context="a much longer context"),
        ]

        merged = merge_mentions(mentions)

        assert len(merged) == 1
        assert merged[0].url == URL
        assert merged[0].context == "a much longer context"
        assert merged[0].contexts == ["short", "a much longer context"]

    def test_max_reviews_kept(self):
        """The largest review count should win."""
        mentions = [
            CandidateMention(url=URL, reviews_hint=1000),
            CandidateMention(url=URL, reviews_hint=2000),
            CandidateMention(url=URL, reviews_hint=None),
        ]

        assert merge_mentions(mentions)[0].reviews_hint == 2000

    def test_first_rating_kept(self):
        """The first rating seen should be kept."""
        mentions = [
            CandidateMention(url=URL),
            CandidateMention(url=URL, rating_hint=4.2),
            CandidateMention(url=URL, rating_hint=3.1),
        ]

        assert merge_mentions(mentions)[0].rating_hint == 4.2

    def test_sub_ratings_filled_in(self):
        """Missing sub-ratings should be filled from later mentions."""
        mentions = [
            CandidateMention(url=URL, work_life_balance=3.9),
            CandidateMention(url=URL, compensation=4.0),
        ]

        merged = merge_mentions(mentions)[0]

        assert merged.work_life_balance == 3.9
        assert merged.compensation == 4.0
        assert merged.career_opportunities is None

    def test_unparseable_urls_dropped(self):
        """Mentions whose URL cannot be parsed should be dropped."""
        assert merge_mentions([CandidateMention(url="not a url")]) == []

    def test_first_seen_order(self):
        """Candidates should keep first-seen order."""
        mentions = [
            CandidateMention(url="https://www.glassdoor.com/Reviews/B-Reviews-E2.htm"),
            CandidateMention(url="https://www.glassdoor.com/Reviews/A-Reviews-E1.htm"),
        ]

        assert [c.url for c in merge_mentions(mentions)] == [m.url for m in mentions]


class TestAggregate:
    """Test scoring and best-candidate selection."""

    def test_idempotent(self):
        """Merging a mention twice should give the same candidate as once."""
        mention = CandidateMention(
            url=URL,
            context="Acme employee rating 4.2 based on 3,400 reviews",
            rating_hint=4.2,
            reviews_hint=3400,
        )

        once = aggregate([mention], TOKENS, score_glassdoor_candidate)
        twice = aggregate([mention, mention], TOKENS, score_glassdoor_candidate)

        assert once.url == twice.url
        assert once.score == twice.score
        assert once.rating_hint == twice.rating_hint
        assert once.reviews_hint == twice.reviews_hint
        assert once.contexts == twice.contexts

    def test_tie_goes_to_first_seen(self):
        """Equal scores should go to the first-seen candidate."""
        first = CandidateMention(url="https://www.glassdoor.com/Reviews/B-Reviews-E2.htm")
        second = CandidateMention(url="https://www.glassdoor.com/Reviews/A-Reviews-E1.htm")

        assert aggregate([first, second], TOKENS, constant_score).url == first.url
        assert aggregate([second, first], TOKENS, constant_score).url == second.url

    def test_best_score_wins(self):
        """The highest-scoring candidate should be chosen."""
        mentions = [
            CandidateMention(url="https://www.glassdoor.com/Reviews/Globex-Reviews-E7.htm"),
            CandidateMention(url=URL),
        ]

        best = aggregate(mentions, TOKENS, score_glassdoor_candidate)

        assert best.url == URL

    def test_score_candidates_sorted(self):
        """Scored candidates should come back best first."""
        mentions = [
            CandidateMention(url="https://www.glassdoor.com/Salary/Acme-Salaries-E123.htm"),
            CandidateMention(url=URL),
            CandidateMention(url="https://www.glassdoor.com/Reviews/Globex-Reviews-E7.htm"),
        ]

        ranked = score_candidates(mentions, TOKENS, score_glassdoor_candidate)
        scores = [c.score for c in ranked]

        assert scores == sorted(scores, reverse=True)
        assert ranked[0].url == URL

    def test_empty(self):
        """No mentions means no candidate."""
        assert aggregate([], TOKENS, score_glassdoor_candidate) is None
