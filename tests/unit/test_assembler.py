"""Unit tests for the digest assembler."""

from datetime import date, datetime

from brief_aggregation.config import DigestConfig
from brief_aggregation.core.assembler import DigestAssembler, create_assembler, rank_items
from brief_aggregation.core.relevance import ScoredItem

T1 = datetime(2026, 3, 10, 8, 0)
T2 = datetime(2026, 3, 10, 9, 0)
DAY = date(2026, 3, 10)


def scored(item_id, score, published_at=None, category="General", read_time=1):
    return ScoredItem(
        content_item_id=item_id,
        title=f"Story {item_id}",
        url=f"https://example.com/{item_id}",
        relevance_score=score,
        category=category,
        summary="",
        estimated_read_time=read_time,
        published_at=published_at,
    )


class TestRanking:
    """Tests for rank ordering."""

    def test_score_then_recency(self):
        """Equal scores rank the newer item first."""
        items = [scored(1, 0.9, T1), scored(2, 0.9, T2), scored(3, 0.4, T2)]
        assert [i.content_item_id for i in rank_items(items)] == [2, 1, 3]

    def test_undated_after_dated(self):
        items = [scored(1, 0.7), scored(2, 0.7, T1)]
        assert [i.content_item_id for i in rank_items(items)] == [2, 1]

    def test_id_breaks_full_ties(self):
        items = [scored(5, 0.5, T1), scored(3, 0.5, T1)]
        assert [i.content_item_id for i in rank_items(items)] == [3, 5]


class TestDigestAssembler:
    """Tests for DigestAssembler.assemble."""

    def test_assemble(self):
        assembler = DigestAssembler(config=DigestConfig(top_stories=2))
        items = [
            scored(1, 0.9, T1, "Technology", 3),
            scored(2, 0.9, T2, "Technology", 2),
            scored(3, 0.4, T2, "News", 1),
        ]

        digest = assembler.assemble("alice", DAY, items)

        assert [i.content_item_id for i in digest.items] == [2, 1, 3]
        assert [i.content_item_id for i in digest.top_stories] == [2, 1]
        assert digest.total_items == 3
        assert digest.estimated_read_time == 6
        assert list(digest.categories) == ["Technology", "News"]
        assert [i.content_item_id for i in digest.categories["Technology"]] == [2, 1]
        assert digest.summary.startswith("Your daily digest for 2026-03-10 contains 2")

    def test_every_scored_item_is_counted(self):
        """Thresholding happens before assembly; the assembler keeps every item it is given."""
        assembler = create_assembler(config=DigestConfig(min_relevance_score=0.5))
        digest = assembler.assemble("alice", DAY, [scored(1, 0.9), scored(2, 0.3)])

        assert digest.total_items == 2
        assert [i.content_item_id for i in digest.items] == [1, 2]

    def test_custom_summarizer_gets_top_stories(self):
        seen = []

        def summarizer(top, day):
            seen.append(([i.content_item_id for i in top], day))
            return "custom"

        assembler = DigestAssembler(summarizer=summarizer, config=DigestConfig(top_stories=1))
        digest = assembler.assemble("alice", DAY, [scored(1, 0.2), scored(2, 0.8)])

        assert digest.summary == "custom"
        assert seen == [([2], DAY)]

    def test_empty(self):
        digest = DigestAssembler(config=DigestConfig()).assemble("alice", DAY, [])

        assert digest.total_items == 0
        assert digest.items == []
        assert digest.categories == {}
        assert "contains 0 curated stories" in digest.summary
