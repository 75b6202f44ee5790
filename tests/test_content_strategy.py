"""Tests for the content strategy engine."""

import datetime

import pytest

from rivalbot.engine.content_strategy import (
    Priority,
    assess_seo_impact,
    build_recommendations,
    compare_content_updates,
    generate_content_strategy,
)
from rivalbot.web.content_updates import ContentUpdatesService


def snapshot(ppm=0, recent=0, active=False, rss=False, sitemap=False, urls=0,
             velocity="minimal", frequency="unknown"):
    return {
        "rss": {"found": rss},
        "sitemap": {"found": sitemap, "totalUrls": urls},
        "contentActivity": {
            "averagePostsPerMonth": ppm,
            "recentActivityCount": recent,
            "isActive": active,
            "contentVelocity": velocity,
            "updateFrequency": frequency,
        },
    }


class TestSeoImpact:
    """Tests for assess_seo_impact."""

    def test_full_marks(self):
        """Test a user site ahead on every factor scores 100."""
        user = snapshot(ppm=8, recent=10, active=True, rss=True, sitemap=True, urls=120)
        competitor = snapshot(ppm=4, recent=3)

        impact = assess_seo_impact(user, competitor)
        assert impact["score"] == 100
        assert impact["level"] == "excellent"
        assert "XML sitemap with 120 URLs" in impact["factors"]

    def test_nothing_in_place(self):
        """Test a dormant user site behind the competitor scores zero."""
        impact = assess_seo_impact(snapshot(), snapshot(ppm=5, recent=4, active=True))
        assert impact["score"] == 0
        assert impact["level"] == "poor"
        assert "Publishing 0 vs competitor's 5 posts/month" in impact["factors"]
        assert len(impact["factors"]) == 5

    @pytest.mark.parametrize("user, expected_score, expected_level", [
        (snapshot(active=True, rss=True, sitemap=True), 65, "good"),
        (snapshot(sitemap=True, rss=True), 35, "poor"),
        (snapshot(active=True, sitemap=True), 50, "moderate"),
    ])
    def test_partial_scores(self, user, expected_score, expected_level):
        """Test points add per factor and map onto levels."""
        impact = assess_seo_impact(user, snapshot(ppm=2, recent=5))
        assert impact["score"] == expected_score
        assert impact["level"] == expected_level


class TestRecommendations:
    """Tests for build_recommendations."""

    def test_competitor_ahead(self):
        """Test every gap produces a prioritized recommendation."""
        user = snapshot(velocity="minimal", frequency="inactive")
        competitor = snapshot(ppm=10, recent=8, rss=True, sitemap=True, velocity="high", frequency="weekly")

        recommendations = build_recommendations(user, competitor, "competitor")
        categories = [rec.category for rec in recommendations]
        assert categories == [
            "Publishing Frequency",
            "RSS Feed",
            "XML Sitemap",
            "Content Freshness",
            "Content Velocity",
        ]
        assert recommendations[0].action == "Increase content output to at least 8 posts/month"
        assert recommendations[3].priority is Priority.CRITICAL
        assert recommendations[0].to_dict()["priority"] == "high"

    def test_user_ahead(self):
        """Test no recommendations when the user leads everywhere."""
        user = snapshot(ppm=10, recent=8, rss=True, sitemap=True, velocity="high", frequency="weekly")
        assert build_recommendations(user, snapshot(), "user") == []


class TestStrategy:
    """Tests for generate_content_strategy."""

    def test_missing_infrastructure(self):
        """Test quick wins and priorities for a site lacking feed and sitemap."""
        strategy = generate_content_strategy(snapshot(), snapshot(ppm=6, urls=50, sitemap=True))

        assert strategy["quickWins"] == [
            "Add RSS feed for content syndication",
            "Create and submit XML sitemap",
            "Publish new content to signal activity",
        ]
        assert strategy["longTermGoals"][0] == "Scale to 6+ posts/month"
        assert [p["priority"] for p in strategy["priorities"]] == [1, 2, 3]
        assert strategy["competitiveAdvantages"] == []

    def test_advantages(self):
        """Test advantages are listed when the user leads."""
        user = snapshot(ppm=12, recent=5, active=True, rss=True, sitemap=True, urls=300, velocity="high")
        strategy = generate_content_strategy(user, snapshot(ppm=2, sitemap=True, urls=40))

        assert strategy["competitiveAdvantages"] == [
            "Higher publishing frequency",
            "More active content updates",
            "Larger content library (300 vs 40 pages)",
        ]
        assert strategy["quickWins"] == []
        assert strategy["longTermGoals"] == ["Establish consistent weekly publishing schedule"]


class TestCompareContentUpdates:
    """Tests for compare_content_updates."""

    def test_equal_activity(self):
        """Test equal recent activity is reported as equal."""
        result = compare_content_updates(snapshot(recent=3), snapshot(recent=3))
        insights = result["insights"]
        assert insights["moreActive"] == "equal"
        assert insights["recommendation"].startswith("Both sites have similar")
        assert insights["contentGap"]["velocityGap"] == "minimal vs minimal"

    def test_competitor_more_active(self):
        """Test the main recommendation quotes the competitor's cadence."""
        result = compare_content_updates(snapshot(recent=1, ppm=1), snapshot(recent=9, ppm=7))
        insights = result["insights"]
        assert insights["moreActive"] == "competitor"
        assert insights["contentGap"]["postsPerMonthDiff"] == 6
        assert insights["contentGap"]["recentActivityDiff"] == 8
        assert "7 posts per month" in insights["recommendation"]
        assert insights["recommendations"][0]["category"] == "Publishing Frequency"

    @pytest.mark.asyncio
    async def test_active_blog_against_empty_site(self, settings, fixed_now):
        """Test an active blog compared with a site that has no feed or sitemap."""
        base = "https://a.example"
        posts = "".join(
            "<item><title>Post {0}</title><link>{1}/p/{0}</link><pubDate>{2}</pubDate></item>".format(
                i, base, (fixed_now - datetime.timedelta(hours=60 * i)).strftime("%a, %d %b %Y %H:%M:%S +0000")
            )
            for i in range(12)
        )
        pages = {
            base: '<html><head><link type="application/rss+xml" href="/feed.xml"></head></html>',
            f"{base}/feed.xml": f'<?xml version="1.0"?><rss version="2.0"><channel>{posts}</channel></rss>',
        }

        async def fetch(url, timeout):
            return pages.get(url)

        service = ContentUpdatesService(settings, fetcher=fetch, clock=lambda: fixed_now)
        result = await service.compare_content_updates("a.example", "b.example")

        user = result["userSite"]["contentActivity"]
        assert user["contentVelocity"] == "high"
        assert user["updateFrequency"] == "weekly"
        assert user["averagePostsPerMonth"] >= 10

        competitor = result["competitorSite"]
        assert competitor["rss"]["found"] is False
        assert competitor["sitemap"]["found"] is False

        insights = result["insights"]
        assert insights["moreActive"] == "user"
        assert insights["contentGap"]["postsPerMonthDiff"] < 0
        categories = [rec["category"] for rec in insights["recommendations"]]
        assert "Publishing Frequency" not in categories
        assert "RSS Feed" not in categories
