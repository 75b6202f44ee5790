"""
Site Comparator
===============

Pure functions that diff two :class:`SiteAnalysis` results dimension by
dimension and roll the outcome into a strengths / weaknesses summary.

Every function is deterministic: the same inputs always produce the same
report.
"""

import math
from typing import Any

from rivalbot.core.result import Signal, SiteAnalysis

VELOCITY_RANK = {"high": 4, "medium": 3, "low": 2, "minimal": 1, "unknown": 0}

DEFAULT_HEADINGS = {"h1Count": 0, "h2Count": 0, "h3Count": 0}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_or(value: Any, default: float) -> float:
    return value if _is_number(value) else default


def _winner(yours: float, competitor: float) -> str:
    """Strictly greater wins; ties go to the competitor."""
    return "yours" if yours > competitor else "competitor"


# ----------------------------------------------------------------------
# Performance
# ----------------------------------------------------------------------

def _lighthouse_scores(lighthouse: dict) -> dict:
    categories = lighthouse.get("categories") or {}

    def score(name: str) -> float:
        return (categories.get(name) or {}).get("score") or 0

    return {
        "performance": score("performance"),
        "accessibility": score("accessibility"),
        "bestPractices": score("best-practices"),
        "seo": score("seo"),
    }


def _pagespeed_scores(pagespeed: dict) -> dict:
    return {
        "desktop": (pagespeed.get("desktop") or {}).get("performanceScore") or 0,
        "mobile": (pagespeed.get("mobile") or {}).get("performanceScore") or 0,
    }


def compare_performance(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    lighthouse = {
        "your": _lighthouse_scores(your.payload(Signal.LIGHTHOUSE)),
        "competitor": _lighthouse_scores(competitor.payload(Signal.LIGHTHOUSE)),
    }
    pagespeed = {
        "your": _pagespeed_scores(your.payload(Signal.PAGESPEED)),
        "competitor": _pagespeed_scores(competitor.payload(Signal.PAGESPEED)),
    }

    def average(side: str) -> float:
        return (
            lighthouse[side]["performance"] + pagespeed[side]["desktop"] + pagespeed[side]["mobile"]
        ) / 3

    your_avg = average("your")
    comp_avg = average("competitor")
    return {
        "lighthouse": lighthouse,
        "pagespeed": pagespeed,
        "winner": _winner(your_avg, comp_avg),
        "gap": f"{abs(your_avg - comp_avg):.1f}",
    }


# ----------------------------------------------------------------------
# SEO
# ----------------------------------------------------------------------

def calculate_seo_score(meta: dict, headings: dict, social: dict, structured_data: int) -> int:
    """On-page SEO score out of 100."""
    score = 0

    # Meta tags (40)
    if meta.get("hasTitle"):
        score += 10
    if meta.get("hasDescription"):
        score += 10
    if meta.get("hasCanonical"):
        score += 10
    if 30 <= meta.get("titleLength", 0) <= 60:
        score += 5
    if 120 <= meta.get("descriptionLength", 0) <= 160:
        score += 5

    # Headings (20)
    if headings.get("h1Count") == 1:
        score += 10
    if (headings.get("h2Count") or 0) > 0:
        score += 5
    if (headings.get("h3Count") or 0) > 0:
        score += 5

    # Social (20)
    if social.get("hasOpenGraph"):
        score += 10
    if social.get("hasTwitterCard"):
        score += 10

    # Structured data (20)
    if structured_data > 0:
        score += 20

    return score


def _seo_side(seo: dict) -> dict:
    title = seo.get("title") or ""
    description = seo.get("metaDescription") or ""
    open_graph = seo.get("openGraph") or {}
    twitter = seo.get("twitterCard") or {}
    return {
        "metaTags": {
            "hasTitle": bool(title),
            "hasDescription": bool(description),
            "hasCanonical": bool(seo.get("canonical")),
            "titleLength": len(title),
            "descriptionLength": len(description),
        },
        "headings": seo.get("headings") or dict(DEFAULT_HEADINGS),
        "socialMedia": {
            "hasOpenGraph": bool(open_graph.get("title") or open_graph.get("description")),
            "hasTwitterCard": bool(twitter.get("card")),
        },
        "structuredData": len(seo.get("schemaMarkup") or []),
    }


def compare_seo(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    yours = _seo_side(your.payload(Signal.PAGE_RENDER).get("seo") or {})
    theirs = _seo_side(competitor.payload(Signal.PAGE_RENDER).get("seo") or {})

    comparison = {
        key: {"your": yours[key], "competitor": theirs[key]}
        for key in ("metaTags", "headings", "socialMedia", "structuredData")
    }
    your_score = calculate_seo_score(
        yours["metaTags"], yours["headings"], yours["socialMedia"], yours["structuredData"]
    )
    comp_score = calculate_seo_score(
        theirs["metaTags"], theirs["headings"], theirs["socialMedia"], theirs["structuredData"]
    )
    comparison["scores"] = {"your": your_score, "competitor": comp_score}
    comparison["winner"] = _winner(your_score, comp_score)
    return comparison


# ----------------------------------------------------------------------
# Content, technology, security
# ----------------------------------------------------------------------

def _content_side(content: dict) -> dict:
    images = content.get("images") or {}
    links = content.get("links") or {}
    return {
        "wordCount": content.get("wordCount") or 0,
        "paragraphCount": content.get("paragraphCount") or 0,
        "imageCount": images.get("total") or 0,
        "imageAltCoverage": images.get("altCoverage") or 0,
        "totalLinks": links.get("total") or 0,
        "internalLinks": links.get("internal") or 0,
        "externalLinks": links.get("external") or 0,
        "brokenLinks": links.get("broken") or 0,
    }


def compare_content(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    yours = _content_side(your.payload(Signal.PAGE_RENDER).get("content") or {})
    theirs = _content_side(competitor.payload(Signal.PAGE_RENDER).get("content") or {})
    return {
        "your": yours,
        "competitor": theirs,
        "winner": _winner(yours["wordCount"], theirs["wordCount"]),
    }


def _technology_side(technology: dict) -> dict:
    return {
        "cms": technology.get("cms") or "Unknown",
        "frameworks": list(technology.get("frameworks") or []),
        "analytics": list(technology.get("analytics") or []),
        "thirdPartyScripts": len(technology.get("thirdPartyScripts") or []),
    }


def compare_technology(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    return {
        "your": _technology_side(your.payload(Signal.PAGE_RENDER).get("technology") or {}),
        "competitor": _technology_side(competitor.payload(Signal.PAGE_RENDER).get("technology") or {}),
    }


def _security_side(render: dict) -> dict:
    security = render.get("security") or {}
    return {
        "isHTTPS": bool(security.get("isHTTPS")),
        "hasCDN": bool(security.get("cdn")),
        "cdnProvider": security.get("cdn") or None,
        "hasMixedContent": bool(security.get("mixedContent")),
        "hasRobotsTxt": bool((render.get("robotsTxt") or {}).get("exists")),
        "hasSitemap": bool((render.get("sitemap") or {}).get("exists")),
        "sitemapUrls": (render.get("sitemap") or {}).get("urlCount") or 0,
    }


def compare_security(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    return {
        "your": _security_side(your.payload(Signal.PAGE_RENDER)),
        "competitor": _security_side(competitor.payload(Signal.PAGE_RENDER)),
    }


# ----------------------------------------------------------------------
# Traffic and backlinks
# ----------------------------------------------------------------------

def _traffic_side(traffic: dict) -> dict:
    metrics = traffic.get("metrics") or {}
    return {
        "source": traffic.get("source") or "unknown",
        "monthlyVisits": metrics.get("monthlyVisits") or "N/A",
        "avgVisitDuration": metrics.get("avgVisitDuration") or "N/A",
        "pagesPerVisit": metrics.get("pagesPerVisit") or "N/A",
        "bounceRate": metrics.get("bounceRate") or "N/A",
        "trafficSources": metrics.get("trafficSources") or {},
        "globalRank": metrics.get("globalRank") or "N/A",
    }


def compare_traffic(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    your_traffic = your.payload(Signal.TRAFFIC)
    comp_traffic = competitor.payload(Signal.TRAFFIC)
    available = your.is_ok(Signal.TRAFFIC) and competitor.is_ok(Signal.TRAFFIC)

    comparison = {
        "available": available,
        "your": _traffic_side(your_traffic),
        "competitor": _traffic_side(comp_traffic),
        "insights": {
            "trafficWinner": None,
            "engagementWinner": None,
            "trafficGap": 0,
            "recommendations": [],
        },
    }
    if not available:
        return comparison

    insights = comparison["insights"]
    your_metrics = your_traffic.get("metrics") or {}
    comp_metrics = comp_traffic.get("metrics") or {}

    your_visits = _number_or(your_metrics.get("monthlyVisits"), 0)
    comp_visits = _number_or(comp_metrics.get("monthlyVisits"), 0)
    insights["trafficWinner"] = _winner(your_visits, comp_visits)
    insights["trafficGap"] = abs(your_visits - comp_visits)

    your_bounce = _number_or(your_metrics.get("bounceRate"), 100)
    comp_bounce = _number_or(comp_metrics.get("bounceRate"), 100)
    your_pages = _number_or(your_metrics.get("pagesPerVisit"), 0)
    comp_pages = _number_or(comp_metrics.get("pagesPerVisit"), 0)
    your_duration = _number_or(your_metrics.get("avgVisitDuration"), 0)
    comp_duration = _number_or(comp_metrics.get("avgVisitDuration"), 0)

    # One point per metric; the point goes to the competitor unless yours is strictly better.
    your_points = sum([
        your_bounce < comp_bounce,
        your_pages > comp_pages,
        your_duration > comp_duration,
    ])
    insights["engagementWinner"] = "yours" if your_points > 3 - your_points else "competitor"

    recommendations = insights["recommendations"]
    if insights["trafficWinner"] == "competitor":
        if your_visits > 0:
            lead = (comp_visits / your_visits - 1) * 100
            recommendations.append(
                f"Competitor has {lead:.0f}% more traffic. Focus on SEO and content marketing."
            )
        else:
            recommendations.append("Competitor has more traffic. Focus on SEO and content marketing.")
    if insights["engagementWinner"] == "competitor":
        recommendations.append("Improve user engagement by enhancing content quality and site navigation.")
    if comp_bounce < your_bounce:
        recommendations.append(
            f"Reduce bounce rate from {your_bounce:.1f}% to match competitor's {comp_bounce:.1f}%."
        )
    return comparison


def _backlinks_side(backlinks: dict) -> dict:
    return {
        "totalBacklinks": backlinks.get("totalBacklinks") or 0,
        "totalRefDomains": backlinks.get("totalRefDomains") or 0,
        "source": backlinks.get("source") or "SE Ranking",
    }


def compare_backlinks(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    your_links = your.payload(Signal.BACKLINKS)
    comp_links = competitor.payload(Signal.BACKLINKS)
    available = (
        your.is_ok(Signal.BACKLINKS) and competitor.is_ok(Signal.BACKLINKS)
        and bool(your_links.get("available")) and bool(comp_links.get("available"))
    )

    comparison = {
        "available": available,
        "your": _backlinks_side(your_links),
        "competitor": _backlinks_side(comp_links),
        "winner": None,
        "difference": 0,
    }
    if available:
        your_total = comparison["your"]["totalBacklinks"]
        comp_total = comparison["competitor"]["totalBacklinks"]
        if your_total > comp_total:
            comparison["winner"] = "yours"
        elif comp_total > your_total:
            comparison["winner"] = "competitor"
        else:
            comparison["winner"] = "tie"
        comparison["difference"] = abs(your_total - comp_total)
    return comparison


# ----------------------------------------------------------------------
# Content updates
# ----------------------------------------------------------------------

def _content_updates_side(snapshot: dict) -> dict:
    rss = snapshot.get("rss") or {}
    sitemap = snapshot.get("sitemap") or {}
    activity = snapshot.get("contentActivity") or {}
    return {
        "hasRSS": bool(rss.get("found")),
        "hasSitemap": bool(sitemap.get("found")),
        "recentPosts": len(rss.get("recentPosts") or []),
        "totalPosts": rss.get("totalPosts") or 0,
        "lastUpdated": activity.get("lastContentDate") or "Unknown",
        "updateFrequency": activity.get("updateFrequency") or "unknown",
        "averagePostsPerMonth": activity.get("averagePostsPerMonth") or 0,
        "isActive": bool(activity.get("isActive")),
        "contentVelocity": activity.get("contentVelocity") or "unknown",
        "recentActivityCount": activity.get("recentActivityCount") or 0,
    }


def compare_content_updates(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    yours = _content_updates_side(your.payload(Signal.CONTENT_UPDATES))
    theirs = _content_updates_side(competitor.payload(Signal.CONTENT_UPDATES))

    if yours["recentActivityCount"] > theirs["recentActivityCount"]:
        more_active = "yours"
    elif theirs["recentActivityCount"] > yours["recentActivityCount"]:
        more_active = "competitor"
    else:
        more_active = "equal"

    content_gap = theirs["averagePostsPerMonth"] - yours["averagePostsPerMonth"]

    your_velocity = VELOCITY_RANK.get(yours["contentVelocity"], 0)
    comp_velocity = VELOCITY_RANK.get(theirs["contentVelocity"], 0)
    if comp_velocity > your_velocity:
        velocity = "competitor_faster"
    elif your_velocity > comp_velocity:
        velocity = "yours_faster"
    else:
        velocity = "equal"

    recommendations = []
    if more_active == "competitor":
        recommendations.append(
            f"Competitor publishes {theirs['averagePostsPerMonth']} posts/month vs your "
            f"{yours['averagePostsPerMonth']}. Increase content production."
        )
    if not yours["hasRSS"] and theirs["hasRSS"]:
        recommendations.append("Add an RSS feed to help users and search engines discover new content.")
    if not yours["hasSitemap"] and theirs["hasSitemap"]:
        recommendations.append("Add an XML sitemap so search engines can discover and index your content.")
    if not yours["isActive"] and theirs["isActive"]:
        recommendations.append("Your content is stale. Publish fresh content regularly to stay competitive.")
    if content_gap > 5:
        recommendations.append(
            f"Significant content gap: Aim to publish at least "
            f"{math.ceil(theirs['averagePostsPerMonth'])} posts per month."
        )

    return {
        "your": yours,
        "competitor": theirs,
        "insights": {
            "moreActive": more_active,
            "contentGap": content_gap,
            "velocityComparison": velocity,
            "recommendations": recommendations,
        },
    }


# ----------------------------------------------------------------------
# Summary
# ----------------------------------------------------------------------

def generate_summary(comparison: dict) -> dict:
    strengths: list[str] = []
    weaknesses: list[str] = []
    opportunities: list[str] = []
    recommendations: list[str] = []

    if comparison["performance"]["winner"] == "yours":
        strengths.append("Better overall performance scores")
    else:
        weaknesses.append("Lower performance scores than competitor")
        recommendations.append("Optimize images, reduce JavaScript, and improve server response times")

    if comparison["seo"]["winner"] == "yours":
        strengths.append("Better SEO optimization")
    else:
        weaknesses.append("SEO implementation needs improvement")
        recommendations.append("Improve meta tags, add structured data, and optimize heading structure")

    if comparison["content"]["winner"] == "yours":
        strengths.append("More comprehensive content")
    else:
        opportunities.append("Create more in-depth content to match competitor")

    traffic = comparison["traffic"]
    if traffic["available"]:
        if traffic["insights"]["trafficWinner"] == "yours":
            strengths.append("Higher website traffic than competitor")
        else:
            weaknesses.append("Lower website traffic than competitor")
            recommendations.extend(traffic["insights"]["recommendations"])

    updates = comparison["contentUpdates"]["insights"]
    if updates["moreActive"] == "competitor":
        weaknesses.append("Less frequent content updates than competitor")
        recommendations.extend(updates["recommendations"])
    elif updates["moreActive"] == "yours":
        strengths.append("More active content publishing than competitor")

    security = comparison["security"]
    if not security["your"]["isHTTPS"]:
        weaknesses.append("Not using HTTPS")
        recommendations.append("Implement SSL certificate for security")
    if not security["your"]["hasCDN"] and security["competitor"]["hasCDN"]:
        opportunities.append("Implement CDN for better performance")

    return {
        "strengths": strengths,
        "weaknesses": weaknesses,
        "opportunities": opportunities,
        "recommendations": recommendations,
    }


def generate_comparison(your: SiteAnalysis, competitor: SiteAnalysis) -> dict:
    """Full dimension-by-dimension comparison plus summary."""
    comparison = {
        "performance": compare_performance(your, competitor),
        "seo": compare_seo(your, competitor),
        "content": compare_content(your, competitor),
        "technology": compare_technology(your, competitor),
        "security": compare_security(your, competitor),
        "traffic": compare_traffic(your, competitor),
        "backlinks": compare_backlinks(your, competitor),
        "contentUpdates": compare_content_updates(your, competitor),
    }
    comparison["summary"] = generate_summary(comparison)
    return comparison
