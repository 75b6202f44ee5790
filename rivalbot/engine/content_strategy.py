"""
Content Strategy Engine
=======================

Turns two content-activity snapshots (as produced by
:class:`rivalbot.web.content_updates.ContentUpdatesService`) into a
publishing comparison, prioritized recommendations, an SEO impact score
and a quick-win / long-term strategy for the user's site.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Recommendation:
    """A single actionable content recommendation."""
    priority: Priority
    category: str
    issue: str
    action: str
    impact: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["priority"] = self.priority.value
        return data


def _activity(snapshot: dict) -> dict:
    return snapshot.get("contentActivity") or {}


def _found(snapshot: dict, section: str) -> bool:
    return bool((snapshot.get(section) or {}).get("found"))


def _impact_level(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "moderate"
    return "poor"


def assess_seo_impact(user: dict, competitor: dict) -> dict:
    """Score the user site's content signals out of 100."""
    user_activity = _activity(user)
    comp_activity = _activity(competitor)
    user_ppm = user_activity.get("averagePostsPerMonth") or 0
    comp_ppm = comp_activity.get("averagePostsPerMonth") or 0

    score = 0
    factors = []

    if user_activity.get("isActive"):
        score += 30
        factors.append("Content is actively updated")
    else:
        factors.append("Content is not regularly updated")

    if user_ppm >= comp_ppm:
        score += 25
        factors.append("Publishing frequency matches or exceeds competitor")
    else:
        factors.append(f"Publishing {user_ppm} vs competitor's {comp_ppm} posts/month")

    if _found(user, "rss"):
        score += 15
        factors.append("RSS feed available for syndication")
    else:
        factors.append("No RSS feed found")

    if _found(user, "sitemap"):
        score += 20
        factors.append(f"XML sitemap with {user['sitemap'].get('totalUrls', 0)} URLs")
    else:
        factors.append("No XML sitemap found")

    if (user_activity.get("recentActivityCount") or 0) >= (comp_activity.get("recentActivityCount") or 0):
        score += 10
        factors.append("Recent activity matches or exceeds competitor")
    else:
        factors.append("Lower recent activity than competitor")

    return {"score": score, "level": _impact_level(score), "factors": factors}


def generate_content_strategy(user: dict, competitor: dict) -> dict:
    user_activity = _activity(user)
    comp_activity = _activity(competitor)
    user_ppm = user_activity.get("averagePostsPerMonth") or 0
    comp_ppm = comp_activity.get("averagePostsPerMonth") or 0
    user_urls = (user.get("sitemap") or {}).get("totalUrls") or 0
    comp_urls = (competitor.get("sitemap") or {}).get("totalUrls") or 0

    quick_wins = []
    if not _found(user, "rss"):
        quick_wins.append("Add RSS feed for content syndication")
    if not _found(user, "sitemap"):
        quick_wins.append("Create and submit XML sitemap")
    if not user_activity.get("recentActivityCount"):
        quick_wins.append("Publish new content to signal activity")

    long_term = []
    if user_ppm < comp_ppm:
        long_term.append(f"Scale to {comp_ppm}+ posts/month")
    if user_activity.get("contentVelocity") != "high":
        long_term.append("Build high-velocity content production system")
    long_term.append("Establish consistent weekly publishing schedule")

    advantages = []
    if user_ppm > comp_ppm:
        advantages.append("Higher publishing frequency")
    if user_activity.get("isActive") and not comp_activity.get("isActive"):
        advantages.append("More active content updates")
    if user_urls > comp_urls:
        advantages.append(f"Larger content library ({user_urls} vs {comp_urls} pages)")

    priorities = []
    if not user_activity.get("isActive"):
        priorities.append({"priority": 1, "task": "Resume regular content publishing"})
    if user_ppm < comp_ppm:
        priorities.append({"priority": 2, "task": "Increase content output pace"})
    if not _found(user, "rss") or not _found(user, "sitemap"):
        priorities.append({"priority": 3, "task": "Add missing technical infrastructure (RSS/Sitemap)"})

    return {
        "quickWins": quick_wins,
        "longTermGoals": long_term,
        "competitiveAdvantages": advantages,
        "priorities": priorities,
    }


def build_recommendations(user: dict, competitor: dict, more_active: str) -> list[Recommendation]:
    user_activity = _activity(user)
    comp_activity = _activity(competitor)
    user_ppm = user_activity.get("averagePostsPerMonth") or 0
    comp_ppm = comp_activity.get("averagePostsPerMonth") or 0
    recommendations = []

    if more_active == "competitor":
        recommendations.append(Recommendation(
            Priority.HIGH,
            "Publishing Frequency",
            f"Competitor publishes {comp_ppm} posts/month vs your {user_ppm}",
            f"Increase content output to at least {math.ceil(comp_ppm * 0.8)} posts/month",
            "Higher publishing frequency improves SEO rankings and organic traffic",
        ))

    if not _found(user, "rss") and _found(competitor, "rss"):
        recommendations.append(Recommendation(
            Priority.MEDIUM,
            "RSS Feed",
            "Your site is missing an RSS feed while competitor has one",
            "Add an RSS feed to enable content syndication and improve discoverability",
            "RSS feeds help with content distribution and can improve backlink opportunities",
        ))

    if not _found(user, "sitemap") and _found(competitor, "sitemap"):
        recommendations.append(Recommendation(
            Priority.HIGH,
            "XML Sitemap",
            "Your site is missing an XML sitemap",
            "Create and submit an XML sitemap to search engines",
            "Sitemaps help search engines discover and index your content more efficiently",
        ))

    user_frequency = user_activity.get("updateFrequency", "unknown")
    if user_frequency == "inactive" and comp_activity.get("updateFrequency") != "inactive":
        recommendations.append(Recommendation(
            Priority.CRITICAL,
            "Content Freshness",
            f"Your content hasn't been updated recently ({user_frequency})",
            "Establish a regular publishing schedule and update existing content",
            "Fresh content signals to search engines that your site is actively maintained",
        ))

    user_velocity = user_activity.get("contentVelocity", "minimal")
    comp_velocity = comp_activity.get("contentVelocity", "minimal")
    if user_velocity == "minimal" and comp_velocity != "minimal":
        recommendations.append(Recommendation(
            Priority.HIGH,
            "Content Velocity",
            f"Low content output ({user_velocity}) compared to competitor ({comp_velocity})",
            "Develop a content calendar and increase publishing pace",
            "Consistent content velocity helps build authority and improves search visibility",
        ))

    return recommendations


def compare_content_updates(user: dict, competitor: dict) -> dict:
    """Compare the publishing activity of the user's site against a competitor."""
    user_activity = _activity(user)
    comp_activity = _activity(competitor)
    user_recent = user_activity.get("recentActivityCount") or 0
    comp_recent = comp_activity.get("recentActivityCount") or 0

    if user_recent > comp_recent:
        more_active = "user"
    elif comp_recent > user_recent:
        more_active = "competitor"
    else:
        more_active = "equal"

    content_gap = {
        "postsPerMonthDiff": (comp_activity.get("averagePostsPerMonth") or 0)
        - (user_activity.get("averagePostsPerMonth") or 0),
        "recentActivityDiff": comp_recent - user_recent,
        "velocityGap": f"{comp_activity.get('contentVelocity', 'minimal')} vs "
                       f"{user_activity.get('contentVelocity', 'minimal')}",
        "frequencyGap": f"{comp_activity.get('updateFrequency', 'unknown')} vs "
                        f"{user_activity.get('updateFrequency', 'unknown')}",
    }

    if more_active == "competitor":
        recommendation = (
            f"Your competitor is more active with {comp_recent} recent updates vs your {user_recent}. "
            f"Consider increasing your content publishing frequency to "
            f"{comp_activity.get('averagePostsPerMonth') or 0} posts per month."
        )
    elif more_active == "user":
        recommendation = "You're publishing more consistently than your competitor. Maintain this momentum!"
    else:
        recommendation = "Both sites have similar content update frequency. Focus on quality and engagement metrics."

    return {
        "userSite": user,
        "competitorSite": competitor,
        "insights": {
            "moreActive": more_active,
            "contentGap": content_gap,
            "recommendation": recommendation,
            "recommendations": [r.to_dict() for r in build_recommendations(user, competitor, more_active)],
            "seoImpact": assess_seo_impact(user, competitor),
            "contentStrategy": generate_content_strategy(user, competitor),
        },
    }
