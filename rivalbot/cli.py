"""
Command Line Interface for rivalbot
===================================

Run competitor comparisons and single-site analyses from the terminal, or
serve the HTTP API.
"""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rivalbot import __version__, configure_logging
from rivalbot.config import get_settings
from rivalbot.core.analyzer import SiteAnalyzer
from rivalbot.core.result import Signal
from rivalbot.core.service import CompetitorService
from rivalbot.intel.traffic import TrafficService
from rivalbot.web.content_updates import ContentUpdatesService

console = Console()


def _winner_cell(winner: Optional[str]) -> str:
    if winner == "yours":
        return "[green]You[/green]"
    if winner == "competitor":
        return "[red]Competitor[/red]"
    if winner == "tie":
        return "[yellow]Tie[/yellow]"
    return "[dim]n/a[/dim]"


def print_comparison(report: dict) -> None:
    comparison = report["comparison"]
    your_domain = report["yourSite"]["domain"]
    comp_domain = report["competitorSite"]["domain"]

    table = Table(title=f"{your_domain} vs {comp_domain}")
    table.add_column("Dimension", style="cyan")
    table.add_column(your_domain, style="green")
    table.add_column(comp_domain, style="magenta")
    table.add_column("Winner")

    performance = comparison["performance"]
    table.add_row(
        "Lighthouse performance",
        str(performance["lighthouse"]["your"]["performance"]),
        str(performance["lighthouse"]["competitor"]["performance"]),
        _winner_cell(performance["winner"]),
    )
    table.add_row(
        "PageSpeed desktop / mobile",
        "{desktop} / {mobile}".format(**performance["pagespeed"]["your"]),
        "{desktop} / {mobile}".format(**performance["pagespeed"]["competitor"]),
        "",
    )

    seo = comparison["seo"]
    table.add_row("SEO score", str(seo["scores"]["your"]), str(seo["scores"]["competitor"]), _winner_cell(seo["winner"]))

    content = comparison["content"]
    table.add_row(
        "Word count",
        str(content["your"]["wordCount"]),
        str(content["competitor"]["wordCount"]),
        _winner_cell(content["winner"]),
    )

    traffic = comparison["traffic"]
    table.add_row(
        "Monthly visits",
        str(traffic["your"]["monthlyVisits"]),
        str(traffic["competitor"]["monthlyVisits"]),
        _winner_cell(traffic["insights"]["trafficWinner"]),
    )

    backlinks = comparison["backlinks"]
    table.add_row(
        "Backlinks",
        str(backlinks["your"]["totalBacklinks"]),
        str(backlinks["competitor"]["totalBacklinks"]),
        _winner_cell(backlinks["winner"]),
    )

    updates = comparison["contentUpdates"]
    table.add_row(
        "Posts per month",
        str(updates["your"]["averagePostsPerMonth"]),
        str(updates["competitor"]["averagePostsPerMonth"]),
        updates["insights"]["moreActive"],
    )

    technology = comparison["technology"]
    table.add_row("CMS", technology["your"]["cms"], technology["competitor"]["cms"], "")
    console.print(table)

    summary = comparison["summary"]
    for title, key, style in (
        ("Strengths", "strengths", "green"),
        ("Weaknesses", "weaknesses", "red"),
        ("Opportunities", "opportunities", "yellow"),
        ("Recommendations", "recommendations", "blue"),
    ):
        if summary[key]:
            body = "\n".join(f"- {item}" for item in summary[key])
            console.print(Panel(body, title=title, border_style=style))


@click.group()
@click.version_option(version=__version__, prog_name="rivalbot")
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def main(log_level: Optional[str]):
    """
    rivalbot - competitor website analysis

    Compares performance, SEO, content, traffic, backlinks and publishing
    activity between your site and a competitor.
    """
    configure_logging(log_level or get_settings().log_level)


@main.command()
@click.argument("your_site")
@click.argument("competitor_site")
@click.option("--email", default=None, help="Account email for Google Analytics data")
@click.option("--output", "-o", type=click.Path(), help="Write the full report as JSON")
def compare(your_site: str, competitor_site: str, email: Optional[str], output: Optional[str]):
    """Compare YOUR_SITE against COMPETITOR_SITE."""
    console.print(f"[bold blue]Comparing {your_site} against {competitor_site}[/bold blue]")

    report = asyncio.run(CompetitorService().compare_websites(your_site, competitor_site, email))
    if not report["success"]:
        console.print(f"[red]Comparison failed: {report['error']}[/red]")
        sys.exit(1)

    print_comparison(report)

    if output:
        with open(output, "w", encoding="utf-8") as handle:
            json.dump(report, handle, indent=2)
        console.print(f"\n[green]Report exported to {output}[/green]")


@main.command()
@click.argument("domain")
def site(domain: str):
    """Collect every signal for a single DOMAIN."""
    console.print(f"[bold blue]Analyzing {domain}[/bold blue]")
    analysis = asyncio.run(SiteAnalyzer().analyze_single_site(domain))

    table = Table(title=f"Signals for {analysis.domain}")
    table.add_column("Signal", style="cyan")
    table.add_column("Status")
    table.add_column("Reason", style="dim")
    for signal in Signal:
        result = analysis.result(signal)
        status = "[green]available[/green]" if result.ok else "[red]unavailable[/red]"
        table.add_row(signal.value, status, "" if result.ok else result.reason)
    console.print(table)

    timings = analysis.timings
    console.print(
        f"\nPhase 1: {timings.phase1} ms | Phase 2: {timings.phase2} ms | "
        f"Phase 3: {timings.phase3} ms | Total: {timings.total} ms"
    )


@main.command()
@click.argument("domain")
def content(domain: str):
    """Show RSS, sitemap and publishing activity for DOMAIN."""
    snapshot = asyncio.run(ContentUpdatesService().get_content_updates(domain))
    rss = snapshot["rss"]
    sitemap = snapshot["sitemap"]
    activity = snapshot["contentActivity"]

    console.print(f"\n[bold]Content activity for {snapshot['domain']}[/bold]")
    console.print(f"  RSS: {rss['url'] if rss['found'] else '[red]not found[/red]'} ({rss['totalPosts']} posts)")
    console.print(
        f"  Sitemap: {sitemap['url'] if sitemap['found'] else '[red]not found[/red]'} "
        f"({sitemap['totalUrls']} urls, {len(sitemap['recentlyModified'])} recent)"
    )
    console.print(f"  Last content: {activity['lastContentDate'] or 'unknown'}")
    console.print(f"  Frequency: {activity['updateFrequency']}")
    console.print(f"  Posts/month: {activity['averagePostsPerMonth']} ({activity['contentVelocity']})")
    console.print(f"  Active: {'yes' if activity['isActive'] else 'no'}")
    if snapshot.get("error"):
        console.print(f"  [yellow]Warning: {snapshot['error']}[/yellow]")


@main.command("content-gap")
@click.argument("your_site")
@click.argument("competitor_site")
def content_gap(your_site: str, competitor_site: str):
    """Compare publishing activity of YOUR_SITE and COMPETITOR_SITE."""
    result = asyncio.run(ContentUpdatesService().compare_content_updates(your_site, competitor_site))
    insights = result["insights"]
    gap = insights["contentGap"]
    impact = insights["seoImpact"]

    console.print(f"\n[bold]More active:[/bold] {insights['moreActive']}")
    console.print(f"  Posts/month gap: {gap['postsPerMonthDiff']} | Velocity: {gap['velocityGap']}")
    console.print(f"  SEO impact: {impact['score']}/100 ({impact['level']})")
    console.print(Panel(insights["recommendation"], title="Summary", border_style="blue"))

    if insights["recommendations"]:
        table = Table(title="Recommendations")
        table.add_column("Priority", style="cyan")
        table.add_column("Category")
        table.add_column("Action")
        for item in insights["recommendations"]:
            table.add_row(item["priority"], item["category"], item["action"])
        console.print(table)

    strategy = insights["contentStrategy"]
    if strategy["quickWins"]:
        body = "\n".join(f"- {item}" for item in strategy["quickWins"])
        console.print(Panel(body, title="Quick wins", border_style="green"))


@main.command()
@click.argument("domain")
@click.option("--email", default=None)
@click.option("--days", default=14, show_default=True, type=int)
def traffic(domain: str, email: Optional[str], days: int):
    """Show the daily traffic series for DOMAIN."""
    result = asyncio.run(TrafficService().get_traffic_data(email, domain, days))

    table = Table(title=f"Traffic for {domain} ({result['source']})")
    table.add_column("Date", style="cyan")
    table.add_column("Visitors", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Page views", justify="right")
    for day in result["data"]:
        table.add_row(str(day["date"]), str(day["visitors"]), str(day["sessions"]), str(day["pageViews"]))
    console.print(table)

    summary = result["summary"]
    console.print(
        f"\nTotal: {summary['totalVisitors']} | Daily avg: {summary['avgDailyVisitors']} | "
        f"Trend: {summary['trend']} ({summary['changePercent']}%)"
    )


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=3010, show_default=True, type=int)
def serve(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    from rivalbot.api import create_app

    console.print(f"[bold blue]Serving rivalbot API on http://{host}:{port}[/bold blue]")
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
