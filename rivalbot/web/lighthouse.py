"""
Lighthouse Auditor
==================

Runs the Lighthouse CLI in a headless Chrome and normalizes category scores
and lab metrics.  The CLI is treated as a black box: one subprocess per
audit, bounded by a timeout.
"""

import asyncio
import json
from typing import Optional

from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult, capture
from rivalbot.utils.helpers import clean_domain, ensure_https

CATEGORIES = ["performance", "accessibility", "best-practices", "seo"]

CHROME_FLAGS = [
    "--headless",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-extensions",
    "--disable-default-apps",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
]

METRIC_AUDITS = {
    "firstContentfulPaint": "first-contentful-paint",
    "largestContentfulPaint": "largest-contentful-paint",
    "totalBlockingTime": "total-blocking-time",
    "cumulativeLayoutShift": "cumulative-layout-shift",
    "speedIndex": "speed-index",
    "timeToInteractive": "interactive",
}


class LighthouseError(RuntimeError):
    """Raised when a Lighthouse run produces no usable report."""


def parse_report(report: dict, url: str) -> dict:
    """Normalize a Lighthouse JSON report.

    Category scores are reported on a 0-100 scale in both ``score`` and
    ``displayValue``.
    """
    categories = report.get("categories") or {}
    if "performance" not in categories:
        raise LighthouseError("Lighthouse report has no performance category")

    audits = report.get("audits") or {}
    normalized = {}
    for name in CATEGORIES:
        raw = (categories.get(name) or {}).get("score")
        value = round(raw * 100) if isinstance(raw, (int, float)) else None
        normalized[name] = {"score": value, "displayValue": value}

    return {
        "dataAvailable": True,
        "url": url,
        "categories": normalized,
        "metrics": {
            key: (audits.get(audit_id) or {}).get("numericValue")
            for key, audit_id in METRIC_AUDITS.items()
        },
    }


class LighthouseAuditor:
    """Run Lighthouse audits through the command line tool."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_command(self, url: str) -> list[str]:
        return [
            self.settings.lighthouse_path,
            url,
            "--output=json",
            "--output-path=stdout",
            "--quiet",
            f"--only-categories={','.join(CATEGORIES)}",
            "--skip-audits=screenshot-thumbnails,final-screenshot",
            f"--chrome-flags={' '.join(CHROME_FLAGS)}",
        ]

    async def audit(self, domain: str) -> dict:
        """Run one audit. Raises :class:`LighthouseError` or ``asyncio.TimeoutError``."""
        url = ensure_https(clean_domain(domain))
        logger.info("Running Lighthouse for {}", url)

        process = await asyncio.create_subprocess_exec(
            *self.build_command(url),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.settings.lighthouse_timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip().splitlines()
            raise LighthouseError(detail[-1] if detail else f"lighthouse exited with {process.returncode}")

        try:
            report = json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as exc:
            raise LighthouseError(f"Invalid Lighthouse output: {exc}") from exc

        return parse_report(report, url)

    async def analyze(self, domain: str) -> AdapterResult:
        """Single-attempt audit resolving to a tagged result."""
        return await capture("Lighthouse", lambda: self.audit(domain))
