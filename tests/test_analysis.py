"""Tests for the competitor analyzer."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from secrecy.analysis import CompetitorAnalysis, CompetitorAnalyzer, parse_analysis
from secrecy.errors import AnalysisError, CompletionError
from secrecy.storage import ChatStore

PAYLOAD = {
    "title": "Acme",
    "description": "They sell widgets",
    "technologies": ["React", "Stripe"],
    "strengths": ["Cheap"],
    "improvements": ["Slow site"],
    "strategies": ["Be faster"],
}


class TestParseAnalysis:
    def test_json_inside_prose(self):
        response = f"Sure! Here it is:\n```json\n{json.dumps(PAYLOAD)}\n```\nHope that helps."

        analysis = parse_analysis("https://acme.example", response)

        assert analysis.parsed is True
        assert analysis.title == "Acme"
        assert analysis.technologies == ["React", "Stripe"]

    def test_no_json_uses_generic_analysis(self):
        analysis = parse_analysis("https://acme.example", "I cannot browse the web.")

        assert analysis.parsed is False
        assert analysis.title == "Analysis of https://acme.example"
        assert analysis.strengths == ["Good User Experience", "Fast Loading", "Clear Content"]

    def test_broken_json_keeps_response_excerpt(self):
        response = "{ not valid json " + "x" * 300 + "}"

        analysis = parse_analysis("https://acme.example", response)

        assert analysis.parsed is False
        assert analysis.title == "Competitor Analysis - https://acme.example"
        assert analysis.description == response[:200] + "..."

    def test_missing_fields_default(self):
        analysis = parse_analysis("https://acme.example", '{"strengths": "Brand"}')

        assert analysis.title == "Analysis of https://acme.example"
        assert analysis.strengths == ["Brand"]
        assert analysis.technologies == []


def test_render_report_sections():
    analysis = CompetitorAnalysis.from_payload("https://acme.example", PAYLOAD)

    report = analysis.render(datetime(2024, 3, 1, tzinfo=timezone.utc))

    assert report.startswith("🎯 COMPETITOR ANALYSIS REPORT")
    assert "Company: Acme" in report
    assert "🔧 TECHNOLOGIES USED:\n• React\n• Stripe" in report
    assert "📊 Analysis Date: 2024-03-01" in report
    assert report.endswith("🌐 Analyzed URL: https://acme.example")


class TestCompetitorAnalyzer:
    @pytest.fixture
    def provider(self) -> MagicMock:
        mock = MagicMock()
        mock.complete = AsyncMock(return_value=json.dumps(PAYLOAD))
        return mock

    @pytest.mark.asyncio
    async def test_analyze_sends_url_in_prompt(self, provider: MagicMock, store: ChatStore):
        analyzer = CompetitorAnalyzer(provider, store)

        analysis = await analyzer.analyze("  https://acme.example ")

        assert analysis.url == "https://acme.example"
        assert "https://acme.example" in provider.complete.call_args.args[0]

    @pytest.mark.asyncio
    async def test_blank_url(self, provider: MagicMock, store: ChatStore):
        with pytest.raises(AnalysisError):
            await CompetitorAnalyzer(provider, store).analyze("  ")
        provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self, provider: MagicMock, store: ChatStore):
        provider.complete = AsyncMock(side_effect=CompletionError("HTTP error! status: 503"))
        with pytest.raises(CompletionError):
            await CompetitorAnalyzer(provider, store).analyze("https://acme.example")

    @pytest.mark.asyncio
    async def test_pin_to_notes(self, provider: MagicMock, store: ChatStore):
        analyzer = CompetitorAnalyzer(provider, store)
        analysis = await analyzer.analyze("https://acme.example")

        note = analyzer.pin_to_notes(analysis)

        assert note.title == "🎯 Competitor Analysis: Acme"
        assert "💪 THEIR STRENGTHS:\n• Cheap" in note.content
        assert store.get_all_notes() == [note]
