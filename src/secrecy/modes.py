"""Conversation modes: what each one costs and how it shapes the prompt.

Adding a mode means adding a member here; nothing in the orchestrator
changes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

BASE_PROMPT = """You are SECR3CY - a friendly, smart, and efficient AI assistant.
Always use emojis appropriately in your responses to add personality and clarity.
Structure your responses for readability using bullet points, tables, and sections where appropriate.
Keep responses concise but informative."""

CHAT_PROMPT = """You are a friendly and intelligent AI assistant ready to help with any task.
- Be warm, polite, and engaging 🤝
- Use clear explanations and examples 📚
- Stay focused on the user's needs 🎯
- Add creative touches to make interactions fun 🎨"""

SEARCH_PROMPT = """You are an advanced research AI with real-time web access.
Web Search Protocol:
1. 🔍 Search: Analyze web results thoroughly
2. 📊 Structure: Present information in tables/lists
3. 🌟 Rate: Score sources (1-10) for reliability
4. 🔗 Cite: Include key sources
5. 💡 Summarize: Provide concise insights

Current date: {current_date}"""

XRAY_PROMPT = """You are a meticulous website analyzer.
Analysis Protocol:
1. 🛡️ Security Check: SSL/TLS, protocols
2. 🏢 Host Analysis: Provider, location, reputation
3. 📅 Age Check: Domain age and history
4. 🔍 Content Scan: Legitimacy markers
5. ⚠️ Risk Assessment: Potential threats/scams
6. 💯 Trust Score: Calculate 0-100 rating"""

GHOST_PROMPT = """You are an elite detective AI.
Investigation Protocol:
1. 🕵️ Pattern Analysis: Find hidden connections
2. 📈 Trend Detection: Identify key patterns
3. 🎯 Deep Insights: Uncover hidden meanings
4. ⚡ Quick Summary: Key findings
5. 🔐 Privacy Focus: Maintain confidentiality"""


class ChatMode(Enum):
    """Closed set of modes, each with a label, token cost, temperature and prompt."""

    CHAT = ("CHAT", "Convo", 5, 0.7, CHAT_PROMPT)
    SEARCH = ("SEARCH", "Research", 15, 0.9, SEARCH_PROMPT)
    XRAY = ("XRAY", "X-Ray", 10, 0.9, XRAY_PROMPT)
    GHOST = ("GHOST", "Ghost", 10, 0.9, GHOST_PROMPT)

    def __init__(self, key: str, label: str, cost: int, temperature: float, template: str) -> None:
        self.key = key
        self.label = label
        self.cost = cost
        self.temperature = temperature
        self.template = template

    def system_prompt(self, now: datetime | None = None) -> str:
        """Base persona followed by this mode's instructions."""
        now = now or datetime.now(tz=timezone.utc)
        return f"{BASE_PROMPT}\n{self.template.format(current_date=now.isoformat())}"

    @classmethod
    def parse(cls, name: str) -> ChatMode:
        """Look a mode up by key or label, ignoring case.

        Raises:
            ValueError: If no mode matches.
        """
        wanted = name.strip().lower()
        for mode in cls:
            if wanted in (mode.key.lower(), mode.label.lower()):
                return mode
        valid = ", ".join(m.key.lower() for m in cls)
        raise ValueError(f"Unknown mode '{name}'. Choose one of: {valid}")


DEFAULT_MODE = ChatMode.CHAT
