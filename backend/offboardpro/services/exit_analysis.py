"""LLM analysis of exit survey responses (Groq chat completions API)."""
from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ..config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert HR analytics assistant. "
    "Provide concise, actionable insights from exit survey data."
)

RESPONSE_SHAPE = """{
  "patterns": ["pattern 1", "pattern 2"],
  "churn_risks": ["risk 1", "risk 2"],
  "recommendations": [
    {
      "action": "specific action to take",
      "department": "affected department",
      "priority": "high|medium|low",
      "expected_impact": "what this will achieve"
    }
  ],
  "key_metrics": {
    "avg_nps": 0,
    "boomerang_potential": 0,
    "top_departure_reason": "reason",
    "sentiment": "positive|neutral|negative"
  }
}"""


class ExitAnalysisError(Exception):
    """LLM provider call failed or returned an unusable answer."""


def build_prompt(surveys: list[dict[str, Any]]) -> str:
    return (
        "You are an HR analytics expert. Analyze these exit survey responses "
        "and provide actionable insights.\n\n"
        f"Exit Survey Data ({len(surveys)} responses):\n"
        f"{json.dumps(surveys, indent=2, default=str)}\n\n"
        f"Provide analysis in this JSON format:\n{RESPONSE_SHAPE}\n\n"
        "Be specific, actionable, and data-driven."
    )


def analyze_exit_data(surveys: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Return the parsed analysis, or None when there is nothing to analyze."""
    if not surveys:
        return None
    if not settings.GROQ_API_KEY:
        raise ExitAnalysisError("GROQ_API_KEY not configured")

    try:
        response = requests.post(
            settings.GROQ_API_URL,
            json={
                "model": settings.GROQ_MODEL,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(surveys)},
                ],
                "temperature": 0.7,
                "max_tokens": 2000,
                "response_format": {"type": "json_object"},
            },
            headers={"Authorization": f"Bearer {settings.GROQ_API_KEY}"},
            timeout=settings.GROQ_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise ExitAnalysisError(f"Groq request failed: {e}") from e

    if response.status_code != 200:
        raise ExitAnalysisError(f"Groq returned HTTP {response.status_code}: {response.text[:200]}")

    try:
        content = response.json()["choices"][0]["message"]["content"]
        analysis = json.loads(content)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ExitAnalysisError("Groq returned an unparseable completion") from e

    if not isinstance(analysis, dict):
        raise ExitAnalysisError("Groq returned a non-object analysis")
    return analysis
