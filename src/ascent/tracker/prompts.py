"""Prompts for the coaching calls and the JSON shapes expected back."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ascent.tracker.errors import InvalidResponseError
from ascent.tracker.models import BlackBookEntry, CamelModel


class HintsResponse(BaseModel):
    hint1: StrictStr
    hint2: StrictStr
    hint3: StrictStr


class WeeklyAnalysisResponse(CamelModel):
    weak_areas: list[StrictStr]
    strengths: list[StrictStr]
    suggestions: list[StrictStr]
    insights: StrictStr


def validate_response(model: type[BaseModel], data: Any) -> Any:  # noqa: ANN401
    """Validate parsed model output, rejecting missing or mistyped fields."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        detail = f": bad or missing {', '.join(missing)}" if missing else ""
        raise InvalidResponseError(f"Invalid response format{detail}") from exc


def entry_summary(entry: BlackBookEntry) -> dict[str, Any]:
    return {
        "problem": entry.problem,
        "pattern": entry.type_pattern,
        "timeSpent": f"{entry.time_spent // 60}m",
        "solvedWithoutEditorial": entry.solved_without_editorial,
        "keyObservation": entry.key_observation,
        "mistake": entry.mistake_i_made,
    }


def weekly_analysis_prompt(entries: list[BlackBookEntry]) -> str:
    entries_data = json.dumps([entry_summary(e) for e in entries], indent=2)
    return f"""You are an expert competitive programming coach analyzing a student's weekly performance.

**This Week's Problems Solved:**
{entries_data}

**Analysis Required:**
1. Identify 2-3 weak areas/patterns where the student struggled or needed editorials
2. Highlight 2-3 strengths (patterns solved independently, good time management)
3. Provide 3-4 actionable suggestions for improvement
4. Give overall insights on their learning trajectory

**CRITICAL: Response Format**
Respond with ONLY a valid JSON object. Do NOT include any markdown formatting, code blocks, or backticks. Just the raw JSON:
{{
  "weakAreas": ["area1", "area2"],
  "strengths": ["strength1", "strength2"],
  "suggestions": ["suggestion1", "suggestion2", "suggestion3"],
  "insights": "2-3 sentence summary of overall performance"
}}

Be specific, constructive, and encouraging. Focus on DSA concepts and problem-solving strategies."""


def hints_prompt(problem_title: str, problem_url: str) -> str:
    return f"""You are a competitive programming coach. A student is working on a problem and may need hints.

**Problem:** {problem_title}
**URL:** {problem_url}

Generate 3 progressive hints for this problem. The hints should help the student without giving away the solution too quickly.

**IMPORTANT:**
- Hint 1: A gentle nudge - point them in the right direction without revealing the approach
- Hint 2: A stronger hint - suggest the technique/pattern but don't explain the full solution
- Hint 3: Almost the solution - explain the approach clearly but let them implement it

**CRITICAL: Response Format**
Respond with ONLY a valid JSON object. No markdown, no code blocks, just raw JSON:
{{
  "hint1": "First hint here...",
  "hint2": "Second hint here...",
  "hint3": "Third hint here..."
}}

Keep each hint concise (2-3 sentences max). Be helpful and encouraging."""
