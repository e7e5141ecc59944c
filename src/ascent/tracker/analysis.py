"""Weekly coaching report generated from this week's Black Book entries."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo

from ascent.tracker.errors import NoEntriesThisWeekError
from ascent.tracker.llm import GeminiClient, GenerationConfig, parse_json_response
from ascent.tracker.models import BlackBookEntry
from ascent.tracker.prompts import WeeklyAnalysisResponse, validate_response, weekly_analysis_prompt
from ascent.tracker.stats import this_week_entries

logger = logging.getLogger(__name__)

ANALYSIS_GENERATION = GenerationConfig(temperature=0.7, max_output_tokens=1024)


async def analyze_week(
    llm: GeminiClient,
    entries: list[BlackBookEntry],
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
) -> WeeklyAnalysisResponse:
    week_entries = this_week_entries(entries, now, tz)
    if not week_entries:
        raise NoEntriesThisWeekError("No problems solved this week. Complete some problems first!")

    text = await llm.generate(weekly_analysis_prompt(week_entries), ANALYSIS_GENERATION)
    result: WeeklyAnalysisResponse = validate_response(WeeklyAnalysisResponse, parse_json_response(text))
    logger.info("Weekly analysis over %d entries", len(week_entries))
    return result
