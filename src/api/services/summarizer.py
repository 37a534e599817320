"""Meeting summaries and owner-grouped action items via the OpenAI chat API."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from src.stream_core.models import (
    UNASSIGNED_OWNER,
    ActionItem,
    Assignment,
    Summary,
    TranscriptSegment,
)

from ..settings import APISettings

LOGGER = logging.getLogger("meetinglistener.summarizer")

SYSTEM_PROMPT = "You summarize live meeting transcripts and extract action items."


class SummarizationError(RuntimeError):
    pass


def build_prompt(transcript: Sequence[TranscriptSegment], deadline_sentinel: str) -> str:
    lines = "\n".join(segment.as_line() for segment in transcript)
    return "\n".join(
        [
            "Summarize the meeting transcript below and extract its action items.",
            "Rules:",
            "- Group action items by owner; use the speaker name as owner when a person commits to a task.",
            f'- When no deadline was stated, set "deadline" to "{deadline_sentinel}".',
            "- When a person's later statement contradicts an earlier one, keep the most recent statement.",
            "- Unknown speakers are shown as '?'.",
            "Return JSON only, with this shape:",
            '{"summary": "...", "assignments": [{"owner": "...", "items": [{"text": "...", "deadline": "..."}]}]}',
            "",
            "Transcript:",
            lines,
        ]
    )


def parse_summary(payload: Any, deadline_sentinel: str) -> Summary:
    """Normalize model output into a ``Summary``.

    Accepts ``{"summary", "assignments": [{"owner", "items"}]}`` and the flat
    ``{"summary", "tasks": [{"owner", "text", "deadline"}]}`` shape. Owners
    are merged in first-seen order and blank deadlines get the sentinel.
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise SummarizationError(f"Summary response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SummarizationError("Summary response must be a JSON object")
    text = payload.get("summary", payload.get("text", ""))
    if text is None:
        text = ""
    if not isinstance(text, str):
        raise SummarizationError("Summary text must be a string")

    grouped: Dict[str, List[ActionItem]] = {}
    for owner, item in _iter_items(payload):
        item_text = str(item.get("text") or "").strip()
        if not item_text:
            continue
        deadline = item.get("deadline")
        deadline = str(deadline).strip() if deadline is not None else ""
        grouped.setdefault(owner, []).append(
            ActionItem(text=item_text, deadline=deadline or deadline_sentinel)
        )
    return Summary(
        text=text.strip(),
        assignments=[Assignment(owner=owner, items=items) for owner, items in grouped.items()],
    )


def _iter_items(payload: Dict[str, Any]):
    assignments = payload.get("assignments")
    tasks = payload.get("tasks")
    if assignments is not None:
        if not isinstance(assignments, list):
            raise SummarizationError("'assignments' must be a list")
        for entry in assignments:
            if not isinstance(entry, dict):
                raise SummarizationError("Assignment entries must be objects")
            owner = _owner(entry.get("owner"))
            items = entry.get("items") or []
            if not isinstance(items, list):
                raise SummarizationError("Assignment 'items' must be a list")
            for item in items:
                if isinstance(item, str):
                    item = {"text": item}
                if not isinstance(item, dict):
                    raise SummarizationError("Action items must be objects")
                yield owner, item
    elif tasks is not None:
        if not isinstance(tasks, list):
            raise SummarizationError("'tasks' must be a list")
        for task in tasks:
            if not isinstance(task, dict):
                raise SummarizationError("Task entries must be objects")
            yield _owner(task.get("owner")), task


def _owner(value: Any) -> str:
    owner = str(value).strip() if value is not None else ""
    return owner or UNASSIGNED_OWNER


class OpenAISummarizer:
    """Ask a chat model for a JSON summary of the whole transcript."""

    def __init__(self, settings: APISettings, client: Optional[AsyncOpenAI] = None) -> None:
        if client is None:
            if not settings.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY is required for summaries")
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self._client = client
        self.model = settings.summary_model
        self.temperature = settings.summary_temperature
        self.deadline_sentinel = settings.summary_deadline_sentinel

    async def summarize(self, transcript: Sequence[TranscriptSegment]) -> Summary:
        prompt = build_prompt(transcript, self.deadline_sentinel)
        completion = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise SummarizationError("Summary response missing choices")
        content = choices[0].message.content or ""
        return parse_summary(content, self.deadline_sentinel)


def build_summarizer(settings: APISettings) -> Optional[OpenAISummarizer]:
    if not settings.openai_api_key:
        LOGGER.warning("OPENAI_API_KEY missing; meeting summaries are disabled")
        return None
    return OpenAISummarizer(settings)
