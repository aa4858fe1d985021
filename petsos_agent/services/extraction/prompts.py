"""
Prompt contract for slot extraction.
"""

SYSTEM_PROMPT = """You are a data extraction engine.
You output ONLY valid JSON.
No explanations. No markdown."""

USER_PROMPT_TEMPLATE = """Extract veterinarian availability slots from the transcript.

Context:
- Language: Ukrainian (Russian and English may also appear)
- Timezone: {timezone}
- Today is {today} ({weekday}) in timezone {timezone}
- Planning window: from today up to {window_days} days ahead
- Slot types:
  - URGENT = короткі / термінові консультації (short triage consultations)
  - VP = вузькопрофільні / розгорнуті консультації (extended specialist consultations)

Output format:
Return a JSON array. Each item MUST match EXACTLY:

{{
  "date": "YYYY-MM-DD",
  "startTime": "HH:mm",
  "endTime": "HH:mm",
  "type": "URGENT" | "VP"
}}

Rules:
1. Output JSON ONLY.
2. Parse date expressions:
   - "сьогодні", "завтра", "післязавтра" / "сегодня", "завтра", "послезавтра" / "today", "tomorrow"
   - weekdays: "понеділок", "вівторок", ... / "понедельник", ... / "Monday", ...
   - a weekday always means its next occurrence after today
3. Parse time expressions:
   - "з 10 до 13", "10-13", "from 10 to 13"
   - "з десятої до тринадцятої"
4. Default slot type is URGENT unless VP is clearly stated.
5. If the transcript says VP is unavailable (e.g. "ВП не беру", "тільки ургент", "only urgent"), DO NOT create VP slots.
6. Round time:
   - startTime -> down to HH:00
   - endTime -> up to HH:00
7. If endTime <= startTime, discard the slot.
8. If information is ambiguous or missing, return [].

Transcript:
{transcript}"""


def build_user_prompt(transcript: str, *, today: str, weekday: str, timezone: str, window_days: int) -> str:
    return USER_PROMPT_TEMPLATE.format(
        transcript=transcript,
        today=today,
        weekday=weekday,
        timezone=timezone,
        window_days=window_days,
    )
