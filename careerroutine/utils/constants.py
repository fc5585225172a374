"""Shared regex patterns and magic values used across the pipeline."""

import re

# Canonical weekday tokens in week order. Plan.timeBlocks keys use these.
WEEKDAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Full names and common spellings accepted on input, mapped to canonical tokens.
WEEKDAY_ALIASES: dict[str, str] = {
    "mon": "Mon", "monday": "Mon",
    "tue": "Tue", "tues": "Tue", "tuesday": "Tue",
    "wed": "Wed", "weds": "Wed", "wednesday": "Wed",
    "thu": "Thu", "thur": "Thu", "thurs": "Thu", "thursday": "Thu",
    "fri": "Fri", "friday": "Fri",
    "sat": "Sat", "saturday": "Sat",
    "sun": "Sun", "sunday": "Sun",
}

# Sections of a Plan that can be regenerated on their own.
REROLL_SECTIONS: tuple[str, ...] = ("timeBlocks", "resources", "dailyTasks")

# Code fences, separator runs and chat-template tags stripped from user text.
PROMPT_DELIMITER_RE = re.compile(r"```|-{3,}|={3,}|\[/?INST\]", re.IGNORECASE)

# Phrases that try to override the system prompt. Deleted, never rejected.
PROMPT_OVERRIDE_RE = re.compile(
    r"ignore (all )?previous instructions|ignore previous|disregard (all )?previous instructions"
    r"|you are now|forget (everything|all)|override|system prompt",
    re.IGNORECASE,
)

# Square-bracketed placeholders such as "[Your Name]".
PLACEHOLDER_BRACKET_RE = re.compile(r"\[[^\[\]\n]*\]")

URL_RE = re.compile(r"https?://[^\s\"'<>)]+", re.IGNORECASE)
INSECURE_URL_RE = re.compile(r"\bhttp://", re.IGNORECASE)

# Leading/trailing markdown fences around model output.
JSON_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
