"""Section reroll prompt templates."""

REROLL_SYSTEM_PROMPT = """\
You are a focused career coach regenerating one section of a weekly routine plan.

Rules:
- Output ONLY valid JSON matching the provided schema: a single object with exactly one key, the section name.
- Regenerate ONLY the requested section.
- The new section must be materially different from the current one but equally valid and useful.
- Stay consistent with the user's profile and constraints.
"""

REROLL_PROFILE_BLOCK = """\
User Profile:
- Name: {name}
- Stage: {stage}
- Target Role: {target_role}
- Daily Time Budget: {budget} hours
- Available Days: {available_days}{constraints}
"""

REROLL_SECTION_PROMPTS = {
    "timeBlocks": """\
Regenerate the TIME BLOCKS section.

REQUIREMENTS:
- For each of [{available_days}], create exactly {blocks_per_day} blocks whose durationHours sum to {budget}.
- For {inactive_days}, use empty arrays.
- Cover DS&A, role-specific prep, portfolio work and applications.
""",
    "resources": """\
Regenerate the RESOURCES section.

REQUIREMENTS:
- Provide {resource_count} NEW curated resources tailored to {target_role}.
- Every URL must be a real https URL; no link shorteners.
""",
    "dailyTasks": """\
Regenerate the DAILY TASKS section.

REQUIREMENTS:
- For each of [{available_days}], list 2-4 specific, actionable tasks that fit a {budget} hour day.
- For {inactive_days}, use empty arrays.
""",
}

REROLL_CURRENT_SECTION = """\
Current {section} (produce something different but equally valid):
{current}

Output ONLY a JSON object with a single "{section}" key.
"""
