"""Safety guidelines appended to every system prompt."""

SAFETY_GUIDELINES = """

SAFETY AND RELIABILITY REQUIREMENTS:
- Generate only interview preparation content relevant to technical interviews
- Avoid off-topic content (financial, medical, legal advice)
- Ensure all URLs are safe, valid, https, and relevant to interview prep
- Never use link shorteners
- Do not generate placeholder or example content
- Provide actionable, specific recommendations
- Keep all content professional and appropriate
- Ensure all suggested resources are legitimate learning platforms"""


def add_safety_guidelines(base_prompt: str) -> str:
    return base_prompt + SAFETY_GUIDELINES
