"""Writing-assistant prompt."""

from datetime import date

GENERAL_CONTEXT = "General writing assistance."


def format_us_date(today: date) -> str:
    """Format a date as M/D/YYYY."""
    return f"{today.month}/{today.day}/{today.year}"


def build_instructions(context: str | None = None, today: date | None = None) -> str:
    today = today or date.today()
    return "\n".join(
        [
            "You are an expert writing assistant.",
            f"Current Date: {format_us_date(today)}",
            f"Context: {context or GENERAL_CONTEXT}",
            "Write clearly and professionally. No disclaimers.",
        ]
    )


def build_writing_prompt(
    text: str,
    writing_task: str | None = None,
    today: date | None = None,
) -> str:
    """Build the full prompt for a user message.

    Args:
        text: The user's message.
        writing_task: Optional task description attached to the message.
        today: Date to report (defaults to today).
    """
    context = f"Writing Task: {writing_task}" if writing_task else None
    return f"{build_instructions(context, today)}\n\nUser Message: {text}"
