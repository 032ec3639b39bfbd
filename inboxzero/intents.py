"""
Intent tags - canonical job-search intents and their legacy aliases

Older classifier prompts returned hyphenated tags ("schedule",
"multi-step", "linkedin-followup"); the current prompt returns the
underscored canonical set. Everything downstream of the Analysis
ingestion boundary only ever sees canonical tags.
"""

from typing import Any, Dict

SCHEDULE_CALL = "schedule_call"
SEND_RESUME = "send_resume"
DEADLINE = "deadline"
TECHNICAL_ASSESSMENT = "technical_assessment"
MULTI_STEP_PROCESS = "multi_step_process"
LINKEDIN_FOLLOWUP = "linkedin_followup"
OTHER = "other"

CANONICAL_INTENTS = (
    SCHEDULE_CALL,
    SEND_RESUME,
    DEADLINE,
    TECHNICAL_ASSESSMENT,
    MULTI_STEP_PROCESS,
    LINKEDIN_FOLLOWUP,
    OTHER,
)

INTENT_ALIASES: Dict[str, str] = {
    "schedule": SCHEDULE_CALL,
    "schedule-call": SCHEDULE_CALL,
    "send-resume": SEND_RESUME,
    "technical-assessment": TECHNICAL_ASSESSMENT,
    "multi-step": MULTI_STEP_PROCESS,
    "multi-step-process": MULTI_STEP_PROCESS,
    "linkedin-followup": LINKEDIN_FOLLOWUP,
}


def normalize_intent(value: Any) -> str:
    """
    Map a raw intent tag to its canonical form.

    Case and surrounding whitespace are ignored. Unknown values, None and
    non-string values all map to "other".

    Examples:
        >>> normalize_intent("multi-step")
        'multi_step_process'
        >>> normalize_intent(" Schedule_Call ")
        'schedule_call'
        >>> normalize_intent("coffee chat")
        'other'
    """
    if not isinstance(value, str):
        return OTHER

    tag = value.strip().lower()
    if tag in CANONICAL_INTENTS:
        return tag
    return INTENT_ALIASES.get(tag, OTHER)
