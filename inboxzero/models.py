"""
Data Model - Records exchanged between the collaborators and the core

Email and Analysis come from the outside world (Gmail, the LLM
classifier, the database) and are normalized here exactly once:
``Analysis.from_dict`` is the ingestion boundary that resolves intent
aliases, merges the near-duplicate action-item fields and fills every
optional field, so the scorer, synthesizer and suggestion generator only
ever see canonical shapes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from inboxzero.intents import OTHER, normalize_intent

PRIORITY_TIERS = ("high", "medium", "low")
COMPANY_CATEGORIES = ("high", "medium", "low", "unknown")
PLATFORMS = ("email", "linkedin")
SUGGESTION_TYPES = ("schedule", "deadline", "followup", "linkedin-followup")


# ---------------------------------------------------------------------------
# Coercion helpers for loosely-typed input (LLM JSON, stored rows)
# ---------------------------------------------------------------------------


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    """Coerce to a stripped string; empty or missing becomes None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_list(value: Any) -> List[str]:
    """Coerce to a list of non-empty strings. A bare string becomes a 1-item list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    result = []
    for item in items:
        text = _as_str(item)
        if text:
            result.append(text)
    return result


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    text = _as_str(value)
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so that mixed inputs stay comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def merge_action_items(required_actions: List[str], action_items: List[str]) -> List[str]:
    """
    Merge the classifier's two near-duplicate action lists.

    Required actions come first; an action item is appended only if the
    same text (case- and whitespace-insensitive) is not already present.
    """
    merged = []
    seen = set()
    for item in list(required_actions) + list(action_items):
        key = " ".join(item.lower().split())
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return merged


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Email:
    """A single inbox message as produced by the mail fetcher."""

    id: str
    thread_id: str
    sender: str  # bare address
    sender_name: str  # display name, may be empty
    subject: str
    body: str  # plain text
    received_at: datetime
    snippet: str = ""
    is_linkedin_notification: bool = False
    linkedin_profile_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Email":
        received = _parse_datetime(_pick(data, "received_at", "date", "received_date"))
        return cls(
            id=str(data["id"]),
            thread_id=str(_pick(data, "thread_id", "threadId") or ""),
            sender=str(_pick(data, "sender", "from") or ""),
            sender_name=str(_pick(data, "sender_name", "fromName") or ""),
            subject=str(data.get("subject") or ""),
            body=str(data.get("body") or ""),
            received_at=received or datetime.now(timezone.utc),
            snippet=str(data.get("snippet") or ""),
            is_linkedin_notification=bool(
                _pick(data, "is_linkedin_notification", "isLinkedInNotification")
            ),
            linkedin_profile_url=_as_str(
                _pick(data, "linkedin_profile_url", "linkedInProfileUrl")
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "sender": self.sender,
            "sender_name": self.sender_name,
            "subject": self.subject,
            "body": self.body,
            "received_at": self.received_at.isoformat(),
            "snippet": self.snippet,
            "is_linkedin_notification": self.is_linkedin_notification,
            "linkedin_profile_url": self.linkedin_profile_url,
        }


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


@dataclass
class Constraints:
    """Dates, deadlines and phrases that bound the requested action."""

    dates: List[str] = field(default_factory=list)
    times: List[str] = field(default_factory=list)
    deadlines: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    specific_constraints: List[str] = field(default_factory=list)
    duration: Optional[str] = None  # e.g. "30min", "1 hour"
    time_constraints: Optional[str] = None  # e.g. "Friday afternoon"

    @classmethod
    def from_dict(cls, data: Any) -> "Constraints":
        data = _as_dict(data)
        return cls(
            dates=_as_list(data.get("dates")),
            times=_as_list(data.get("times")),
            deadlines=_as_list(data.get("deadlines")),
            requirements=_as_list(data.get("requirements")),
            specific_constraints=_as_list(
                _pick(data, "specific_constraints", "specificConstraints")
            ),
            duration=_as_str(data.get("duration")),
            time_constraints=_as_str(_pick(data, "time_constraints", "timeConstraints")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dates": list(self.dates),
            "times": list(self.times),
            "deadlines": list(self.deadlines),
            "requirements": list(self.requirements),
            "specific_constraints": list(self.specific_constraints),
            "duration": self.duration,
            "time_constraints": self.time_constraints,
        }


@dataclass
class SenderInfo:
    name: str
    email: str
    company: Optional[str] = None
    linkedin_profile_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, email: Email) -> "SenderInfo":
        data = _as_dict(data)
        return cls(
            name=_as_str(data.get("name")) or email.sender_name,
            email=_as_str(data.get("email")) or email.sender,
            company=_as_str(data.get("company")),
            linkedin_profile_url=_as_str(
                _pick(data, "linkedin_profile_url", "linkedInProfileUrl")
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "linkedin_profile_url": self.linkedin_profile_url,
        }


@dataclass
class Analysis:
    """
    Structured classification of one email.

    ``priority`` starts as the classifier's advisory hint and is
    overwritten with the scorer's tier by the batch orchestrator.
    """

    intent: str = OTHER
    constraints: Constraints = field(default_factory=Constraints)
    action_items: List[str] = field(default_factory=list)
    sender_info: Optional[SenderInfo] = None
    platform: str = "email"
    priority: str = "medium"
    company_category: str = "unknown"
    company_name: Optional[str] = None
    linkedin_profile_url: Optional[str] = None
    constraints_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, email: Email) -> "Analysis":
        """
        Build a canonical Analysis from classifier output or a stored row.

        Accepts camelCase (LLM) and snake_case (storage) keys and never
        raises on missing or mistyped optional fields.
        """
        data = _as_dict(data)

        required = _as_list(_pick(data, "required_actions", "requiredActions"))
        items = _as_list(_pick(data, "action_items", "actionItems"))

        sender_info = SenderInfo.from_dict(_pick(data, "sender_info", "senderInfo"), email)

        platform = _as_str(data.get("platform"))
        if platform not in PLATFORMS:
            platform = "linkedin" if email.is_linkedin_notification else "email"

        priority = _as_str(data.get("priority"))
        if priority not in PRIORITY_TIERS:
            priority = "medium"

        category = (_as_str(_pick(data, "company_category", "companyCategory")) or "").lower()
        if category not in COMPANY_CATEGORIES:
            category = "unknown"

        profile_url = (
            _as_str(_pick(data, "linkedin_profile_url", "linkedInProfileUrl"))
            or sender_info.linkedin_profile_url
            or email.linkedin_profile_url
        )

        return cls(
            intent=normalize_intent(data.get("intent")),
            constraints=Constraints.from_dict(data.get("constraints")),
            action_items=merge_action_items(required, items),
            sender_info=sender_info,
            platform=platform,
            priority=priority,
            company_category=category,
            company_name=_as_str(_pick(data, "company_name", "companyName")),
            linkedin_profile_url=profile_url,
            constraints_text=_as_str(_pick(data, "constraints_text", "constraintsText")),
        )

    @classmethod
    def default(cls, email: Email) -> "Analysis":
        """Fallback analysis used when the email could not be classified."""
        return cls(
            intent=OTHER,
            sender_info=SenderInfo(name=email.sender_name, email=email.sender),
            platform="linkedin" if email.is_linkedin_notification else "email",
            priority="low",
            company_category="unknown",
            linkedin_profile_url=email.linkedin_profile_url,
        )

    @property
    def company(self) -> Optional[str]:
        """Extracted company name, falling back to the sender's company."""
        if self.company_name:
            return self.company_name
        if self.sender_info and self.sender_info.company:
            return self.sender_info.company
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent,
            "constraints": self.constraints.to_dict(),
            "action_items": list(self.action_items),
            "sender_info": self.sender_info.to_dict() if self.sender_info else None,
            "platform": self.platform,
            "priority": self.priority,
            "company_category": self.company_category,
            "company_name": self.company_name,
            "linkedin_profile_url": self.linkedin_profile_url,
            "constraints_text": self.constraints_text,
        }


# ---------------------------------------------------------------------------
# User preferences
# ---------------------------------------------------------------------------

PREFERENCE_LIST_FIELDS = (
    "skills",
    "past_roles",
    "desired_roles",
    "high_priority_companies",
    "medium_priority_companies",
    "low_priority_companies",
    "high_priority_roles",
    "medium_priority_roles",
    "high_priority_keywords",
    "low_priority_keywords",
    "urgent_indicators",
)

PREFERENCE_TEXT_FIELDS = (
    "high_priority_company_types",
    "medium_priority_company_types",
    "low_priority_company_types",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class UserPreferences:
    """Job-search profile used by the classifier prompt and the scorer."""

    skills: List[str] = field(default_factory=list)
    past_roles: List[str] = field(default_factory=list)
    desired_roles: List[str] = field(default_factory=list)

    # Free-text descriptors handed to the classifier ("AI startups, unicorns")
    high_priority_company_types: str = ""
    medium_priority_company_types: str = ""
    low_priority_company_types: str = ""

    # Legacy literal company names, used when the classifier gives no category
    high_priority_companies: List[str] = field(default_factory=list)
    medium_priority_companies: List[str] = field(default_factory=list)
    low_priority_companies: List[str] = field(default_factory=list)

    high_priority_roles: List[str] = field(default_factory=list)
    medium_priority_roles: List[str] = field(default_factory=list)

    high_priority_keywords: List[str] = field(
        default_factory=lambda: ["interview", "deadline", "urgent", "asap", "final round", "offer"]
    )
    low_priority_keywords: List[str] = field(
        default_factory=lambda: ["unsubscribe", "newsletter", "promotion", "marketing"]
    )
    urgent_indicators: List[str] = field(
        default_factory=lambda: ["deadline", "due", "by", "asap", "urgent", "immediately"]
    )

    preferred_response_time: int = 24  # hours

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        """
        Build preferences from an API payload or stored JSON.

        Keys may be snake_case or camelCase; unknown keys are ignored and
        missing keys keep their defaults.

        Raises:
            ValueError: If a field has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("Preferences must be a JSON object")

        prefs = cls()
        for name in PREFERENCE_LIST_FIELDS:
            value = _pick(data, name, _camel(name))
            if value is None:
                continue
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"'{name}' must be a list of strings")
            setattr(prefs, name, [v.strip() for v in value if v.strip()])

        for name in PREFERENCE_TEXT_FIELDS:
            value = _pick(data, name, _camel(name))
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"'{name}' must be a string")
            setattr(prefs, name, value.strip())

        hours = _pick(data, "preferred_response_time", "preferredResponseTime")
        if hours is not None:
            if isinstance(hours, bool) or not isinstance(hours, int) or hours < 0:
                raise ValueError("'preferred_response_time' must be a non-negative integer")
            prefs.preferred_response_time = hours

        return prefs

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: list(getattr(self, name)) for name in PREFERENCE_LIST_FIELDS}
        for name in PREFERENCE_TEXT_FIELDS:
            data[name] = getattr(self, name)
        data["preferred_response_time"] = self.preferred_response_time
        return data


# ---------------------------------------------------------------------------
# Calendar availability
# ---------------------------------------------------------------------------


@dataclass
class TimeSlot:
    start: str  # ISO timestamp
    end: str  # ISO timestamp

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass
class CalendarAvailability:
    """Free windows on one date, in chronological order."""

    date: str  # YYYY-MM-DD
    available_slots: List[TimeSlot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "available_slots": [slot.to_dict() for slot in self.available_slots],
        }


# ---------------------------------------------------------------------------
# Suggestions and batch output
# ---------------------------------------------------------------------------


@dataclass
class Suggestion:
    """One user-facing action recommendation derived from a classified email."""

    id: str
    email_id: str
    type: str
    title: str
    description: str
    action_items: List[str]
    priority: str
    created_at: datetime
    suggested_time: Optional[str] = None
    deadline: Optional[datetime] = None
    linkedin_profile_url: Optional[str] = None
    linkedin_message_url: Optional[str] = None
    generated_response: Optional[str] = None
    time_slots: Optional[List[str]] = None
    attachments_needed: Optional[List[str]] = None

    def __post_init__(self):
        if self.type not in SUGGESTION_TYPES:
            raise ValueError(
                f"Invalid suggestion type '{self.type}'. "
                f"Expected one of: {', '.join(SUGGESTION_TYPES)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email_id": self.email_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "suggested_time": self.suggested_time,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "action_items": list(self.action_items),
            "priority": self.priority,
            "linkedin_profile_url": self.linkedin_profile_url,
            "linkedin_message_url": self.linkedin_message_url,
            "generated_response": self.generated_response,
            "time_slots": list(self.time_slots) if self.time_slots is not None else None,
            "attachments_needed": (
                list(self.attachments_needed) if self.attachments_needed is not None else None
            ),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class EmailResult:
    """Everything the orchestrator computed for one email."""

    email: Email
    analysis: Analysis
    score: int
    tier: str
    action: str
    suggestions: List[Suggestion] = field(default_factory=list)
    error: Optional[str] = None  # user-visible, e.g. "could not classify this email"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email.to_dict(),
            "analysis": self.analysis.to_dict(),
            "score": self.score,
            "tier": self.tier,
            "action": self.action,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "error": self.error,
        }


@dataclass
class BatchResult:
    results: List[EmailResult] = field(default_factory=list)
    rate_limited: bool = False
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "rate_limited": self.rate_limited,
            "errors": list(self.errors),
        }
