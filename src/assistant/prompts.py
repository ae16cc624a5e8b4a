"""System prompt assembly for the assistant."""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

PERSONALITIES = {
    "friendly": "Be warm, approachable, and conversational.",
    "professional": "Be polished and businesslike. Avoid slang and small talk.",
    "concise": "Be direct and get to the point. Skip pleasantries.",
    "enthusiastic": "Be upbeat and energetic, and show genuine excitement about helping.",
}

VERBOSITY = {
    "brief": "Keep responses to one or two sentences unless more detail is requested.",
    "balanced": "Give enough detail to be useful without padding.",
    "detailed": "Give thorough responses with context and explanation.",
}

CAPABILITIES = """You can:
- Create reminders (with optional due dates and repetition)
- Create, look up, update, and delete calendar events
- Search the web for current information
- Send text messages and emails to the user's contacts
- Look up the user's contacts"""

GUIDELINES = """Guidelines:
- Use tools when the user asks for something a tool can do; otherwise just answer.
- Dates passed to tools must be ISO 8601. Resolve relative dates ("tomorrow at 3") against the current time below.
- To change or delete a calendar event, look up its ID with get_calendar_events first.
- Confirm what you did in plain language once the tools have finished.
- If a tool reports an error, tell the user briefly and suggest what they can do."""


@dataclass
class UserProfile:
    """Who the assistant is talking to, and how they want to be addressed."""

    display_name: str = ""
    nickname: str = ""
    personality: str = "friendly"
    verbosity: str = "balanced"
    communication_style: str = ""
    email_sign_off: str = ""
    email_signature: str = ""
    occupation: str = ""
    important_facts: list[str] = field(default_factory=list)

    @property
    def address_as(self) -> str:
        return self.nickname or self.display_name


def build_system_prompt(
    profile: UserProfile | None = None,
    assistant_name: str = "Nudge",
    memory_context: str | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Render the per-turn system prompt.

    ``now`` should come from the caller's clock so the rendered date matches
    the instant the tools resolve relative dates against.
    """
    profile = profile or UserProfile()
    tz = tz or timezone.utc
    now = (now or datetime.now(timezone.utc)).astimezone(tz)

    sections = [f"You are {assistant_name}, a personal assistant."]
    if profile.address_as:
        sections.append(f"The user's name is {profile.address_as}. Address them that way.")

    style = [PERSONALITIES.get(profile.personality, PERSONALITIES["friendly"])]
    style.append(VERBOSITY.get(profile.verbosity, VERBOSITY["balanced"]))
    if profile.communication_style:
        style.append(f"Preferred communication style: {profile.communication_style}.")
    sections.append(" ".join(style))

    email = []
    if profile.email_sign_off:
        email.append(f'End emails with "{profile.email_sign_off}".')
    if profile.email_signature:
        email.append(f"Sign emails as:\n{profile.email_signature}")
    if email:
        sections.append("When writing emails on the user's behalf: " + " ".join(email))

    about = []
    if profile.occupation:
        about.append(f"- Occupation: {profile.occupation}")
    about.extend(f"- {fact}" for fact in profile.important_facts if fact)
    if about:
        sections.append("About the user:\n" + "\n".join(about))

    if memory_context and memory_context.strip():
        sections.append("What you remember from earlier conversations:\n" + memory_context.strip())

    sections.append(CAPABILITIES)
    sections.append(GUIDELINES)
    offset = now.strftime("%z")
    sections.append(
        f"Current date and time: {now.strftime('%A, %B %d, %Y %I:%M %p')} "
        f"(UTC{offset[:3]}:{offset[3:]})"
    )
    return "\n\n".join(sections)
