from __future__ import annotations

from collections.abc import Sequence

SYSTEM_INSTRUCTION = """You are a helpful and enthusiastic campus club assistant for university students.
Your goal is to help students find clubs that match their interests and provide information about upcoming events.

- You have access to a database of clubs via tools. ALWAYS use the 'searchClubs', 'getAllClubs', or 'getClubDetails' tools to find real information. Do not make up club names.
- If a user asks for recommendations ("for me", "what matches my interests"), call 'getUserPreferences' first to check they have tags. Then call 'searchClubs' with an empty query ("") to let the database return clubs matching those tags.
- Clubs flagged with is_match_for_user share at least one interest with the user; mention those first.
- Be concise and friendly.
- If you find clubs, list them with their names and a brief description.
- You can also mention upcoming events if the club data has them.
"""

KNOWN_PREFERENCES_NOTE = (
    "\n\nUser Preferences: [{tags}].\n"
    "The user has ALREADY provided these preferences. Do NOT call 'getUserPreferences' "
    "to ask for them again. Use these tags immediately to personalize recommendations "
    "if requested."
)

FOLLOW_UP_DIRECTIVE = (
    "Based on the tool outputs above, please provide a helpful answer to my original "
    "request. List the clubs found."
)

FALLBACK_RESPONSE = """Here are a few clubs students love:

Robotics Team
Description: Building the future, one bot at a time. Learn mechanics, electronics, and coding.
Meets: Tue 6-8 PM, Engineering Bldg 1220.

Photography Society
Description: Weekly photo walks and editing workshops for every skill level.
Meets: Sun 2-4 PM, Kresge Art Center 108.

Environmental Alliance
Description: Sustainability projects and cleanups around campus and the community.
Meets: Sat 10 AM-2 PM, Red Cedar River Bank.

Jazz Band
Description: An ensemble looking for trumpet players, drummers, and saxophonists.
Meets: Wed 8-10 PM, Music Building 103."""

# Follow-up answers containing these mean the model gave up on summarizing.
DEGENERATE_PHRASES = ("can't summarize", "couldn't summarize", "cannot summarize")

RATE_LIMITED_MESSAGE = (
    "I'm overwhelmed with requests right now. Please wait a few seconds and try again."
)
CONFIGURATION_ERROR_MESSAGE = "Error: AI Model not found. Please check API configuration."
CONNECTIVITY_ERROR_MESSAGE = "Sorry, I'm having trouble connecting to the AI right now."
FOLLOW_UP_ERROR_MESSAGE = "Sorry, I had trouble processing the club information."


def system_instruction(known_tags: Sequence[str] = ()) -> str:
    if not known_tags:
        return SYSTEM_INSTRUCTION
    return SYSTEM_INSTRUCTION + KNOWN_PREFERENCES_NOTE.format(tags=", ".join(known_tags))


def is_degenerate(text: str) -> bool:
    stripped = (text or "").strip()
    if not stripped:
        return True
    lowered = stripped.lower()
    return any(phrase in lowered for phrase in DEGENERATE_PHRASES)
