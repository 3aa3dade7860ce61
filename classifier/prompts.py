from __future__ import annotations

CLASSIFY_SYSTEM_PROMPT = (
    "You are a message classifier for a developer community Discord server. "
    "You answer with exactly one category label and nothing else."
)

CLASSIFY_PROMPT_TEMPLATE = """Classify the message into exactly ONE category.

VALID CATEGORIES (you MUST respond with one of these exact values):
- support-request
- feature-request
- bug-report
- general-discussion
- praise
- question

CATEGORY DEFINITIONS:
- support-request: Help with setup, configuration, installation, or troubleshooting
- feature-request: Suggesting new features, enhancements, or improvements
- bug-report: Reporting broken functionality, errors, or unexpected behavior
- general-discussion: Casual conversation, introductions, greetings, or off-topic
- praise: Expressing thanks, appreciation, or positive feedback
- question: Asking about how something works (not troubleshooting)

EXAMPLES:
"How do I install Coder?" -> support-request
"Can you add dark mode?" -> feature-request
"The login page crashes on Safari" -> bug-report
"Hey everyone, I'm new here!" -> general-discussion
"Thanks, this is amazing!" -> praise
"What does this feature do?" -> question
"Hi, I'm having trouble connecting" -> support-request
"Love the new update!" -> praise

MESSAGE TO CLASSIFY:
"{content}"

RESPOND WITH ONLY ONE OF: support-request, feature-request, bug-report, general-discussion, praise, question"""

HELP_TOPIC_PROMPT_TEMPLATE = """Extract the main topic or issue from this help request. Summarize in 2-5 words.

Examples:
- "How do I set up VS Code with Coder?" -> "VS Code setup"
- "My workspace keeps crashing" -> "workspace crashes"
- "Can't connect to my dev environment" -> "connection issues"
- "How do templates work?" -> "templates"
- "SSH not working" -> "SSH issues"

MESSAGE:
"{content}"

Respond with ONLY the topic (2-5 words), nothing else."""

WELCOME_PROMPT_TEMPLATE = """You're Marco, a friendly and enthusiastic community manager welcoming someone to the Coder Discord server.

THEIR INTRO:
"{content}"

YOUR TASK:
1. Start with ONE of these greetings (vary it each time):
   - "Thanks for joining the server!"
   - "Welcome to the Coder community!"
   - "Welcome to the Coder server!"

2. Then respond based on what they shared:
   - If they introduced themselves with details (name, background, interests, goals): Acknowledge something specific they mentioned and ask ONE relevant follow-up question
   - If they're asking about setup/technical help: Welcome them and point them toward getting help
   - If they only said "hi" or "hello" with no details: Ask them to tell you more about themselves or what brought them here

STYLE:
- Be warm and genuine, not corporate
- Keep it conversational and enthusiastic
- 2-3 sentences max
- One follow-up question only
- Match their energy level

YOUR RESPONSE:"""

# Message bodies are clipped before being placed into prompts.
MAX_PROMPT_CONTENT_CHARS = 1900


def clip_content(content: str) -> str:
    text = str(content or "").strip()
    if len(text) > MAX_PROMPT_CONTENT_CHARS:
        return text[:MAX_PROMPT_CONTENT_CHARS]
    return text


def build_classify_prompt(content: str) -> str:
    return CLASSIFY_PROMPT_TEMPLATE.format(content=clip_content(content))


def build_help_topic_prompt(content: str) -> str:
    return HELP_TOPIC_PROMPT_TEMPLATE.format(content=clip_content(content))


def build_welcome_prompt(content: str) -> str:
    return WELCOME_PROMPT_TEMPLATE.format(content=clip_content(content))
