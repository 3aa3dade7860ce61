from __future__ import annotations

from typing import Any

from analytics.ledger import AnalyticsLedger
from analytics.models import TOPIC_LABELS, TOPICS
from config.defaults import TOP_HELP_TOPICS_LIMIT, TOP_THREADS_LIMIT, TOP_THREADS_MIN_REPLIES
from llm.completions import complete_text
from memory.conversations import ConversationMemory, ConversationTurn

ANALYTICS_SYSTEM_PROMPT = "You are an analytics assistant for a Discord community bot."
APOLOGY_MESSAGE = "Sorry, I'm having trouble connecting to the AI. Please try again later."
EMPTY_ANSWER_MESSAGE = "I couldn't generate a response. Try again later."

ANSWER_INSTRUCTIONS = """Provide a helpful answer based on the data above. Use the conversation history to understand context and follow-up questions.

FORMATTING RULES:
- Do NOT add any leading spaces before lines
- Start your response directly with "Summary:" (no space before it)
- Use numbered lists like: 1.) 2.) 3.)
- Do NOT use asterisks (*) for bullet points

Your response must follow this EXACT format:

Summary:
[Write 4-5 detailed sentences. Include exact message counts, specific percentages, name the top issues explicitly, and note any actionable insights like "users struggle most with X"]

Top Active Threads ({min_replies}+ replies):
1.) "Thread title here" (X replies)

Be specific and data-driven. Cite actual numbers and thread names from the data."""


def build_analytics_context(ledger: AnalyticsLedger, *, max_chars: int = 6000) -> str:
    """Ledger snapshot rendered for the completion prompt."""
    totals = ledger.total_counts()
    threads = ledger.top_threads(TOP_THREADS_MIN_REPLIES, TOP_THREADS_LIMIT)
    topics = ledger.top_help_topics(TOP_HELP_TOPICS_LIMIT)

    lines = [
        f"TOTAL MESSAGES TRACKED: {len(ledger)}",
        f"TOTAL HELP CHANNEL MESSAGES: {ledger.help_message_count()}",
        "",
        f"TOP {TOP_THREADS_LIMIT} MOST ACTIVE THREADS ({TOP_THREADS_MIN_REPLIES}+ replies):",
    ]
    if threads:
        lines.extend(f'{i}.) "{t.thread_name}" ({t.reply_count} replies)' for i, t in enumerate(threads, start=1))
    else:
        lines.append(f"No threads with {TOP_THREADS_MIN_REPLIES}+ replies yet")

    lines.append("")
    lines.append("TOP HELP TOPICS BY CATEGORY:")
    if topics:
        lines.extend(f"{i}.) {t.topic} ({t.count} requests)" for i, t in enumerate(topics, start=1))
    else:
        lines.append("No help topics tracked yet")

    lines.append("")
    lines.append("MESSAGE TYPES ACROSS ALL CHANNELS:")
    lines.extend(f"- {TOPIC_LABELS[topic]}: {totals.get(topic, 0)}" for topic in TOPICS)

    lines.append("")
    lines.append("PER-CHANNEL BREAKDOWN:")
    summary = ledger.summary()
    if summary:
        lines.extend(f"#{channel}: {sum(counts.values())} messages" for channel, counts in summary.items())
    else:
        lines.append("(no channels tracked yet)")

    out = "\n".join(lines).strip()
    return out[:max_chars] if len(out) > max_chars else out


def format_conversation_history(turns: list[ConversationTurn], max_chars: int = 4000) -> str:
    if not turns:
        return ""
    lines = [f"{t.role.upper()}: {t.content}" for t in turns]
    out = "\n".join(lines)
    # Keep the most recent turns when trimming.
    return out[-max_chars:] if len(out) > max_chars else out


def build_answer_prompt(question: str, *, analytics_context: str, history_text: str) -> str:
    parts = [f"Answer questions based on this data:\n\n{analytics_context}"]
    if history_text:
        parts.append(f"PREVIOUS CONVERSATION:\n{history_text}")
    parts.append(f"CURRENT USER QUESTION: {question}")
    parts.append(ANSWER_INSTRUCTIONS.format(min_replies=TOP_THREADS_MIN_REPLIES))
    return "\n\n".join(parts)


async def answer_freeform(
    question: str,
    user_id: str | None,
    *,
    ledger: AnalyticsLedger,
    memory: ConversationMemory,
    client: Any,
    openai_model: str,
) -> str:
    """
    Answer an analytics question using the ledger snapshot and the user's history.

    The question is stored before the call and the answer after a successful call.
    On failure the apology text is returned and only the question remains stored.
    """
    history = memory.history(user_id) if user_id else []
    prompt = build_answer_prompt(
        question,
        analytics_context=build_analytics_context(ledger),
        history_text=format_conversation_history(history),
    )

    if user_id:
        memory.append(user_id, "user", question)

    try:
        answer = await complete_text(
            client,
            model=openai_model,
            prompt=prompt,
            system_prompt=ANALYTICS_SYSTEM_PROMPT,
        )
    except Exception as e:
        print(f"[Query] analytics answer failed: {e}")
        return APOLOGY_MESSAGE

    answer = answer or EMPTY_ANSWER_MESSAGE
    if user_id:
        memory.append(user_id, "assistant", answer)
    return answer
