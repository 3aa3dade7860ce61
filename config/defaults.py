from __future__ import annotations

# Logical channel name whose messages get a help-topic extraction pass.
HELP_CHANNEL_NAME = "help"

# Conversation memory retention (7 days).
CONVERSATION_RETENTION_HOURS = 24 * 7

# Debounce quiet periods for the two snapshot files.
MESSAGES_SAVE_DELAY_SECONDS = 5.0
CONVERSATIONS_SAVE_DELAY_SECONDS = 2.0

DEFAULT_MESSAGES_FILE = "analytics-data.json"
DEFAULT_CONVERSATIONS_FILE = "conversations-data.json"
DEFAULT_CHANNELS_FILE = "channels.yml"

# Startup backfill (skipped entirely when a snapshot already has data).
DEFAULT_BACKFILL_LIMIT = 200
DEFAULT_BACKFILL_PAUSE_EVERY = 50
DEFAULT_BACKFILL_PAUSE_SECONDS = 1.0

# Ranking defaults used by reports and the analytics prompt.
TOP_THREADS_MIN_REPLIES = 5
TOP_THREADS_LIMIT = 5
TOP_HELP_TOPICS_LIMIT = 5

# Weekly reaction rollup.
ROLLUP_DAYS = 7
ROLLUP_MIN_REACTIONS = 3
ROLLUP_MAX_ITEMS = 15

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_TIMEOUT_SECONDS = 30.0

DEFAULT_DAILY_SUMMARY_INTERVAL_SECONDS = 24 * 3600

# Channels known to the community, keyed by logical name. Ids come from the
# environment so the same defaults work across servers.
DEFAULT_CHANNELS = [
    {"name": "intros", "channel_id_env": "DISCORD_CHANNEL_INTROS", "response_type": "welcome", "enabled": True},
    {"name": "random", "channel_id_env": "DISCORD_CHANNEL_RANDOM", "response_type": "analytics-only", "enabled": True},
    {"name": "general", "channel_id_env": "DISCORD_CHANNEL_GENERAL", "response_type": "analytics-only", "enabled": True},
    {"name": "feedback", "channel_id_env": "DISCORD_CHANNEL_FEEDBACK", "response_type": "analytics-only", "enabled": True},
    {"name": "ai", "channel_id_env": "DISCORD_CHANNEL_AI", "response_type": "analytics-only", "enabled": True},
    {"name": "blink", "channel_id_env": "DISCORD_CHANNEL_BLINK", "response_type": "analytics-only", "enabled": True},
    {"name": "help", "channel_id_env": "DISCORD_CHANNEL_HELP", "response_type": "analytics-only", "enabled": True},
    {"name": "contributing", "channel_id_env": "DISCORD_CHANNEL_CONTRIBUTING", "response_type": "analytics-only", "enabled": True},
    {"name": "show-and-tell", "channel_id_env": "DISCORD_CHANNEL_SHOW_AND_TELL", "response_type": "analytics-only", "enabled": True},
    {"name": "education", "channel_id_env": "DISCORD_CHANNEL_EDUCATION", "response_type": "analytics-only", "enabled": True},
]
