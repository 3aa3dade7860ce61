import os
import asyncio
import discord
from discord.ext import commands
from openai import OpenAI
from analytics.ledger import AnalyticsLedger
from config.channels import ChannelDirectory
from config.channels import load_channel_configs
from config.defaults import DEFAULT_BACKFILL_LIMIT
from config.defaults import DEFAULT_BACKFILL_PAUSE_EVERY
from config.defaults import DEFAULT_BACKFILL_PAUSE_SECONDS
from config.defaults import DEFAULT_CHANNELS_FILE
from config.defaults import DEFAULT_CONVERSATIONS_FILE
from config.defaults import DEFAULT_DAILY_SUMMARY_INTERVAL_SECONDS
from config.defaults import DEFAULT_MESSAGES_FILE
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_OPENAI_TIMEOUT_SECONDS
from config.defaults import HELP_CHANNEL_NAME
from db.persistence import PersistenceManager
from jobs.service import collect_rollup as collect_rollup_service
from jobs.service import daily_summary_loop as daily_summary_loop_service
from memory.conversations import ConversationMemory
from misc.runtime_deps import SlackDeps
from misc.runtime_wiring import wire_bot_runtime
from misc.slack_runtime import build_slack_app
from misc.slack_runtime import start_socket_mode
from welcome.service import WelcomeReviewService

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
# Any OpenAI-compatible server (e.g. Ollama at http://localhost:11434/v1).
OPENAI_BASE_URL = (os.getenv("OPENAI_BASE_URL") or "").strip() or None

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")
if not OPENAI_API_KEY and not OPENAI_BASE_URL:
    raise RuntimeError("Missing OPENAI_API_KEY env var")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL).strip() or DEFAULT_OPENAI_MODEL
try:
    OPENAI_TIMEOUT_SECONDS = float(
        os.getenv("MARCO_OPENAI_TIMEOUT_SECONDS", str(DEFAULT_OPENAI_TIMEOUT_SECONDS)).strip()
    )
except ValueError:
    OPENAI_TIMEOUT_SECONDS = DEFAULT_OPENAI_TIMEOUT_SECONDS

SLACK_ENABLED = os.getenv("MARCO_SLACK_ENABLED", "1").strip() == "1"
SLACK_BOT_TOKEN = (os.getenv("SLACK_BOT_TOKEN") or "").strip()
SLACK_APP_TOKEN = (os.getenv("SLACK_APP_TOKEN") or "").strip()
if SLACK_ENABLED and not SLACK_BOT_TOKEN:
    raise RuntimeError("Missing SLACK_BOT_TOKEN env var (set MARCO_SLACK_ENABLED=0 to run without Slack)")
if SLACK_ENABLED and not SLACK_APP_TOKEN:
    raise RuntimeError("Missing SLACK_APP_TOKEN env var (set MARCO_SLACK_ENABLED=0 to run without Slack)")

# Slack channel (or user id, for a DM) that receives welcome drafts for review.
SLACK_REVIEW_CHANNEL = os.getenv("MARCO_SLACK_REVIEW_CHANNEL", "").strip()
SLACK_SUMMARY_CHANNEL = os.getenv("MARCO_SLACK_SUMMARY_CHANNEL", "").strip()
DISCORD_GUILD_ID = os.getenv("DISCORD_GUILD_ID", "").strip()

# =========================
# STORAGE + CHANNELS
# =========================
# Point these at a mounted volume in hosted deployments.
DATA_DIR = os.getenv("MARCO_DATA_DIR", ".").strip() or "."
MESSAGES_FILE = os.getenv("MARCO_MESSAGES_FILE", os.path.join(DATA_DIR, DEFAULT_MESSAGES_FILE))
CONVERSATIONS_FILE = os.getenv("MARCO_CONVERSATIONS_FILE", os.path.join(DATA_DIR, DEFAULT_CONVERSATIONS_FILE))
HELP_CHANNEL = os.getenv("MARCO_HELP_CHANNEL", HELP_CHANNEL_NAME).strip().lstrip("#").lower() or HELP_CHANNEL_NAME

CHANNELS_FILE = os.getenv(
    "MARCO_CHANNELS_FILE",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "config", DEFAULT_CHANNELS_FILE),
)
CHANNEL_CONFIGS, CHANNELS_WARNING = load_channel_configs(CHANNELS_FILE)
CHANNEL_DIRECTORY = ChannelDirectory(CHANNEL_CONFIGS)

BACKFILL_ENABLED = os.getenv("MARCO_BACKFILL", "1").strip() == "1"
BACKFILL_LIMIT = int(os.getenv("MARCO_BACKFILL_LIMIT", str(DEFAULT_BACKFILL_LIMIT)).strip() or DEFAULT_BACKFILL_LIMIT)
BACKFILL_PAUSE_EVERY = int(
    os.getenv("MARCO_BACKFILL_PAUSE_EVERY", str(DEFAULT_BACKFILL_PAUSE_EVERY)).strip() or DEFAULT_BACKFILL_PAUSE_EVERY
)
try:
    BACKFILL_PAUSE_SECONDS = float(
        os.getenv("MARCO_BACKFILL_PAUSE_SECONDS", str(DEFAULT_BACKFILL_PAUSE_SECONDS)).strip()
    )
except ValueError:
    BACKFILL_PAUSE_SECONDS = DEFAULT_BACKFILL_PAUSE_SECONDS

DAILY_SUMMARY_INTERVAL_SECONDS = int(
    os.getenv("MARCO_DAILY_SUMMARY_INTERVAL_SECONDS", str(DEFAULT_DAILY_SUMMARY_INTERVAL_SECONDS)).strip()
    or DEFAULT_DAILY_SUMMARY_INTERVAL_SECONDS
)

print(
    f"[CFG] model={OPENAI_MODEL} base_url={OPENAI_BASE_URL or '(openai)'} timeout_s={OPENAI_TIMEOUT_SECONDS} "
    f"slack={SLACK_ENABLED} review_channel={SLACK_REVIEW_CHANNEL or '(none)'} "
    f"summary_channel={SLACK_SUMMARY_CHANNEL or '(none)'}"
)
print(
    f"[CFG] channels={len(CHANNEL_DIRECTORY)} welcome={len(CHANNEL_DIRECTORY.welcome_ids())} "
    f"help_channel={HELP_CHANNEL} path={CHANNELS_FILE}"
)
if CHANNELS_WARNING:
    print(f"[CFG] {CHANNELS_WARNING}")
print(
    f"[CFG] messages_file={MESSAGES_FILE} conversations_file={CONVERSATIONS_FILE} "
    f"backfill={BACKFILL_ENABLED} limit={BACKFILL_LIMIT}"
)
if not DISCORD_GUILD_ID:
    print("[CFG] DISCORD_GUILD_ID not set; Discord links in reports will be incomplete")

client = OpenAI(
    api_key=OPENAI_API_KEY or "ollama",
    base_url=OPENAI_BASE_URL,
    timeout=OPENAI_TIMEOUT_SECONDS,
)

# =========================
# STATE
# =========================
ledger = AnalyticsLedger(help_channel=HELP_CHANNEL)
conversation_memory = ConversationMemory()
persistence = PersistenceManager(
    ledger=ledger,
    memory=conversation_memory,
    messages_path=MESSAGES_FILE,
    conversations_path=CONVERSATIONS_FILE,
)
persistence.load()
persistence.attach()

# =========================
# DISCORD + SLACK
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix="!", intents=intents)

slack_app = None
review_service = WelcomeReviewService(
    client=client,
    openai_model=OPENAI_MODEL,
    slack_client=None,
    review_channel=SLACK_REVIEW_CHANNEL,
)


async def fetch_discord_message(channel_id: int, message_id: int):
    channel = bot.get_channel(channel_id)
    if channel is None:
        channel = await bot.fetch_channel(channel_id)
    return await channel.fetch_message(message_id)


async def collect_rollup():
    return await collect_rollup_service(ledger=ledger, fetch_message_func=fetch_discord_message)


if SLACK_ENABLED:
    slack_app = build_slack_app(
        bot_token=SLACK_BOT_TOKEN,
        deps=SlackDeps(
            ledger=ledger,
            memory=conversation_memory,
            review_service=review_service,
            client=client,
            openai_model=OPENAI_MODEL,
            guild_id=DISCORD_GUILD_ID,
            collect_rollup_func=collect_rollup,
        ),
    )
    review_service.slack_client = slack_app.client


async def start_slack() -> None:
    try:
        await start_socket_mode(slack_app, app_token=SLACK_APP_TOKEN)
    except Exception as e:
        print(f"[Slack] socket mode stopped: {e}")


async def daily_summary_loop() -> None:
    return await daily_summary_loop_service(
        ledger=ledger,
        slack_client=slack_app.client if slack_app is not None else None,
        channel=SLACK_SUMMARY_CHANNEL,
        interval_seconds=DAILY_SUMMARY_INTERVAL_SECONDS,
    )


wire_bot_runtime(
    bot,
    ledger=ledger,
    memory=conversation_memory,
    persistence=persistence,
    channel_directory=CHANNEL_DIRECTORY,
    review_service=review_service,
    client=client,
    openai_model=OPENAI_MODEL,
    backfill_enabled=BACKFILL_ENABLED,
    backfill_limit=BACKFILL_LIMIT,
    backfill_pause_every=BACKFILL_PAUSE_EVERY,
    backfill_pause_seconds=BACKFILL_PAUSE_SECONDS,
    daily_summary_loop_func=daily_summary_loop if SLACK_SUMMARY_CHANNEL and slack_app is not None else None,
    start_slack_func=start_slack if slack_app is not None else None,
)


async def main() -> None:
    try:
        async with bot:
            await bot.start(DISCORD_TOKEN)
    finally:
        # Write out pending debounced saves.
        await persistence.flush()


asyncio.run(main())
