"""Configuration management."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from shippost.core.entities import PLATFORM_FORMATS, PlatformFormat

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class ClaudeConfig:
    """Claude API settings."""
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 1000
    temperature: float = 0.7
    max_retries: int = 3
    initial_retry_delay: float = 2.0
    request_delay: float = 0.5
    timeout: float = 60.0
    base_url: str = "https://api.anthropic.com/v1"


@dataclass
class SlackConfig:
    """Slack approval channel settings."""
    default_channel: str = "social"
    api_url: str = "https://slack.com/api"
    timeout: float = 15.0
    # Max accepted age of a signed interaction request
    signature_max_age: int = 300


@dataclass
class PostBridgeConfig:
    """Post-Bridge publishing settings."""
    api_url: str = "https://api.post-bridge.com"
    timeout: float = 30.0
    account_ids: dict = field(default_factory=dict)


@dataclass
class PipelineConfig:
    """Pipeline behaviour settings."""
    timezone: str = "UTC"
    generation_timeout: float = 90.0
    publish_timeout: float = 45.0


@dataclass
class StorageConfig:
    """Storage backend settings."""
    backend: str = "memory"
    path: Path = Path("data")


@dataclass
class VoiceConfig:
    """Voice learning settings."""
    # Relative voice_file paths resolve against this directory
    base_dir: Path = Path(".")
    max_examples: int = 12


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    json: bool = False


@dataclass
class PromptsConfig:
    """Prompts for LLM."""
    urgency: dict = field(default_factory=lambda: {
        "system": "You decide which commits deserve an immediate build-in-public post.",
        "user": (
            "You're deciding which commits deserve an immediate \"build in public\" post "
            "vs. which should be batched for a daily digest.\n\n"
            "PROJECT: {product}\nGOAL: {goal}\n\nCOMMITS:\n{commits}\n\n"
            "IMMEDIATE: major user-facing features, milestones, technical breakthroughs, "
            "\"shipped!\" moments that work as a standalone post.\n"
            "BATCH: bug fixes, refactoring, docs, minor tweaks, internal changes, "
            "small commits that read better together.\n\n"
            "Return JSON:\n"
            "{{\"immediate\": [\"exact commit message\"], \"batch\": [\"exact commit message\"], "
            "\"reasoning\": \"brief explanation\"}}"
        ),
    })
    selection: dict = field(default_factory=lambda: {
        "system": "You pick the most engaging commits for a build-in-public post.",
        "user": (
            "You are analyzing git commits for \"{product}\" to pick the most interesting "
            "ones for a \"build in public\" social media post.\n\n"
            "PROJECT GOAL: {goal}\n\nCOMMITS:\n{commits}\n\n"
            "Pick 1-3 commits that would make the most engaging social post. Prefer "
            "user-facing features over refactors, interesting challenges over routine "
            "updates, milestones over incremental progress.\n\n"
            "Return JSON:\n"
            "{{\"selectedCommits\": [\"commit message\"], \"mainTheme\": \"narrative\", "
            "\"interestingAngle\": \"what makes this postable\", "
            "\"hookType\": \"mrr|shipped|til|journey|contrarian\", "
            "\"suggestedTopics\": [\"ai\"]}}"
        ),
    })
    draft: dict = field(default_factory=lambda: {
        "system": (
            "You are a \"build in public\" content creator for {brand} ({handle}).\n\n"
            "VOICE: {voice}\n\n"
            "PROJECT:\n- Product: {product}\n- Goal: {goal}\n- Target: {target_audience}"
        ),
        "user": (
            "Generate a {platform_name} post about today's shipping progress.\n\n"
            "WHAT WE SHIPPED:\n{selected}\n\n"
            "NARRATIVE: {theme}\nANGLE: {angle}\nHOOK TYPE TO USE: {hook_type}\n\n"
            "PLATFORM CONSTRAINTS:\n- Max length: {max_length} chars\n- Hashtags: {hashtag_style}\n"
            "{mentions}\n"
            "Generate ONE natural, engaging post. Be authentic, not salesy.\n"
            "Return ONLY the post text, nothing else."
        ),
    })
    voice: dict = field(default_factory=lambda: {
        "system": "You analyze writing style and describe it so another writer can imitate it.",
        "user": (
            "Analyze these social media posts and extract the writer's voice/style fingerprint.\n\n"
            "Posts:\n{posts}\n\n"
            "Extract:\n1. Tone (casual, professional, technical, etc.)\n2. Sentence structure patterns\n"
            "3. Common phrases or expressions\n4. Emoji usage pattern\n5. Capitalization style\n"
            "6. How they start posts\n7. How they end posts\n8. Unique quirks\n\n"
            "Return a short bullet list, one line per item."
        ),
    })


DEFAULT_VOICES = {
    "casual-founder": "casual lowercase founder voice, specific numbers, short punchy sentences, "
                      "authentic struggles, no corporate speak",
    "professional": "clear professional tone, complete sentences, outcome focused",
    "technical": "precise engineering voice, names the technique and the tradeoff",
    "playful": "light, witty, emoji friendly but never cringe",
}


@dataclass
class Settings:
    """Application settings."""

    # Secrets (from environment only)
    anthropic_api_key: str = ""
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    post_bridge_api_key: Optional[str] = None
    github_webhook_secret: Optional[str] = None
    gitlab_webhook_token: Optional[str] = None

    # Config sections
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    post_bridge: PostBridgeConfig = field(default_factory=PostBridgeConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    voices: dict = field(default_factory=lambda: dict(DEFAULT_VOICES))
    platforms: dict = field(default_factory=dict)
    manual_groups: dict = field(default_factory=dict)
    projects: list = field(default_factory=list)

    @property
    def platform_formats(self) -> dict[str, PlatformFormat]:
        """Built-in platform formats with config overrides applied."""
        formats = dict(PLATFORM_FORMATS)
        for name, overrides in self.platforms.items():
            base = formats.get(name) or PlatformFormat(name, name.title(), 280, "")
            formats[name] = replace(base, **overrides)
        return formats

    @property
    def default_channel(self) -> str:
        return self.slack.default_channel

    @property
    def timezone(self) -> str:
        return self.pipeline.timezone


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _apply_section(section: Any, values: dict) -> None:
    for key, value in values.items():
        if not hasattr(section, key):
            raise ValueError(f"Unknown config key: {type(section).__name__}.{key}")
        setattr(section, key, value)


def get_settings(config_path: Optional[Path] = None) -> Settings:
    """Get application settings from YAML config and environment."""
    if config_path is None:
        config_path = Path(os.getenv("SHIPPOST_CONFIG", str(DEFAULT_CONFIG_PATH)))

    config = load_config(config_path)

    settings = Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", "").strip(),
        slack_bot_token=(os.getenv("SLACK_BOT_TOKEN") or "").strip() or None,
        slack_signing_secret=(os.getenv("SLACK_SIGNING_SECRET") or "").strip() or None,
        post_bridge_api_key=(os.getenv("POST_BRIDGE_API_KEY") or "").strip() or None,
        github_webhook_secret=(os.getenv("GITHUB_WEBHOOK_SECRET") or "").strip() or None,
        gitlab_webhook_token=(os.getenv("GITLAB_WEBHOOK_TOKEN") or "").strip() or None,
    )

    # Apply YAML config
    for name in ("claude", "slack", "post_bridge", "pipeline", "logging"):
        if name in config:
            _apply_section(getattr(settings, name), config[name] or {})

    if "storage" in config:
        storage = config["storage"] or {}
        if "path" in storage:
            storage = {**storage, "path": Path(storage["path"])}
        _apply_section(settings.storage, storage)

    if "voice" in config:
        voice = config["voice"] or {}
        if "base_dir" in voice:
            voice = {**voice, "base_dir": Path(voice["base_dir"])}
        _apply_section(settings.voice, voice)

    if "prompts" in config:
        defaults = PromptsConfig()
        for key, value in (config["prompts"] or {}).items():
            if not hasattr(defaults, key):
                raise ValueError(f"Unknown prompt: {key}")
            setattr(defaults, key, {**getattr(defaults, key), **value})
        settings.prompts = defaults

    if "voices" in config:
        settings.voices.update(config["voices"] or {})

    settings.platforms = config.get("platforms") or {}
    settings.manual_groups = config.get("manual_groups") or {}
    settings.projects = config.get("projects") or []

    # Environment wins over YAML for deployment specific values
    if os.getenv("SLACK_CHANNEL"):
        settings.slack.default_channel = os.environ["SLACK_CHANNEL"].strip()
    if os.getenv("POST_BRIDGE_API_URL"):
        settings.post_bridge.api_url = os.environ["POST_BRIDGE_API_URL"].strip()
    if os.getenv("SHIPPOST_TIMEZONE"):
        settings.pipeline.timezone = os.environ["SHIPPOST_TIMEZONE"].strip()
    if os.getenv("LOG_LEVEL"):
        settings.logging.level = os.environ["LOG_LEVEL"].strip().upper()

    return settings
