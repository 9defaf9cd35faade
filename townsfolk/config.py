"""
Townsfolk Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    # LLM Provider Configuration
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-5-nano")

    # API Keys
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")

    # Base URL for a locally hosted Ollama server (used when LLM_PROVIDER=ollama)
    OLLAMA_BASE_URL: str | None = os.getenv("OLLAMA_BASE_URL")

    # Reasoner calls slower than this are treated as failures
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))

    # When False the village runs on static plans, default dialogue and importance=1
    USE_AI: bool = _env_flag("USE_AI", "true")

    # Simulation Configuration
    TICK_RATE_HZ: int = int(os.getenv("TICK_RATE_HZ", "60"))
    # Villager walking speed in tiles per simulated second
    MOVE_SPEED: float = float(os.getenv("MOVE_SPEED", "0.8"))

    # Needs decay: each need drops by its rate once per interval
    NEEDS_DECAY_INTERVAL_SECONDS: float = float(
        os.getenv("NEEDS_DECAY_INTERVAL_SECONDS", "60")
    )
    HUNGER_DECAY_RATE: float = float(os.getenv("HUNGER_DECAY_RATE", "1.0"))
    SOCIAL_DECAY_RATE: float = float(os.getenv("SOCIAL_DECAY_RATE", "0.5"))
    ENERGY_DECAY_RATE: float = float(os.getenv("ENERGY_DECAY_RATE", "0.75"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    SCENARIOS_DIR: Path = Path(
        os.getenv("TOWNSFOLK_SCENARIOS_DIR", str(PROJECT_ROOT / "examples" / "scenarios"))
    )

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if required values are missing."""
        if cls.TICK_RATE_HZ <= 0:
            raise ValueError("TICK_RATE_HZ must be a positive integer")

        if cls.NEEDS_DECAY_INTERVAL_SECONDS <= 0:
            raise ValueError("NEEDS_DECAY_INTERVAL_SECONDS must be positive")

        # Offline villages never touch a provider, so keys are irrelevant
        if not cls.USE_AI:
            return

        provider = cls.LLM_PROVIDER.lower()
        if provider == "anthropic" and not cls.ANTHROPIC_API_KEY:
            raise ValueError(
                "ANTHROPIC_API_KEY is required when using the 'anthropic' provider"
            )

        if provider == "openai" and not cls.OPENAI_API_KEY:
            raise ValueError(
                "OPENAI_API_KEY is required when using the 'openai' provider. "
                "For local models, set LLM_PROVIDER=ollama instead."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Townsfolk Configuration:",
            f"  AI Enabled: {cls.USE_AI}",
            f"  LLM Provider: {cls.LLM_PROVIDER}",
            f"  LLM Model: {cls.LLM_MODEL}",
            f"  Tick Rate: {cls.TICK_RATE_HZ} Hz",
            f"  Move Speed: {cls.MOVE_SPEED} tiles/s",
            f"  Needs Decay Interval: {cls.NEEDS_DECAY_INTERVAL_SECONDS}s",
        ]
        return "\n".join(lines)
