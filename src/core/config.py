"""Engine configuration.

All settings can be overridden through environment variables prefixed with CHESS_ENGINE_
(or a .env.chess file). Nothing in the engine reads these globally: a Game / GameStateManager
receives its settings object, and falls back to the defaults below.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHESS_ENGINE_",
        env_file=".env.chess",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Position history (threefold repetition) keeps only the most recent N position strings
    position_history_limit: int = Field(default=100, ge=1)

    # Default cap used by GameStateManager.cleanup_old_states()
    state_cleanup_limit: int = Field(default=50, ge=1)

    # Number of identical positions that make a repetition draw
    repetition_threshold: int = Field(default=3, ge=2)

    # Opt-in: draw once 100 half moves (50 moves by each side) passed without pawn move or capture
    fifty_move_rule: bool = False

    # Recorded in the game metadata
    engine_version: str = "1.0.0"
