"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from chessroyale.game.state import MatchConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # Development mode
    dev_mode: bool = False

    # Match loop
    tick_interval_seconds: float = 0.1
    random_seed: int | None = None

    # Match rules
    event_interval: float = 180.0
    loot_interval: float = 120.0
    late_game_time: float = 480.0
    respawn_enabled: bool = True
    respawn_delay: float = 5.0
    friendly_fire: bool = False
    max_players: int = 32
    neutral_move_interval: float = 3.0
    neutral_hp: int = 10
    collision_damage: int = 2
    petal_rain_drops: int = 3
    kings_call_bonus: int = 5
    kings_call_cap: int = 20
    aura_duration: float = 5.0
    vine_trap_duration: float = 5.0
    event_log_size: int = 100

    def match_config(self) -> MatchConfig:
        """Build the engine's static match configuration."""
        return MatchConfig(
            event_interval=self.event_interval,
            loot_interval=self.loot_interval,
            late_game_time=self.late_game_time,
            respawn_enabled=self.respawn_enabled,
            respawn_delay=self.respawn_delay,
            friendly_fire=self.friendly_fire,
            max_players=self.max_players,
            neutral_move_interval=self.neutral_move_interval,
            neutral_hp=self.neutral_hp,
            collision_damage=self.collision_damage,
            petal_rain_drops=self.petal_rain_drops,
            kings_call_bonus=self.kings_call_bonus,
            kings_call_cap=self.kings_call_cap,
            aura_duration=self.aura_duration,
            vine_trap_duration=self.vine_trap_duration,
            event_log_size=self.event_log_size,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
