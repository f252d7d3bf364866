from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GACHA_")

    # Catalog JSON; the built-in scripture catalog is used when unset
    catalog_path: Optional[str] = None

    # History & statistics
    history_limit: int = 1000
    recent_window: int = 100  # pulls included in the rarity breakdown
    display_window: int = 50  # pulls returned with statistics

    # Store layout
    primary_currency_path: str = "player.jade"
    secondary_currency_path: str = "player.spiritCrystals"
    state_key: str = "gacha"
    stats_key: str = "gachaStats"
    default_pool: str = "standard"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Fixed seed for reproducible sessions
    seed: Optional[int] = None


load_dotenv()
settings = Config()
