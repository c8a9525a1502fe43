"""
armflow settings.
"""

from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ARMFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directories
    project_root: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent,
        description="Project root directory",
    )
    output_dir: Path = Field(default=Path("outputs"), description="Output directory")
    declare_store_dir: Path = Field(
        default=Path("declareModels"),
        description="Base directory of the Declare model file store",
    )

    # Declare modeler hand-off
    declare_store_url: str = Field(
        default="",
        description="Declare modeler server (e.g. http://localhost:5174); empty disables publishing",
    )
    http_timeout: float = Field(default=10.0, description="HTTP request timeout in seconds")

    # Synthesis
    gateway_grouping: str = Field(
        default="pairwise",
        description="Gateway grouping strategy: pairwise | relation | layer_aware",
    )
    level_strategy: str = Field(
        default="longest_path",
        description="Level assignment strategy: longest_path | topological_index",
    )
    allow_fallback_join: bool = Field(
        default=True,
        description="Join branches that never reconverge with a generic join",
    )

    # Output
    pretty_xml: bool = Field(default=True, description="Indent process XML output")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def declare_store_path(self) -> Path:
        return self.declare_store_dir / "temp" / "declareModel.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
