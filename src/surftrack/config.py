from typing import Optional

from pydantic_settings import BaseSettings

from surftrack.analysis.segmenter import SegmenterConfig


class Settings(BaseSettings):
    database_url: str = "sqlite:///./surftrack.db"
    user_id: str = "local"  # single-user CLI; multi-user: supplied by the auth layer

    # Wave segmentation (kph / seconds)
    start_speed_threshold_kph: float = 10.5
    end_speed_threshold_kph: float = 3.0
    gap_tolerance_seconds: float = 2.0
    min_wave_duration_seconds: float = 3.0

    # Drop rows without a parseable Speed instead of deriving it from GPS
    require_speed: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def segmenter_config(self) -> SegmenterConfig:
        return SegmenterConfig(
            start_speed_threshold=self.start_speed_threshold_kph,
            end_speed_threshold=self.end_speed_threshold_kph,
            gap_tolerance_seconds=self.gap_tolerance_seconds,
            min_wave_duration_seconds=self.min_wave_duration_seconds,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
