from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
import yaml
import os


class APIConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = []

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class EphemerisConfig(BaseModel):
    ephe_path: str = "ephe"  # directory holding Swiss Ephemeris .se1 files
    include_equatorial: bool = True
    # Historical output renders an exact 0.0 as "N/A"
    zero_as_unavailable: bool = True

    # Ayanamsha is always Lahiri, so there is no sidereal_mode key
    model_config = ConfigDict(extra="forbid")


class ReferenceConfig(BaseModel):
    cities_file: str = "cities.yaml"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = Field(True, alias="json")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of {allowed}")
        return v


class AppConfig(BaseModel):
    api: APIConfig = APIConfig()
    ephemeris: EphemerisConfig = EphemerisConfig()
    reference: ReferenceConfig = ReferenceConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = ConfigDict(extra="forbid")  # Prevent unexpected config keys


def _env_flag(name: str) -> bool:
    return os.environ[name].strip().lower() in ("1", "true", "yes", "on")


def load_config(path: Optional[str] = "config.yaml") -> AppConfig:
    """Load configuration from YAML file with environment variable overrides."""
    data = {}
    if path:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            print(f"Warning: Config file {path} not found, using defaults")
            data = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}")

    env_overrides = {}

    # API overrides
    if "HOST" in os.environ:
        env_overrides.setdefault("api", {})["host"] = os.environ["HOST"]
    if "PORT" in os.environ:
        env_overrides.setdefault("api", {})["port"] = int(os.environ["PORT"])
    if "CORS_ORIGINS" in os.environ:
        env_overrides.setdefault("api", {})["cors_origins"] = [
            origin.strip() for origin in os.environ["CORS_ORIGINS"].split(",") if origin.strip()
        ]

    # Ephemeris overrides
    if "EPHE_PATH" in os.environ:
        env_overrides.setdefault("ephemeris", {})["ephe_path"] = os.environ["EPHE_PATH"]
    if "INCLUDE_EQUATORIAL" in os.environ:
        env_overrides.setdefault("ephemeris", {})["include_equatorial"] = _env_flag("INCLUDE_EQUATORIAL")
    if "ZERO_AS_UNAVAILABLE" in os.environ:
        env_overrides.setdefault("ephemeris", {})["zero_as_unavailable"] = _env_flag("ZERO_AS_UNAVAILABLE")

    # Reference data overrides
    if "CITIES_FILE" in os.environ:
        env_overrides.setdefault("reference", {})["cities_file"] = os.environ["CITIES_FILE"]

    # Logging overrides
    if "LOG_LEVEL" in os.environ:
        env_overrides.setdefault("logging", {})["level"] = os.environ["LOG_LEVEL"]
    if "LOG_JSON" in os.environ:
        env_overrides.setdefault("logging", {})["json"] = _env_flag("LOG_JSON")

    # Merge environment overrides into config data
    def merge_dict(base, override):
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                merge_dict(base[key], value)
            else:
                base[key] = value

    merge_dict(data, env_overrides)

    try:
        return AppConfig(**data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def print_config(config: AppConfig) -> None:
    """Print effective configuration on startup."""
    print("=== Horoscope API Configuration ===")
    print(f"Listen: {config.api.host}:{config.api.port}")
    print(f"CORS Origins: {config.api.cors_origins}")
    print(f"Ephemeris Path: {config.ephemeris.ephe_path}")
    print(f"Equatorial Coordinates: {'enabled' if config.ephemeris.include_equatorial else 'disabled'}")
    print(f"Zero As Unavailable: {config.ephemeris.zero_as_unavailable}")
    print(f"Cities File: {config.reference.cities_file}")
    print(f"Log Level: {config.logging.level} ({'json' if config.logging.json_output else 'text'})")
    print("=" * 35)
