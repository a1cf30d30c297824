"""
Heat-pump logger configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded IPs or PINs.

The per-category import filter (``IMPORT_VALUES``) is a JSON object, either
inline in the environment or in the file named by ``IMPORT_VALUES_FILE``::

    {
      "Temperaturen": {"exclude": ["Heissgas"]},
      "Eingänge": {},
      "Energiemonitor": {"nested": {"Wärmemenge": {"include": ["Gesamt"]}}}
    }

CHANGELOG:
- 2026-10-14: Add IMPORT_VALUES_FILE for file-based filter rules
- 2026-10-10: Initial creation (STORY-001)

TODO:
- None
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic_settings import BaseSettings

from heatpump.src.registry import CATEGORY_KEYS


class FilterRule(BaseModel):
    """Inclusion/exclusion rule for the children of one section.

    Attributes:
        include: Keep only children with these names (takes priority).
        exclude: Keep all children except these names.
        nested: Rules for named subsections, applied one level down.
    """

    include: list[str] | None = None
    exclude: list[str] | None = None
    nested: dict[str, "FilterRule"] = Field(default_factory=dict)


_IMPORT_VALUES_ADAPTER = TypeAdapter(dict[str, FilterRule])


def _default_import_values() -> dict[str, FilterRule]:
    """Pass-through rule for every known category."""
    return {category: FilterRule() for category in CATEGORY_KEYS}


class HeatPumpSettings(BaseSettings):
    """Configuration for the heat-pump snapshot logger.

    All values are loaded from environment variables. Required variables
    must be set; optional variables have sensible defaults.

    Attributes:
        heatpump_host: Heat-pump controller IP address / hostname on the LAN.
        heatpump_port: Websocket port (default 8214).
        heatpump_password: Login PIN sent as ``LOGIN;<password>``.
        update_interval_s: Seconds between data requests (min 1).
        connection_timeout_s: Websocket connect timeout in seconds.
        db_path: SQLite snapshot database path.
        health_path: Health JSON file path.
        retention_days: Snapshots older than this are purged.
        retention_check_interval_s: Seconds between retention sweeps.
        import_values: Category name -> filter rule.
        import_values_file: Optional JSON file replacing import_values.
    """

    heatpump_host: str
    heatpump_port: int = 8214
    heatpump_password: str = "0"
    update_interval_s: int = 5
    connection_timeout_s: float = 10.0
    db_path: str = "energy.db"
    health_path: str = "health.json"
    retention_days: int = 3 * 365
    retention_check_interval_s: int = 24 * 60 * 60
    import_values: dict[str, FilterRule] = Field(default_factory=_default_import_values)
    import_values_file: str = ""

    @model_validator(mode="after")
    def _load_import_values_file(self) -> "HeatPumpSettings":
        """Replace import_values with the contents of import_values_file."""
        if self.import_values_file:
            raw = json.loads(Path(self.import_values_file).read_text(encoding="utf-8"))
            self.import_values = _IMPORT_VALUES_ADAPTER.validate_python(raw)
        return self

    @property
    def ws_url(self) -> str:
        """Websocket URL of the heat-pump controller."""
        return f"ws://{self.heatpump_host}:{self.heatpump_port}"

    @property
    def retention_s(self) -> int:
        """Retention horizon in seconds."""
        return self.retention_days * 24 * 60 * 60

    @field_validator("update_interval_s")
    @classmethod
    def update_interval_must_be_positive(cls, v: int) -> int:
        """Validate the data request interval is at least one second."""
        if v < 1:
            raise ValueError("UPDATE_INTERVAL_S must be >= 1")
        return v

    @field_validator("connection_timeout_s")
    @classmethod
    def connection_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the connect timeout is positive."""
        if v <= 0:
            raise ValueError("CONNECTION_TIMEOUT_S must be > 0")
        return v

    @field_validator("heatpump_port")
    @classmethod
    def heatpump_port_must_be_valid(cls, v: int) -> int:
        """Validate websocket port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("HEATPUMP_PORT must be between 1 and 65535")
        return v

    @field_validator("retention_days", "retention_check_interval_s")
    @classmethod
    def retention_must_be_positive(cls, v: int) -> int:
        """Validate retention values are positive."""
        if v < 1:
            raise ValueError("Retention settings must be >= 1")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
