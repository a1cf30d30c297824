"""
Shared test fixtures for heat-pump logger tests.

Provides environment variable fixtures for HeatPumpSettings configuration
tests and sample XML payloads as sent by the controller.  All logger env
vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-14: Add navigation/content XML fixtures
- 2026-10-10: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest

# All HeatPumpSettings environment variable names, used for cleanup.
_ALL_HEATPUMP_ENV_VARS = (
    "HEATPUMP_HOST",
    "HEATPUMP_PORT",
    "HEATPUMP_PASSWORD",
    "UPDATE_INTERVAL_S",
    "CONNECTION_TIMEOUT_S",
    "DB_PATH",
    "HEALTH_PATH",
    "RETENTION_DAYS",
    "RETENTION_CHECK_INTERVAL_S",
    "IMPORT_VALUES",
    "IMPORT_VALUES_FILE",
)


@pytest.fixture(autouse=True)
def _clean_heatpump_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all logger env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_HEATPUMP_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for HeatPumpSettings."""
    env = {
        "HEATPUMP_HOST": "192.168.1.50",
        "HEATPUMP_PORT": "8214",
        "HEATPUMP_PASSWORD": "999999",
        "UPDATE_INTERVAL_S": "10",
        "CONNECTION_TIMEOUT_S": "15",
        "DB_PATH": "/tmp/test-energy.db",
        "HEALTH_PATH": "/tmp/test-health.json",
        "RETENTION_DAYS": "30",
        "RETENTION_CHECK_INTERVAL_S": "3600",
        "IMPORT_VALUES": '{"Temperaturen": {"include": ["Vorlauf"]}}',
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones)."""
    env = {"HEATPUMP_HOST": "10.0.0.20"}
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


NAVIGATION_XML = """\
<Navigation id="0x45e068">
  <item id="0x45e1b8"><name>Informationen</name>
    <item id="0x45f2a0"><name>Temperaturen</name></item>
    <item id="0x45f4e8"><name>Eingänge</name></item>
  </item>
  <item id="0x45e3c0"><name>Einstellungen</name>
    <item id="0x45f888"><name>Betriebsart</name></item>
  </item>
</Navigation>
"""

CONTENT_XML = """\
<Content>
  <item id="0x4816ac"><name>Temperaturen</name>
    <item id="0x44873c"><name>Vorlauf</name><value>45.3°C</value></item>
    <item id="0x4787c4"><name>Rücklauf</name><value>38,0°C</value></item>
    <item id="0x4a3b2c"><name>Außentemperatur</name><value>-2.5°C</value></item>
  </item>
  <item id="0x4816ad"><name>Eingänge</name>
    <item id="0x44873d"><name>ASD</name><value>Aus</value></item>
    <item id="0x44873e"><name>HD</name><value>12.4 bar</value></item>
  </item>
  <item id="0x4816ae"><name>Energiemonitor</name>
    <item id="0x4816af"><name>Wärmemenge</name>
      <item id="0x4816b0"><name>Heizung</name><value>1234.5 kWh</value></item>
      <item id="0x4816b1"><name>Gesamt</name><value>1500.0 kWh</value></item>
    </item>
    <item id="0x4816b2"><name>Leistungsaufnahme</name>
      <item id="0x4816b3"><name>Heizung</name><value>300.1 kWh</value></item>
    </item>
  </item>
  <item id="0x4816b4"><name>Fehlerspeicher</name>
    <item id="0x4816b5"><name>Fehler 1</name><value>701</value></item>
  </item>
</Content>
"""


@pytest.fixture()
def navigation_xml() -> str:
    """Navigation payload with an 'Informationen' entry."""
    return NAVIGATION_XML


@pytest.fixture()
def content_xml() -> str:
    """Content payload with three known categories and one unknown."""
    return CONTENT_XML
