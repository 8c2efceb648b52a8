from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template


# ─── Config Schema ─────────────────────────────────────────────────
class EngineConfig(BaseModel):
    max_iterations: int = Field(5000, ge=1)
    strict_rrule: bool = False
    strict_reschedule: bool = False


class WindowConfig(BaseModel):
    look_behind_days: int = Field(7, ge=0)
    look_ahead_days: int = Field(30, ge=0)


class DaylightConfig(BaseModel):
    title: str = "Daylight Configuration"
    engine: EngineConfig = EngineConfig()
    window: WindowConfig = WindowConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[engine]
# max_iterations: int
# The occurrence generator steps one calendar day at a time and
# stops after this many steps, whatever the requested window.
max_iterations = {{ engine.max_iterations }}

# strict_rrule: bool = true | false
# When false, an unknown FREQ becomes daily and a missing DTSTART
# becomes today. When true, such recurrence strings are rejected.
strict_rrule = {{ engine.strict_rrule | lower }}

# strict_reschedule: bool = true | false
# When true, rescheduling a single instance requires that the
# original date is one of the task's active instances.
strict_reschedule = {{ engine.strict_reschedule | lower }}

[window]
# look_behind_days: days before today that materialize --backfill
# fills in with missed occurrences.
look_behind_days = {{ window.look_behind_days }}

# look_ahead_days: days after the start listed by occurrences when
# no --end date is given.
look_ahead_days = {{ window.look_ahead_days }}

"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: DaylightConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: DaylightConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class DaylightEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[DaylightConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    def ensure(self, init_config: bool = True):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(DaylightConfig(), self.config_path)

    def load_config(self) -> DaylightConfig:
        # Step 1: Create the file if it doesn't exist
        if not os.path.exists(self.config_path):
            config = DaylightConfig()
            self.home.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(render_config(config))
            print(f"✅ Created new config file at {self.config_path}")
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = DaylightConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            config = DaylightConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)

        with open(self.config_path, "r", encoding="utf-8") as f:
            current_text = f.read()

        if rendered != current_text:
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(rendered)
            print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> DaylightConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists() and (cwd / "logs").is_dir():
            return cwd

        env_home = os.getenv("DAYLIGHT_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "daylight"
        else:
            return Path.home() / ".config" / "daylight"
