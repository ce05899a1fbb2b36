import os
import shutil
import typing
import yaml
from dicebot.governor import DEFAULT_MAX_DEPTH, DEFAULT_MAX_RESULTS, DEFAULT_MAX_SIZE

DEFAULT_SETTINGS_FILE = os.path.join(
    os.path.dirname(__file__), "settings.default.yaml"
)

DEFAULTS: typing.Dict[str, typing.Any] = {
    "prefix": "!",
    "timeout": 5,
    "max_size": DEFAULT_MAX_SIZE,
    "max_depth": DEFAULT_MAX_DEPTH,
    "max_results": DEFAULT_MAX_RESULTS,
    "log_level": "INFO",
}

LIMITS = ("max_size", "max_depth", "max_results")


class SettingsError(ValueError):
    pass


def install_default(path: str) -> None:
    shutil.copy(DEFAULT_SETTINGS_FILE, path)


def load(path: str) -> typing.Dict[str, typing.Any]:
    with open(path) as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SettingsError("%s must contain a mapping of settings" % path)

    settings = dict(DEFAULTS)
    settings.update(raw)

    if not settings.get("token"):
        raise SettingsError("no bot token set in %s" % path)
    for key in ("timeout",) + LIMITS:
        value = settings[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise SettingsError("%s must be a positive number, got %r" % (key, value))
    for key in LIMITS:
        if not isinstance(settings[key], int):
            raise SettingsError("%s must be an integer" % key)
    settings["log_level"] = str(settings["log_level"]).upper()
    return settings


def limits(settings: typing.Dict[str, typing.Any]) -> typing.Dict[str, int]:
    """The governor's keyword arguments, taken from loaded settings."""
    return {key: settings[key] for key in LIMITS}
