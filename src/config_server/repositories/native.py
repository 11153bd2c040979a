"""Environment loader that reads property files from local directories."""

import re
from pathlib import Path
from typing import Any

import structlog
import yaml

from config_server.core.exceptions import InvalidPropertySourceError
from config_server.core.models.environment import PropertySource
from config_server.utils.patterns import split_list

logger = structlog.get_logger(__name__)

DEFAULT_APPLICATION = "application"
DEFAULT_PROFILE = "default"
EXTENSIONS = (".properties", ".yml", ".yaml")

_PROFILE_KEYS = ("spring.config.activate.on-profile", "spring.profiles")
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_SEPARATOR = re.compile(r"(?<!\\)[=:]|(?<!\\)\s")


def flatten(data: Any, prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings and lists to dotted keys (``a.b[0].c``)."""
    result: dict[str, Any] = {}
    if isinstance(data, dict):
        for key, value in data.items():
            result.update(flatten(value, f"{prefix}.{key}" if prefix else str(key)))
    elif isinstance(data, list):
        for index, value in enumerate(data):
            result.update(flatten(value, f"{prefix}[{index}]"))
    elif prefix:
        result[prefix] = "" if data is None else data
    return result


def _unescape(value: str) -> str:
    out: list[str] = []
    chars = iter(range(len(value)))
    for i in chars:
        char = value[i]
        if char != "\\" or i + 1 >= len(value):
            out.append(char)
            continue
        nxt = value[i + 1]
        if nxt == "u" and i + 5 < len(value):
            out.append(chr(int(value[i + 2:i + 6], 16)))
            for _ in range(5):
                next(chars, None)
            continue
        out.append(_ESCAPES.get(nxt, nxt))
        next(chars, None)
    return "".join(out)


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java-style ``.properties`` content."""
    properties: dict[str, str] = {}
    logical = ""
    for raw in text.splitlines():
        line = raw.lstrip()
        if not logical and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            logical += line[:-1]
            continue
        logical += line
        match = _SEPARATOR.search(logical)
        if match is None:
            key, value = logical, ""
        else:
            key = logical[:match.start()]
            value = logical[match.end():].lstrip()
            if match.group().isspace() and value[:1] in ("=", ":"):
                value = value[1:].lstrip()
        properties[_unescape(key.strip())] = _unescape(value)
        logical = ""
    return properties


def _document_profiles(document: dict[str, Any]) -> list[str] | None:
    flat = flatten(document)
    for key in _PROFILE_KEYS:
        if key in flat:
            return split_list(str(flat[key]))
    return None


def parse_yaml(text: str, profiles: list[str]) -> dict[str, Any]:
    """Parse (multi-document) YAML, keeping documents active for ``profiles``."""
    merged: dict[str, Any] = {}
    for document in yaml.safe_load_all(text):
        if not isinstance(document, dict):
            continue
        active_for = _document_profiles(document)
        if active_for is not None and not set(active_for) & set(profiles):
            continue
        merged.update(flatten(document))
    return merged


class NativeEnvironmentLoader:
    """Turns search-path directories into ordered property sources.

    Files are looked up as ``{name}-{profile}.{ext}`` and ``{name}.{ext}`` where
    name is each requested application followed by ``application``.
    Profile-specific files come first (the last requested profile first), so
    a consumer taking the first value for a key sees the most specific one.
    """

    def load(
        self,
        application: str,
        profile: str | None,
        locations: list[str],
    ) -> list[PropertySource]:
        profiles = split_list(profile) or [DEFAULT_PROFILE]
        names = list(dict.fromkeys([*reversed(split_list(application)), DEFAULT_APPLICATION]))

        candidates: list[Path] = []
        for prof in reversed(profiles):
            candidates += self._files(locations, [f"{name}-{prof}" for name in names])
        candidates += self._files(locations, names)

        sources: list[PropertySource] = []
        for path in dict.fromkeys(candidates):
            source = self._read(path, profiles)
            if source:
                sources.append(PropertySource(name=str(path), source=source))
        logger.debug(
            "Loaded property sources",
            application=application,
            profiles=profiles,
            count=len(sources),
        )
        return sources

    @staticmethod
    def _files(locations: list[str], basenames: list[str]) -> list[Path]:
        found: list[Path] = []
        for basename in basenames:
            for location in locations:
                for extension in EXTENSIONS:
                    path = Path(location) / f"{basename}{extension}"
                    if path.is_file():
                        found.append(path)
        return found

    @staticmethod
    def _read(path: Path, profiles: list[str]) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".properties":
                return parse_properties(text)
            return parse_yaml(text, profiles)
        except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
            raise InvalidPropertySourceError(
                f"Cannot read property source {path.name}", details={"error": str(e)}
            ) from e
