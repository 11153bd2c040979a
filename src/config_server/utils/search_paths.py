"""Resolution of configured search paths inside a working copy."""

from pathlib import Path

from config_server.utils.patterns import split_list

ROOT_LOCATION = "/"


def _is_invalid(location: str) -> bool:
    parts = location.replace("\\", "/").split("/")
    return ".." in parts or ":" in location


def _substitute(location: str, application: str | None, profile: str | None, label: str | None) -> str:
    if application is not None:
        location = location.replace("{application}", application)
    if profile is not None:
        location = location.replace("{profile}", profile)
    if label is not None:
        location = location.replace("{label}", label)
    return location


def _matching_directories(root: Path, location: str) -> list[Path]:
    relative = location.strip("/")
    if not relative:
        return [root] if root.is_dir() else []
    if "*" in relative:
        return sorted(p for p in root.glob(relative) if p.is_dir() and ".git" not in p.parts)
    candidate = root / relative
    return [candidate] if candidate.is_dir() else []


def resolve_search_paths(
    working_dir: Path,
    search_paths: list[str],
    application: str | None = None,
    profile: str | None = None,
    label: str | None = None,
) -> list[str]:
    """Resolve search-path templates to existing absolute directories.

    The working-copy root is always searched first. Each template may use the
    ``{application}``, ``{profile}`` and ``{label}`` placeholders (expanded for
    every comma-separated application and profile) and ``*`` wildcards.
    Locations that escape the working copy or do not exist are dropped.
    """
    root = Path(working_dir).resolve()
    locations = [ROOT_LOCATION, *(p for p in search_paths if p and p != ROOT_LOCATION)]
    applications = split_list(application) or [None]
    profiles = split_list(profile) or [None]

    resolved: dict[str, None] = {}
    for location in locations:
        for prof in profiles:
            for app in applications:
                value = _substitute(location, app, prof, label)
                if _is_invalid(value) or "{" in value:
                    continue
                for directory in _matching_directories(root, value):
                    resolved[str(directory)] = None
    return list(resolved)
