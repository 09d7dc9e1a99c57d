"""Command dispatcher that runs one of the registered edge applications."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

log = logging.getLogger(__name__)

APP_NAME = "edgemq"
APP_NAME_MAX = 25
BRAND = "Edge Messaging Kit"

VERSION_MAJOR = 6
VERSION_MINOR = 3
VERSION_PATCH = 0
VERSION_ID_SHORT = "3"
VERSION_ID_LONG = "100"

Command = Callable[[list[str]], "int | None"]


@dataclass(frozen=True)
class App:
    """A named application with optional default, start, stop and restart commands."""

    name: str
    dflt: Command | None = None
    start: Command | None = None
    stop: Command | None = None
    restart: Command | None = None

    def __post_init__(self) -> None:
        if not self.name or len(self.name) >= APP_NAME_MAX:
            raise ValueError(
                f"application name must be 1 to {APP_NAME_MAX - 1} characters"
            )


_registry: list[App] = []


def register_app(app: App) -> App:
    """Add app to the applications that main() dispatches to."""
    _registry.append(app)
    return app


def _same_name(left: str, right: str) -> bool:
    return left[:APP_NAME_MAX] == right[:APP_NAME_MAX]


def _version_text() -> str:
    return f"\n{BRAND} v.01-{VERSION_ID_SHORT}\n"


def _print_avail_apps(apps: Sequence[App]) -> None:
    print("\navailable applications:")
    for app in apps:
        print(f"   * {app.name}")


def _print_help(apps: Sequence[App]) -> None:
    names = "|".join(f" {app.name} " for app in apps)
    print(f"\nUsage: {APP_NAME}{names}[--help]")


def _finish(result: int | None) -> int:
    return 0 if result is None else int(result)


def run(argv: Sequence[str], apps: Sequence[App] | None = None) -> int:
    """Dispatch argv to the matching application and return its exit status."""
    apps = list(_registry if apps is None else apps)
    args = list(argv) if argv else [APP_NAME]

    if len(args) > 1 and args[1].startswith("-v"):
        print(_version_text())
        return 0

    app_name = args[0].rsplit("/", 1)[-1]
    log.debug("argv %s app_name %s", args, app_name)

    if _same_name(app_name, APP_NAME):
        if len(args) == 1:
            _print_avail_apps(apps)
            print(_version_text())
            return 1
        app_name = args[1]
        args = args[1:]

    app = next((a for a in apps if _same_name(app_name, a.name)), None)
    if app is None:
        print(f"Error - the app '{app_name}' was not found")
        _print_help(apps)
        print(_version_text())
        return 1

    if len(args) < 2:
        if app.dflt:
            return _finish(app.dflt(args[1:]))
        print(f"Error - not enough arguments to run {app_name}")
    else:
        action = args[1]
        for keyword, command in (
            ("start", app.start),
            ("stop", app.stop),
            ("restart", app.restart),
        ):
            if action == keyword and command:
                return _finish(command(args[2:]))
        if app.dflt:
            return _finish(app.dflt(args[1:]))
        print(f"Error - unknown parameter: {action}")

    print("Use one of the following parameters:")
    if app.start:
        print("   * start")
    if app.stop:
        print("   * stop")
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: dispatch the process arguments to a registered application."""
    return run(sys.argv if argv is None else argv)


if __name__ == "__main__":
    raise SystemExit(main())