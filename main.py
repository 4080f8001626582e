"""
main.py – Application entry point.

All logic lives in specialised modules:

  config.py         – AppConfig          : constants, build mode, paths, logging
  storage.py        – JsonFileStore      : persisted flag/environment values
  feature_flags.py  – FeatureFlagManager : flag resolution and mutation
  environment.py    – EnvironmentManager : deployment environment selection
  state_manager.py  – AppStateManager    : lifecycle state machine
  search.py         – SearchEngine       : relevance search, filter, sort
  chaos.py          – ChaosManager       : simulated failures (debug builds)
  app.py            – AppContainer       : wires the above together

This file provides the debug console: a command line for inspecting and
changing flags and the environment, and for running searches against the
local item source.

Examples:
    python main.py status
    python main.py flags --category developer
    python main.py flag set enable_auto_lock on
    python main.py env switch staging
    python main.py search secur --priority urgent
"""

import argparse
import sys
from typing import List, Optional

from app import AppContainer
from chaos import ChaosError
from config import APP_NAME, APP_VERSION, AppConfig
from environment import AppEnvironment, UnknownEnvironmentError
from feature_flags import FeatureFlag, FeatureFlagCategory, UnknownFlagError
from models import ItemPriority, ItemStatus
from search import FilterCriteria, SortOption

SORT_CHOICES = {option.name.lower(): option for option in SortOption}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="securedesk", description=f"{APP_NAME} debug console")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--data-dir", help="directory for settings and logs")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="show build, environment, state and flags")

    flags = sub.add_parser("flags", help="list feature flags")
    flags.add_argument("--category", choices=[c.value for c in FeatureFlagCategory])

    flag = sub.add_parser("flag", help="change a feature flag")
    flag_sub = flag.add_subparsers(dest="action", required=True)
    flag_set = flag_sub.add_parser("set")
    flag_set.add_argument("name")
    flag_set.add_argument("value", choices=["on", "off"])
    flag_reset = flag_sub.add_parser("reset")
    flag_reset.add_argument("name", nargs="?")
    flag_reset.add_argument("--all", action="store_true")

    env = sub.add_parser("env", help="show or change the environment")
    env_sub = env.add_subparsers(dest="action", required=True)
    env_sub.add_parser("show")
    env_switch = env_sub.add_parser("switch")
    env_switch.add_argument("name")
    env_sub.add_parser("reset")

    search = sub.add_parser("search", help="search the local items")
    search.add_argument("query", nargs="?", default="")
    search.add_argument("--status", choices=[s.value for s in ItemStatus])
    search.add_argument("--priority", choices=[p.value for p in ItemPriority])
    search.add_argument("--tag", action="append", dest="tags")
    search.add_argument("--sort", choices=sorted(SORT_CHOICES), default="created_descending")

    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def _print_flags(container: AppContainer, category: Optional[FeatureFlagCategory] = None) -> None:
    flags = container.flags
    categories = [category] if category else list(FeatureFlagCategory)
    for cat in categories:
        visible = [(f, on) for f, on in flags.flags_in(cat) if f in flags.available_flags]
        if not visible:
            continue
        print(f"{cat.display_name}:")
        for flag, enabled in visible:
            marker = "*" if flags.is_overridden(flag) else " "
            print(f"  {marker} {flag.value:<28} {'on' if enabled else 'off':<4} {flag.display_name}")


def cmd_status(container: AppContainer, args) -> int:
    env = container.environment
    print(f"Build:        {'debug' if container.config.debug_build else 'release'}")
    print(f"Environment:  {env.current.display_name} ({env.base_url})")
    print(f"Timeout:      {env.request_timeout:g}s")
    print(f"State:        {container.state_manager.current_state.display_name}")
    print(f"Connected:    {container.network_monitor.is_connected}")
    chaos = container.chaos
    if chaos.is_active:
        chaos_status = f"{chaos.active_count} mode(s) active"
    else:
        chaos_status = "armed" if chaos.is_enabled else "off"
    print(f"Chaos:        {chaos_status}")
    print(f"Data dir:     {container.config.user_data_dir}")
    _print_flags(container)
    return 0


def cmd_flags(container: AppContainer, args) -> int:
    _print_flags(container, FeatureFlagCategory(args.category) if args.category else None)
    return 0


def cmd_flag(container: AppContainer, args) -> int:
    flags = container.flags
    if args.action == "set":
        flag = FeatureFlag.from_key(args.name)
        if flag not in flags.available_flags:
            print(f"{flag.value} cannot be changed in a release build", file=sys.stderr)
            return 1
        changed = flags.set_enabled(flag, args.value == "on")
        print(f"{flag.value}: {'on' if flags.is_enabled(flag) else 'off'}{'' if changed else ' (unchanged)'}")
        return 0

    if args.all:
        flags.reset_all_to_defaults()
        print("All flags reset to defaults")
        return 0
    flag = FeatureFlag.from_key(args.name)
    flags.reset_to_default(flag)
    print(f"{flag.value}: {'on' if flags.is_enabled(flag) else 'off'} (default)")
    return 0


def cmd_env(container: AppContainer, args) -> int:
    env = container.environment
    if args.action == "switch":
        target = AppEnvironment.from_key(args.name)
        if not env.switch_to(target):
            print(f"{target.value} is not available in a release build", file=sys.stderr)
            return 1
    elif args.action == "reset":
        env.reset_to_default()

    for candidate in env.available_environments:
        marker = "*" if candidate is env.current else " "
        print(f"  {marker} {candidate.value:<11} {candidate.config.description}")
    return 0


def cmd_search(container: AppContainer, args) -> int:
    criteria = FilterCriteria(
        status=ItemStatus(args.status) if args.status else None,
        priority=ItemPriority(args.priority) if args.priority else None,
        tags=tuple(args.tags) if args.tags else None,
    )
    results = container.search_engine().search_and_filter(
        args.query,
        container.items(),
        criteria=None if criteria.is_empty else criteria,
        sort_by=SORT_CHOICES[args.sort],
    )
    for item in results:
        print(f"{item.id}  [{item.priority.value:<6}] [{item.status.value:<11}] {item.title}")
    print(f"{len(results)} item(s)")
    return 0


COMMANDS = {
    "status": cmd_status,
    "flags": cmd_flags,
    "flag": cmd_flag,
    "env": cmd_env,
    "search": cmd_search,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Parse *argv*, run the command and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "flag" and args.action == "reset" and bool(args.all) == bool(args.name):
        parser.error("flag reset needs either a flag name or --all")
    container = AppContainer(AppConfig(data_dir=args.data_dir))
    try:
        return COMMANDS[args.command](container, args)
    except (UnknownFlagError, UnknownEnvironmentError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except ChaosError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        container.shutdown()


if __name__ == "__main__":
    sys.exit(main())
