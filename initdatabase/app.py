import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .context import Context
from .engineconfig import build_engine_configuration_json
from .env import env_name, get_env, get_env_int, get_env_list, load_env
from .errors import ConfigurationError
from .initializer import Initializer
from .logger import LEVELS, get_logger


def _split_list(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def build_parser() -> argparse.ArgumentParser:
    """CLI options; every default comes from the matching INIT_DATABASE_* variable."""
    parser = argparse.ArgumentParser(
        prog="init-database",
        description="Initialize a database with the resolution engine schema and default configuration",
    )
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument(
        "--database-url",
        default=get_env("database-url", ""),
        help=f"SQLAlchemy URL of the store, e.g. sqlite:////tmp/sqlite/G2C.db (env {env_name('database-url')})",
    )
    parser.add_argument(
        "--engine-configuration-json",
        default=get_env("engine-configuration-json", ""),
        help=f"Engine configuration JSON; built from --database-url when omitted (env {env_name('engine-configuration-json')})",
    )
    parser.add_argument(
        "--datasources",
        type=_split_list,
        default=get_env_list("datasources"),
        help=f"Comma-separated data source codes to add (env {env_name('datasources')})",
    )
    parser.add_argument(
        "--engine-module-name",
        default=get_env("engine-module-name", ""),
        help=f"Engine module name; generated when omitted (env {env_name('engine-module-name')})",
    )
    parser.add_argument(
        "--engine-log-level",
        type=int,
        default=get_env_int("engine-log-level", 0),
        help=f"Engine verbose logging level (env {env_name('engine-log-level')})",
    )
    default_log_level = get_env("log-level", "INFO")
    if default_log_level not in LEVELS:
        raise ConfigurationError(
            f"{env_name('log-level')} must be one of {', '.join(LEVELS)}, got {default_log_level!r}"
        )
    parser.add_argument(
        "--log-level",
        choices=list(LEVELS),
        default=default_log_level,
        help=f"Log level (env {env_name('log-level')})",
    )
    parser.add_argument(
        "--log-dir",
        default=get_env("log-dir", ""),
        help=f"Also write logs to a file in this directory (env {env_name('log-dir')})",
    )
    parser.add_argument(
        "--observer-origin",
        default=get_env("observer-origin", ""),
        help=f"Origin reported in observer messages (env {env_name('observer-origin')})",
    )
    parser.add_argument(
        "--observer-url",
        default=get_env("observer-url", ""),
        help=f"POST observer messages to this URL (env {env_name('observer-url')})",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Run the initializer for parsed arguments. Returns the default config ID."""
    engine_configuration_json = args.engine_configuration_json
    if not engine_configuration_json:
        if not args.database_url:
            raise ConfigurationError(
                f"Set --database-url ({env_name('database-url')}) "
                f"or --engine-configuration-json ({env_name('engine-configuration-json')})"
            )
        engine_configuration_json = build_engine_configuration_json(args.database_url)

    initializer = Initializer(
        engine_configuration_json,
        data_sources=args.datasources,
        module_name=args.engine_module_name,
        verbose_logging=args.engine_log_level,
        log_level=args.log_level,
        observer_origin=args.observer_origin,
        observer_url=args.observer_url,
    )
    ctx = Context.background()
    try:
        return initializer.initialize(ctx)
    finally:
        initializer.destroy(ctx)


def main(argv: Optional[List[str]] = None) -> int:
    # Load .env if present (INIT_DATABASE_DATABASE_URL, etc.)
    try:
        load_env()
        parser = build_parser()
    except ConfigurationError as e:
        print(f"init-database: {e}", file=sys.stderr)
        return 1
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    logger = get_logger(
        "initdatabase",
        level=args.log_level,
        log_dir=Path(args.log_dir) if args.log_dir else None,
        enable_file=bool(args.log_dir),
    )
    try:
        run(args)
    except Exception as e:
        logger.log(4001, f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
