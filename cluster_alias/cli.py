"""
Cluster Alias - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the alias directory.

- Provides argparse-based CLI
- Loads configuration from CLI and environment
- Entry point for operators and schedulers

============================================================
USAGE
============================================================
cluster-alias init-db
cluster-alias which-cluster payments
cluster-alias which-alias db-a-1:3306
cluster-alias set-alias db-a-1:3306 payments
cluster-alias set-override db-a-1:3306 payments-main
cluster-alias list --overrides
cluster-alias sync --single-cycle
cluster-alias sync --interval 60
cluster-alias rename db-a-1:3306 db-a-2:3306

============================================================
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from cluster_alias.config import ClusterAliasConfig
from cluster_alias.directory import ClusterAliasDirectory
from cluster_alias.scheduler import run_sync_loop
from storage.database import Database
from storage.repositories.exceptions import RecordNotFoundError, RepositoryException


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Set up root logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        The package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("cluster_alias")


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cluster-alias",
        description="Maintain stable aliases for database clusters",
    )

    parser.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="SQLAlchemy database URL (default: CLUSTER_ALIAS_DATABASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: CLUSTER_ALIAS_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: text)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the alias tables")

    which_cluster = commands.add_parser("which-cluster", help="Resolve an alias to its cluster")
    which_cluster.add_argument("alias")

    which_alias = commands.add_parser("which-alias", help="Resolve a cluster to its alias")
    which_alias.add_argument("cluster_name")

    set_alias = commands.add_parser("set-alias", help="Register the alias of a cluster")
    set_alias.add_argument("cluster_name")
    set_alias.add_argument("alias")

    set_override = commands.add_parser("set-override", help="Pin the alias of a cluster")
    set_override.add_argument("cluster_name")
    set_override.add_argument("alias")

    list_cmd = commands.add_parser("list", help="List aliases")
    list_cmd.add_argument(
        "--overrides",
        action="store_true",
        help="List pinned overrides instead of the alias map",
    )

    sync = commands.add_parser("sync", help="Synchronize aliases from discovery")
    sync.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Seconds between passes (default: CLUSTER_ALIAS_SYNC_INTERVAL)",
    )
    sync.add_argument(
        "--single-cycle",
        action="store_true",
        help="Run one pass and exit",
    )
    sync.add_argument(
        "--max-cycles",
        type=int,
        metavar="N",
        help="Stop after N passes",
    )

    rename = commands.add_parser("rename", help="Move aliases to a renamed cluster")
    rename.add_argument("old_cluster_name")
    rename.add_argument("new_cluster_name")

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> ClusterAliasConfig:
    """
    Build configuration from environment, then CLI overrides.
    """
    config = ClusterAliasConfig.from_env()
    if args.database_url:
        config.database.url = args.database_url
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if getattr(args, "interval", None) is not None:
        config.sync.interval_seconds = args.interval
    return config


# ============================================================
# COMMANDS
# ============================================================

def run_command(args: argparse.Namespace, directory: ClusterAliasDirectory, database: Database) -> int:
    """Dispatch a parsed command. Returns the exit code."""
    command = args.command

    if command == "init-db":
        database.create_all()
        print("Alias tables ready")
    elif command == "which-cluster":
        print(directory.resolve_cluster_name(args.alias))
    elif command == "which-alias":
        print(directory.resolve_alias(args.cluster_name))
    elif command == "set-alias":
        directory.set_alias(args.cluster_name, args.alias)
    elif command == "set-override":
        directory.set_override(args.cluster_name, args.alias)
    elif command == "list":
        rows = directory.list_overrides() if args.overrides else directory.list_aliases()
        for row in rows:
            print(f"{row.cluster_name}\t{row.alias}")
    elif command == "sync":
        if args.single_cycle:
            print(json.dumps(directory.synchronize().to_dict(), indent=2))
        else:
            result = run_sync_loop(
                directory,
                interval_seconds=directory.config.sync.interval_seconds,
                max_cycles=args.max_cycles,
            )
            return 0 if result.failures == 0 else 1
    elif command == "rename":
        renamed = directory.rename_cluster(args.old_cluster_name, args.new_cluster_name)
        print(f"{renamed} row(s) re-pointed")

    return 0


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code: 0 success, 1 lookup or store failure, 2 usage error
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    config = build_config(args)
    setup_logging(config.log_level, config.log_format)

    if args.command == "sync" and config.sync.interval_seconds <= 0:
        print("Error: --interval must be positive", file=sys.stderr)
        return 2

    database = Database(config.database)
    directory = ClusterAliasDirectory(database, config=config)

    try:
        return run_command(args, directory, database)
    except RecordNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RepositoryException as e:
        logging.error(f"Command '{args.command}' failed: {e}")
        return 1
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130
    finally:
        database.disconnect()


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
