"""CLI argument parsing and main entry point.

Provides two subcommands:

* ``rs-sentinel authorize`` - run one authorization decision against the
  configured TIP and catalogue and print the outcome.  Exit codes: 0
  allowed, 1 refused or failed, 2 configuration error, 3 malformed
  request or grant.
* ``rs-sentinel query``     - map an NGSI-LD query string to the internal
  query document.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from rs_sentinel.authz.models import AuthContext, UserRequest
from rs_sentinel.config.loader import load_config
from rs_sentinel.config.schema import RsSentinelConfig
from rs_sentinel.constants import SERVER_NAME, SERVER_VERSION
from rs_sentinel.display.logging_config import setup_logging
from rs_sentinel.errors import (
    AuthorizationFailure,
    ConfigurationError,
    InvalidQueryError,
    RsSentinelError,
)
from rs_sentinel.query.mapper import QueryMapper
from rs_sentinel.query.models import NGSILDQueryParams
from rs_sentinel.runtime import AuthorizationRuntime

module_logger = logging.getLogger(__name__)

# Config file search order (first match wins)
_CONFIG_SEARCH_ORDER = ("config.yaml", "config.yml")
_CONFIG_ENV_VAR = "RS_SENTINEL_CONFIG"


def _find_config_file() -> str:
    """Locate the config file in the working directory.

    Falls back to ``CWD/config.yaml`` if nothing exists (loader will error).
    """
    for name in _CONFIG_SEARCH_ORDER:
        candidate = os.path.join(os.getcwd(), name)
        if os.path.isfile(candidate):
            return candidate
    return os.path.join(os.getcwd(), "config.yaml")


def _resolve_config_path(config_path: Optional[str]) -> str:
    # CLI flag → env var → auto-detect
    if config_path is None:
        config_path = os.environ.get(_CONFIG_ENV_VAR)
    if config_path is None:
        config_path = _find_config_file()
    return os.path.abspath(config_path)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2))


# ── ``rs-sentinel authorize`` ───────────────────────────────────────────


async def _run_authorize(args: argparse.Namespace, config: RsSentinelConfig) -> int:
    context = AuthContext(
        token=args.token,
        api_endpoint=args.endpoint,
        method=args.method.upper(),
        subscription_or_adapter_id=args.target_id,
    )
    user_request = UserRequest(
        resource_ids=tuple(args.ids),
        entity_ids=tuple(args.entities),
        resource_group=args.resource_group,
        resource_server=args.resource_server,
    )

    async with AuthorizationRuntime(config) as runtime:
        try:
            identity = await runtime.authorize(user_request, context)
        except AuthorizationFailure as exc:
            _print_json(exc.to_dict())
            return 1
        except RsSentinelError as exc:
            module_logger.error("Request could not be evaluated: %s", exc)
            _print_json({"status": "error", "message": str(exc), "error_type": type(exc).__name__})
            return 3
    _print_json(identity.to_dict())
    return 0


def _cmd_authorize(args: argparse.Namespace) -> int:
    cfg_abs_path = _resolve_config_path(args.config)
    try:
        config = load_config(cfg_abs_path)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    # --log-level wins over server.log_level from the config file
    setup_logging(args.log_level or config.server.log_level, quiet=True)
    module_logger.info("---- %s v%s: authorize ----", SERVER_NAME, SERVER_VERSION)
    module_logger.info("Configuration file path resolved to: %s", cfg_abs_path)
    return asyncio.run(_run_authorize(args, config))


# ── ``rs-sentinel query`` ───────────────────────────────────────────────


def _cmd_query(args: argparse.Namespace) -> int:
    setup_logging(args.log_level or "info", quiet=True)
    try:
        params = NGSILDQueryParams.from_query_string(args.query_string)
        document = QueryMapper().to_json(params, temporal=args.temporal)
    except InvalidQueryError as exc:
        print(f"Invalid query: {exc}", file=sys.stderr)
        return 1
    _print_json(document)
    return 0


# ── Parser ──────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with authorize/query subcommands."""
    parser = argparse.ArgumentParser(
        prog="rs-sentinel",
        description=f"{SERVER_NAME} v{SERVER_VERSION}",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set file logging level (default: server.log_level from the config, or info)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # ── authorize ───────────────────────────────────────────────
    sp_auth = subparsers.add_parser(
        "authorize",
        help="Decide one request against the configured TIP and catalogue",
    )
    sp_auth.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=(
            f"Path to configuration file (YAML). Default: ${_CONFIG_ENV_VAR}, "
            "then config.yaml/config.yml in the working directory"
        ),
    )
    sp_auth.add_argument("--token", required=True, help="Bearer token of the caller")
    sp_auth.add_argument("--endpoint", required=True, help="Requested API endpoint path")
    sp_auth.add_argument("--method", default="GET", help="HTTP method (default: GET)")
    sp_auth.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=[],
        metavar="RID",
        help="Requested resource id (repeatable)",
    )
    sp_auth.add_argument(
        "--entity",
        dest="entities",
        action="append",
        default=[],
        metavar="EID",
        help="Entity id in the request body (repeatable)",
    )
    sp_auth.add_argument("--resource-group", default=None, help="Resource group of the request")
    sp_auth.add_argument("--resource-server", default=None, help="Resource server of the request")
    sp_auth.add_argument(
        "--target-id",
        default=None,
        help="Subscription or adapter id addressed by the request",
    )
    sp_auth.set_defaults(func=_cmd_authorize)

    # ── query ───────────────────────────────────────────────────
    sp_query = subparsers.add_parser(
        "query",
        help="Print the internal query document for an NGSI-LD query string",
    )
    sp_query.add_argument("query_string", help="Raw query string, e.g. 'id=a/b/c/d/e&q=speed>40'")
    sp_query.add_argument(
        "--temporal",
        action="store_true",
        default=False,
        help="Treat the query as a temporal query",
    )
    sp_query.set_defaults(func=_cmd_query)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
