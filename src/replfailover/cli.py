"""Command-line entry point."""

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from .core.config import Settings
from .core.errors import FailoverError, OperatorAbort, OrchestrationError
from .credentials import HANDLER_POLICY
from .reachability import verify_addresses
from .runner import FailoverRunner, RunResult

logger = logging.getLogger("replfailover")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ABORTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replfailover",
        description="Evaluate a replicated cluster pair and fail over or heal it when safe",
    )
    parser.add_argument(
        "--addresses",
        help="Comma-separated list of the two cluster addresses in the replication relationship",
    )
    parser.add_argument("--mode", choices=["dr", "performance"], help="Replication mode to evaluate")
    parser.add_argument(
        "--operation-token",
        help="Operation token allowed to manage replication on either cluster",
    )
    parser.add_argument(
        "--tls-skip-verify",
        action="store_true",
        default=None,
        help="Skip TLS verification of the clusters' certificates",
    )
    parser.add_argument("--request-timeout", type=float, help="Per-request timeout and poll interval (seconds)")
    parser.add_argument(
        "--poll-max-attempts",
        type=int,
        help="Give up convergence waits after this many attempts (default: wait indefinitely)",
    )
    parser.add_argument(
        "--yes",
        dest="assume_yes",
        action="store_true",
        default=None,
        help="Do not prompt before a failover",
    )
    parser.add_argument("--token-kv-mount", help="KV mount where a provisioned token is stored")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument(
        "--print-policy",
        action="store_true",
        help="Print the ACL policy the operation token needs and exit",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "addresses": args.addresses.split(",") if args.addresses else None,
        "mode": args.mode,
        "operation_token": args.operation_token,
        "tls_skip_verify": args.tls_skip_verify,
        "request_timeout_s": args.request_timeout,
        "poll_max_attempts": args.poll_max_attempts,
        "assume_yes": args.assume_yes,
        "token_kv_mount": args.token_kv_mount,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


async def run(settings: Settings) -> RunResult:
    addresses = await verify_addresses(settings)
    return await FailoverRunner(settings).run(addresses)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.print_policy:
        print(HANDLER_POLICY)
        return EXIT_OK

    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("Invalid configuration: %s", exc)
        return EXIT_FATAL

    configure_logging(settings.log_level)

    try:
        result = asyncio.run(run(settings))
    except OperatorAbort as exc:
        logger.error("%s", exc)
        return EXIT_ABORTED
    except FailoverError as exc:
        logger.error("%s", exc)
        if isinstance(exc, OrchestrationError):
            logger.error("Steps completed before failure: %s", ", ".join(exc.completed) or "none")
        if exc.remedy:
            logger.error("Recommended action: %s", exc.remedy)
        return EXIT_FATAL

    logger.info(
        "Operation completed successfully (%s; primary=%s, secondary=%s)",
        result.outcome.value,
        result.primary or "-",
        result.secondary or "-",
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
