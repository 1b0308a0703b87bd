from __future__ import annotations

import argparse
import logging
import sys

from .config import Config, load_config
from .errors import ConfigError, InputDecodeError
from .processor import Processor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldfmt",
        description="Split each input line into fields and print them through a template.",
    )
    parser.add_argument("output_format", type=str, nargs="?", default=None,
                        help="Output template, e.g. '{1}: {name}' (may come from --config instead)")
    parser.add_argument("-p", "--pattern", type=str, default=None, help="Regex whose capture groups become fields")
    parser.add_argument("-d", "--delimiter", type=str, default=None, help="Regex separating fields (default: whitespace)")
    parser.add_argument("-f", "--flags", type=str, default=None, help="Regex flags as letters: i,m,s,x,a")
    parser.add_argument("-e", "--engine", choices=["placeholder", "jinja"], default=None,
                        help="Template engine (default: placeholder)")
    parser.add_argument("-c", "--config", type=str, default=None, help="Path to YAML settings file")
    parser.add_argument("-i", "--input", type=str, default="-", help="Input file path or '-' for stdin")
    parser.add_argument("-o", "--output", type=str, default="-", help="Output file path or '-' for stdout")
    parser.add_argument("--encoding", type=str, default=None, help="Input encoding (default: utf-8)")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level for stderr")
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    return {
        "scan": {"pattern": args.pattern, "delimiter": args.delimiter, "flags": args.flags},
        "output": {"format": args.output_format, "engine": args.engine},
        "input": {"encoding": args.encoding},
    }


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        cfg: Config = load_config(args.config, overrides=_overrides(args))
        processor = Processor(
            scanner=cfg.build_scanner(),
            formatter=cfg.build_formatter(),
            encoding=cfg.input.encoding,
        )
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 2

    try:
        src = sys.stdin.buffer if args.input == "-" else open(args.input, "rb")
    except OSError as e:
        logger.error("Cannot open input: %s", e)
        return 1

    # Decode and render everything before the output is opened
    try:
        output = processor.process_bytes(src.read())
    except InputDecodeError as e:
        logger.error("%s", e)
        return 1
    finally:
        if src is not sys.stdin.buffer:
            src.close()

    try:
        dst = sys.stdout if args.output == "-" else open(args.output, "w", encoding="utf-8")
    except OSError as e:
        logger.error("Cannot open output: %s", e)
        return 1

    try:
        dst.write(output + "\n")
        return 0
    finally:
        if dst is not sys.stdout:
            dst.close()


if __name__ == "__main__":
    raise SystemExit(main())
