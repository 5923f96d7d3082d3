from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Iterable

from .export import soundbank_to_dict, write_xml
from .parser import decode_soundbank, read_xsb


def _default_log_dir() -> str:
    return os.environ.get("XSBDECODE_LOG_DIR") or os.path.join(os.getcwd(), "log")


def _get_logger(name: str, log_dir: str) -> logging.Logger:
    logger = logging.getLogger(f"xsbdecode.cli.{name}")
    for handler in list(logger.handlers):
        if os.path.dirname(getattr(handler, "baseFilename", "")) == os.path.abspath(log_dir):
            return logger
        # Logger was set up for another log directory.
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.INFO)
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = os.path.join(log_dir, f"{name}_{timestamp}.log")
    handler = logging.FileHandler(log_path, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    logger.info("Log started: %s", log_path)
    return logger


def _load(path: str, logger: logging.Logger):
    data, info = read_xsb(path)
    logger.info("Read %s (%s bytes)", info.path, info.size)
    bank = decode_soundbank(data)
    logger.info(
        "Decoded bank %r: %s wave banks, %s cues, %s sounds",
        bank.name,
        len(bank.wave_banks),
        len(bank.cues),
        len(bank.sounds),
    )
    return bank


def cmd_info(args: argparse.Namespace) -> int:
    logger = _get_logger("info", args.log_dir)
    bank = _load(args.input, logger)
    track_count = sum(len(sound.tracks) for sound in bank.sounds)
    print(f"name\t{bank.name}")
    print(f"wave_banks\t{len(bank.wave_banks)}")
    for wave_bank in bank.wave_banks:
        print(f"  {wave_bank.name}")
    print(f"cues\t{len(bank.cues)}")
    print(f"sounds\t{len(bank.sounds)}")
    print(f"tracks\t{track_count}")
    return 0


def cmd_cues(args: argparse.Namespace) -> int:
    logger = _get_logger("cues", args.log_dir)
    bank = _load(args.input, logger)
    for index, cue in enumerate(bank.cues):
        sounds = ",".join(str(variation.sound_index) for variation in cue.variations)
        print(f"{index}\t{cue.name or '-'}\t{sounds}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    logger = _get_logger("dump", args.log_dir)
    started = time.time()
    logger.info("Start dump: input=%s output=%s format=%s", args.input, args.output, args.format)
    bank = _load(args.input, logger)
    if args.format == "xml":
        write_xml(bank, args.output)
    else:
        if os.path.dirname(args.output):
            os.makedirs(os.path.dirname(args.output), exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as fp:
            json.dump(soundbank_to_dict(bank), fp, ensure_ascii=False, indent=2)
    print(f"Wrote {args.output}")
    logger.info("Wrote %s", args.output)
    logger.info("Done dump in %.2fs", time.time() - started)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xsbdecode")
    parser.add_argument(
        "--log-dir",
        default=_default_log_dir(),
        help="log directory (default: $XSBDECODE_LOG_DIR or ./log)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info_cmd = sub.add_parser("info", help="print bank name and table counts")
    info_cmd.add_argument("--input", required=True, help="input .xsb file")
    info_cmd.set_defaults(func=cmd_info)

    cues_cmd = sub.add_parser("cues", help="list cues and their sound variations")
    cues_cmd.add_argument("--input", required=True, help="input .xsb file")
    cues_cmd.set_defaults(func=cmd_cues)

    dump_cmd = sub.add_parser("dump", help="export the decoded bank as json or xml")
    dump_cmd.add_argument("--input", required=True, help="input .xsb file")
    dump_cmd.add_argument("--output", required=True, help="output file path")
    dump_cmd.add_argument("--format", choices=["json", "xml"], default="json", help="output format (default: json)")
    dump_cmd.set_defaults(func=cmd_dump)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
