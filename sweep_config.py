#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Run configuration and CLI glue shared by sweep.py and sweep_sync.py.

- SweepConfig: alphabet, word length, base URL, concurrency cap, HTTP knobs
- Defaults from environment (PERMSWEEP_*), optionally loaded from a .env file
- Logging setup, argument parser, "SURE? (y/n)" confirmation gate
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from outcomes import SweepStats
from permutations import ALPHABET, get_permutations_with_repetitions, validate_alphabet

DEFAULT_BASE_URL = "https://ggez.ch/"
DEFAULT_LENGTH = 4
DEFAULT_CONCURRENCY = 45
DEFAULT_TIMEOUT_S = 30.0

ENV_PREFIX = "PERMSWEEP_"


@dataclass(frozen=True)
class SweepConfig:
    base_url: str = DEFAULT_BASE_URL
    alphabet: Tuple[str, ...] = ALPHABET
    length: int = DEFAULT_LENGTH
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: Optional[str] = None
    insecure: bool = False
    assume_yes: bool = False

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("base_url is empty")
        if self.length < 2:
            raise ValueError("length must be >= 2")
        validate_alphabet(self.alphabet)
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")


def build_urls(base_url: str, words: Sequence[str]) -> List[str]:
    # Plain concatenation; base_url carries its own trailing slash.
    return [f"{base_url}{w}" for w in words]


def candidate_urls(config: SweepConfig) -> List[str]:
    words = sorted(get_permutations_with_repetitions(config.alphabet, config.length))
    return build_urls(config.base_url, words)


# ---------------------------
# Logging / environment
# ---------------------------

def configure_logging(v: int, name: str = "permsweep") -> logging.Logger:
    level = logging.INFO
    if v >= 2:
        level = logging.DEBUG
    elif v == 0:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger(name)


def load_env(dotenv_path: Optional[str]) -> None:
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)


def env_str(var: str, default: str) -> str:
    v = os.getenv(ENV_PREFIX + var, "").strip()
    return v or default


def env_int(var: str, default: int) -> int:
    v = os.getenv(ENV_PREFIX + var, "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX + var} must be an integer, got {v!r}") from None


# ---------------------------
# CLI
# ---------------------------

def build_arg_parser(prog: str, description: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog, description=description)
    p.add_argument("--base-url", default=None,
                   help=f"Base URL each word is appended to (default: {DEFAULT_BASE_URL}, env {ENV_PREFIX}BASE_URL)")
    p.add_argument("--alphabet", default=None,
                   help=f"Characters to permute (default: a-z, env {ENV_PREFIX}ALPHABET)")
    p.add_argument("--length", type=int, default=None,
                   help=f"Word length, >= 2 (default: {DEFAULT_LENGTH}, env {ENV_PREFIX}LENGTH)")
    p.add_argument("--concurrency", type=int, default=None,
                   help=f"Max in-flight requests (default: {DEFAULT_CONCURRENCY}, env {ENV_PREFIX}CONCURRENCY)")
    p.add_argument("--timeout-s", type=float, default=DEFAULT_TIMEOUT_S)
    p.add_argument("--user-agent", default=None, help="User-Agent header (default: the HTTP client's own)")
    p.add_argument("--insecure", action="store_true", help="Disable TLS certificate verification (debug only)")
    p.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    p.add_argument("--dotenv", default=None, help="Path to .env file with PERMSWEEP_* defaults")
    p.add_argument("-v", "--verbose", action="count", default=1)
    return p


def config_from_args(args: argparse.Namespace) -> SweepConfig:
    load_env(args.dotenv)
    alphabet = args.alphabet if args.alphabet is not None else env_str("ALPHABET", "".join(ALPHABET))
    config = SweepConfig(
        base_url=args.base_url if args.base_url is not None else env_str("BASE_URL", DEFAULT_BASE_URL),
        alphabet=tuple(alphabet),
        length=args.length if args.length is not None else env_int("LENGTH", DEFAULT_LENGTH),
        concurrency=args.concurrency if args.concurrency is not None else env_int("CONCURRENCY", DEFAULT_CONCURRENCY),
        timeout_s=args.timeout_s,
        user_agent=args.user_agent,
        insecure=args.insecure,
        assume_yes=args.yes,
    )
    config.validate()
    return config


def confirm(count: int, base_url: str,
            input_fn: Optional[Callable[[str], str]] = None,
            out=None) -> bool:
    """Announce the run and loop on "SURE? (y/n)" until y or n. EOF means no."""
    input_fn = input_fn or input
    out = out or sys.stdout
    print(f"You're about to throw {count} urls at {base_url} ...", file=out)
    while True:
        try:
            answer = input_fn("SURE? (y/n) ")
        except EOFError:
            return False
        answer = answer.strip()
        if answer == "y":
            return True
        if answer == "n":
            return False


def run_cli(argv: Optional[Sequence[str]],
            prog: str,
            description: str,
            runner: Callable[[SweepConfig, List[str]], SweepStats]) -> int:
    """
    Shared main(): parse, confirm, run, print elapsed time.
    runner(config, urls) does the sweep and returns SweepStats.
    """
    args = build_arg_parser(prog, description).parse_args(argv)
    log = configure_logging(args.verbose)
    try:
        config = config_from_args(args)
    except ValueError as e:
        raise SystemExit(str(e))

    urls = candidate_urls(config)
    if config.assume_yes:
        print(f"You're about to throw {len(urls)} urls at {config.base_url} ...")
    elif not confirm(len(urls), config.base_url):
        return 1

    log.info("Starting sweep: urls=%s base=%s concurrency=%s", len(urls), config.base_url, config.concurrency)
    started = time.perf_counter()
    stats = runner(config, urls)
    elapsed = time.perf_counter() - started

    print(f"Ran {len(urls)} urls against {config.base_url} in {elapsed:.3f}s!")
    log.info("Done. fetched=%s request_errors=%s task_errors=%s",
             stats.fetched, stats.request_errors, stats.task_errors)
    return 0
