#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Async permutation sweep:
  GET <base_url><word> for every word in alphabet^length

Features:
- Async HTTP with aiohttp, one shared ClientSession
- Sliding concurrency window (asyncio.wait FIRST_COMPLETED), never above the cap
- Outcomes reported as requests complete, not in submission order
- Per-URL failures are reported and never stop the batch (no retries)

Install:
  pip install aiohttp python-dotenv

Run:
  python sweep.py --base-url https://example.com/ --length 3 --concurrency 20
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import aiohttp

from outcomes import Fetched, Outcome, Reporter, RequestError, SweepStats, TaskError, describe_exc, split_final_url
from sweep_config import SweepConfig, run_cli

log = logging.getLogger(__name__)

REQUEST_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


# ---------------------------
# HTTP
# ---------------------------

async def fetch_one(session: aiohttp.ClientSession, url: str) -> Fetched:
    # Body is never read; status and final URL are all we need.
    async with session.get(url, allow_redirects=True) as resp:
        domain, path = split_final_url(str(resp.url))
        return Fetched(url=url, domain=domain, path=path, status=resp.status)


def classify(task: "asyncio.Task[Fetched]", url: str) -> Outcome:
    if task.cancelled():
        return TaskError(url=url, cause="task cancelled")
    exc = task.exception()
    if exc is None:
        return task.result()
    if isinstance(exc, REQUEST_ERRORS):
        return RequestError(url=url, cause=describe_exc(exc))
    return TaskError(url=url, cause=describe_exc(exc))


# ---------------------------
# Dispatcher
# ---------------------------

async def dispatch(
    urls: Iterable[str],
    concurrency: int,
    session: aiohttp.ClientSession,
    report: Optional[Callable[[Outcome], None]] = None,
) -> None:
    """
    Fetch every URL with at most `concurrency` requests in flight.

    Prime the window, then wait for whichever task finishes first, refill the
    freed slots and report the finished ones. Exactly one outcome per URL is
    passed to `report`, in completion order.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if report is None:
        report = Reporter()

    queue = iter(urls)
    in_flight: Dict["asyncio.Task[Fetched]", str] = {}

    def admit() -> None:
        while len(in_flight) < concurrency:
            url = next(queue, None)
            if url is None:
                return
            in_flight[asyncio.create_task(fetch_one(session, url))] = url

    admit()
    log.debug("Window primed: in_flight=%s cap=%s", len(in_flight), concurrency)
    try:
        while in_flight:
            done, _ = await asyncio.wait(set(in_flight), return_when=asyncio.FIRST_COMPLETED)
            finished = [(task, in_flight.pop(task)) for task in done]
            admit()
            for task, url in finished:
                report(classify(task, url))
    finally:
        # Only non-empty when dispatch itself was cancelled or report raised.
        if in_flight:
            for task in in_flight:
                task.cancel()
            await asyncio.gather(*in_flight, return_exceptions=True)


def build_session(config: SweepConfig) -> aiohttp.ClientSession:
    timeout = aiohttp.ClientTimeout(total=config.timeout_s)
    headers = {"User-Agent": config.user_agent} if config.user_agent else None
    connector = aiohttp.TCPConnector(limit=config.concurrency, ssl=not config.insecure)
    return aiohttp.ClientSession(timeout=timeout, headers=headers, connector=connector)


async def run(config: SweepConfig, urls: Sequence[str], report: Optional[Reporter] = None) -> SweepStats:
    report = report or Reporter()
    async with build_session(config) as session:
        await dispatch(urls, config.concurrency, session, report)
    return report.stats


def main(argv: Optional[List[str]] = None) -> int:
    return run_cli(
        argv,
        "sweep.py",
        "Throw every alphabet^length word at a base URL, async.",
        lambda config, urls: asyncio.run(run(config, urls)),
    )


def entrypoint() -> None:
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        raise SystemExit(130)


if __name__ == "__main__":
    entrypoint()
