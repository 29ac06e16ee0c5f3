#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SYNC permutation sweep (worker threads instead of asyncio).

Same contract as sweep.py:
- one shared requests.Session, pool sized to the concurrency cap
- at most --concurrency requests in flight (ThreadPoolExecutor + FIRST_COMPLETED window)
- outcomes reported on the calling thread, in completion order
- no retries: the adapter is mounted with max_retries=0

SECURITY NOTE:
- Using --insecure disables TLS certificate verification. Use only for testing.
"""

from __future__ import annotations

import concurrent.futures as cf
import logging
import sys
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import requests
import urllib3
from requests.adapters import HTTPAdapter

from outcomes import Fetched, Outcome, Reporter, RequestError, SweepStats, TaskError, describe_exc, split_final_url
from sweep_config import DEFAULT_TIMEOUT_S, SweepConfig, run_cli

log = logging.getLogger(__name__)


# ---------------------------
# HTTP
# ---------------------------

def build_requests_session(config: SweepConfig) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0, pool_connections=config.concurrency, pool_maxsize=config.concurrency)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    if config.user_agent:
        session.headers["User-Agent"] = config.user_agent
    if config.insecure:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        session.verify = False
    return session


def fetch_one(session: requests.Session, url: str, timeout_s: float = DEFAULT_TIMEOUT_S) -> Fetched:
    # stream=True: headers only, the body is dropped when the response closes
    with session.get(url, timeout=timeout_s, allow_redirects=True, stream=True) as resp:
        domain, path = split_final_url(resp.url)
        return Fetched(url=url, domain=domain, path=path, status=resp.status_code)


def classify(fut: cf.Future, url: str) -> Outcome:
    if fut.cancelled():
        return TaskError(url=url, cause="task cancelled")
    exc = fut.exception()
    if exc is None:
        return fut.result()
    if isinstance(exc, requests.RequestException):
        return RequestError(url=url, cause=describe_exc(exc))
    return TaskError(url=url, cause=describe_exc(exc))


# ---------------------------
# Dispatcher
# ---------------------------

def dispatch(
    urls: Iterable[str],
    concurrency: int,
    session: requests.Session,
    report: Optional[Callable[[Outcome], None]] = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> None:
    """
    Threaded twin of sweep.dispatch: at most `concurrency` futures outstanding,
    refilled as soon as any completes. `report` only ever runs on this thread.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if report is None:
        report = Reporter()

    queue = iter(urls)
    in_flight: Dict[cf.Future, str] = {}
    executor = cf.ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="sweep")

    def admit() -> None:
        while len(in_flight) < concurrency:
            url = next(queue, None)
            if url is None:
                return
            in_flight[executor.submit(fetch_one, session, url, timeout_s)] = url

    drained = False
    try:
        admit()
        log.debug("Window primed: in_flight=%s cap=%s", len(in_flight), concurrency)
        while in_flight:
            done, _ = cf.wait(set(in_flight), return_when=cf.FIRST_COMPLETED)
            finished = [(fut, in_flight.pop(fut)) for fut in done]
            admit()
            for fut, url in finished:
                report(classify(fut, url))
        drained = True
    finally:
        # On Ctrl-C or a failing report, do not block on requests still running.
        executor.shutdown(wait=drained, cancel_futures=True)


def run(config: SweepConfig, urls: Sequence[str], report: Optional[Reporter] = None) -> SweepStats:
    report = report or Reporter()
    with build_requests_session(config) as session:
        dispatch(urls, config.concurrency, session, report, timeout_s=config.timeout_s)
    return report.stats


def main(argv: Optional[List[str]] = None) -> int:
    return run_cli(
        argv,
        "sweep_sync.py",
        "Throw every alphabet^length word at a base URL, with worker threads.",
        run,
    )


def entrypoint() -> None:
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        raise SystemExit(130)


if __name__ == "__main__":
    entrypoint()
