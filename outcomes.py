#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Per-URL outcomes of a sweep and the line reporter.

Every dispatched URL ends in exactly one of:
- Fetched       a response came back (any status code)
- RequestError  the GET itself failed (DNS, refused, TLS, timeout, ...)
- TaskError     the unit of work running the GET failed or was cancelled
"""

from __future__ import annotations

import ipaddress
import logging
import sys
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Optional, TextIO, Tuple, Union
from urllib.parse import urlsplit

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fetched:
    url: str
    domain: str
    path: str
    status: int


@dataclass(frozen=True)
class RequestError:
    url: str
    cause: str


@dataclass(frozen=True)
class TaskError:
    url: str
    cause: str


Outcome = Union[Fetched, RequestError, TaskError]


def describe_exc(exc: BaseException) -> str:
    msg = str(exc)
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def split_final_url(url: str) -> Tuple[str, str]:
    """
    Return (domain, path) of a response URL.
    domain is "" when there is no host or the host is an IP literal.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if not host or _is_ip(host):
        log.debug("No domain in final url %s", url)
        host = ""
    return host, parts.path or "/"


def format_status(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)


def format_outcome(outcome: Outcome) -> str:
    if isinstance(outcome, Fetched):
        return f"{outcome.domain}{outcome.path} - {format_status(outcome.status)}"
    if isinstance(outcome, RequestError):
        return f"request error: {outcome.url}: {outcome.cause}"
    if isinstance(outcome, TaskError):
        return f"task error: {outcome.url}: {outcome.cause}"
    raise TypeError(f"not an outcome: {outcome!r}")


@dataclass
class SweepStats:
    fetched: int = 0
    request_errors: int = 0
    task_errors: int = 0

    @property
    def total(self) -> int:
        return self.fetched + self.request_errors + self.task_errors


@dataclass
class Reporter:
    """Writes one line per outcome (stdout for Fetched, stderr otherwise) and keeps totals."""

    out: Optional[TextIO] = None
    err: Optional[TextIO] = None
    stats: SweepStats = field(default_factory=SweepStats)

    def __call__(self, outcome: Outcome) -> None:
        line = format_outcome(outcome)
        if isinstance(outcome, Fetched):
            self.stats.fetched += 1
            stream = self.out or sys.stdout
        else:
            if isinstance(outcome, RequestError):
                self.stats.request_errors += 1
            else:
                self.stats.task_errors += 1
            log.debug("%s failed: %s", outcome.url, outcome.cause)
            stream = self.err or sys.stderr
        stream.write(line + "\n")
        stream.flush()
