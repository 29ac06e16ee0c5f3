#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Permutations with repetition over a fixed alphabet.

Yields every string of a given length whose characters are drawn from the
alphabet, i.e. alphabet^length, |alphabet|^length strings in total.
"""

from __future__ import annotations

import string
from typing import Sequence, Set

ALPHABET = tuple(string.ascii_lowercase)


def validate_alphabet(alphabet: Sequence[str]) -> None:
    if len(alphabet) < 2:
        raise ValueError("alphabet must contain at least 2 tokens")
    for tok in alphabet:
        if not isinstance(tok, str) or len(tok) != 1:
            raise ValueError(f"Invalid token {tok!r}: tokens must be single characters")
    if len(set(alphabet)) != len(alphabet):
        raise ValueError("alphabet contains duplicate tokens")


def permutation_count(alphabet: Sequence[str], length: int) -> int:
    return len(alphabet) ** length


def get_permutations_with_repetitions(alphabet: Sequence[str], length: int) -> Set[str]:
    """
    Build alphabet^length by repeated extension:
      seed: every d + c for d, c in alphabet x alphabet
      then (length - 2) times: every d + s for s in the working set
    Result is a set; order is not meaningful.
    """
    if length < 2:
        raise ValueError("length must be >= 2")
    validate_alphabet(alphabet)

    perms = {d + c for c in alphabet for d in alphabet}
    for _ in range(length - 2):
        perms = {d + s for s in perms for d in alphabet}
    return perms
