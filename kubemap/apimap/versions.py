"""Kubernetes API version tokens: parsing and ordering.

A token is ``<letters><major>[<label><minor>]``, e.g. ``v1``, ``v1beta1``,
``v2alpha10``.  Ordering:

1. higher major wins;
2. at equal majors, ``beta`` beats ``alpha``;
3. with ``rank_ga`` (the default) a label-less token beats any labelled one;
4. otherwise minor numerals decide, an absent numeral ranking lowest.
"""

from __future__ import annotations

import re

from kubemap.errors import ParseError
from kubemap.models.apimap import CompareResult, VersionToken

_RE_VERSION = re.compile(r"^[a-z]+(\d+)(?:([a-z]+)(\d+))?$")
_RE_GROUP_VERSION = re.compile(r"^(?:([^/]+)/)?([a-z]+\d+(?:[a-z]+\d+)?)$")

# Labels with an explicit ranking relative to each other.
_LABEL_RANK = {"alpha": 0, "beta": 1}


def parse_version(token: str) -> VersionToken:
    """Parse *token* into its major numeral, stability label and minor numeral.

    Raises:
        ParseError: if *token* is not a string matching the version grammar.
    """
    if not isinstance(token, str):
        raise ParseError(token)
    match = _RE_VERSION.match(token)
    if match is None:
        raise ParseError(token)
    major, label, minor = match.groups()
    return VersionToken(
        raw=token,
        major=int(major),
        label=label,
        minor=int(minor) if minor is not None else None,
    )


def split_group_version(group_version: str) -> tuple[str, str]:
    """Split ``apps/v1beta1`` into ``("apps", "v1beta1")``; core ``v1`` gives ``("", "v1")``.

    Raises:
        ParseError: if *group_version* is malformed.
    """
    if not isinstance(group_version, str):
        raise ParseError(group_version)
    match = _RE_GROUP_VERSION.match(group_version)
    if match is None:
        raise ParseError(group_version)
    group, version = match.groups()
    return group or "", version


def _sign(diff: int) -> CompareResult:
    if diff > 0:
        return CompareResult.GREATER
    if diff < 0:
        return CompareResult.LESS
    return CompareResult.EQUAL


def compare_tokens(a: VersionToken, b: VersionToken, rank_ga: bool = True) -> CompareResult:
    """Compare two parsed tokens; see the module docstring for the ordering."""
    if a.major != b.major:
        return _sign(a.major - b.major)

    if a.label in _LABEL_RANK and b.label in _LABEL_RANK and a.label != b.label:
        return _sign(_LABEL_RANK[a.label] - _LABEL_RANK[b.label])

    if rank_ga and a.is_stable != b.is_stable:
        return CompareResult.GREATER if a.is_stable else CompareResult.LESS

    minor_a = -1 if a.minor is None else a.minor
    minor_b = -1 if b.minor is None else b.minor
    return _sign(minor_a - minor_b)


def compare_versions(a: str, b: str, rank_ga: bool = True) -> CompareResult:
    """Compare two version tokens such as ``v1beta2`` and ``v1alpha1``.

    Args:
        a:       Left token.
        b:       Right token.
        rank_ga: Rank stable (label-less) tokens above beta/alpha tokens of
                 the same major.  With ``False`` only alpha/beta pairs are
                 ranked by label, and a stable token against a labelled one
                 falls through to the minor numeral comparison.

    Returns:
        CompareResult.GREATER if *a* is the higher version, LESS if lower,
        EQUAL otherwise.

    Raises:
        ParseError: if either token is malformed.
    """
    return compare_tokens(parse_version(a), parse_version(b), rank_ga=rank_ga)


def compare_group_versions(a: str, b: str, rank_ga: bool = True) -> CompareResult:
    """Compare the version parts of two group-versions, ignoring the group."""
    return compare_versions(split_group_version(a)[1], split_group_version(b)[1], rank_ga=rank_ga)
