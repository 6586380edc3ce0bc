"""Environment snapshots and the before/after diff.

A snapshot is an immutable name -> value mapping. Reconciling two snapshots
yields the ``NAME=value`` assignments an init hook introduced, with PATH
changes reported separately as ``PATH_ADDITIONS``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

PATH_ADDITIONS = "PATH_ADDITIONS"

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvironmentSnapshot(Mapping[str, str]):
    """Immutable mapping of environment variable names to values."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str] | None = None) -> None:
        self._data = MappingProxyType(dict(data or {}))

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> EnvironmentSnapshot:
        """Capture a mapping such as ``os.environ``."""
        return cls(data)

    @classmethod
    def parse(cls, text: str) -> EnvironmentSnapshot:
        """Parse the output of ``env -0`` or plain ``env``.

        NUL-separated output is split on NUL. Newline-separated output treats
        any line that does not begin with ``NAME=`` as a continuation of the
        previous value.
        """
        data: dict[str, str] = {}

        if "\0" in text:
            for entry in text.split("\0"):
                name, sep, value = entry.partition("=")
                if sep and _NAME_RE.match(name):
                    data[name] = value
            return cls(data)

        last: str | None = None
        for line in text.splitlines():
            name, sep, value = line.partition("=")
            if sep and _NAME_RE.match(name):
                data[name] = value
                last = name
            elif last is not None:
                data[last] += "\n" + line
        return cls(data)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"EnvironmentSnapshot({len(self._data)} variables)"


def diff_snapshots(
    before: Mapping[str, str],
    after: Mapping[str, str],
) -> list[tuple[str, str]]:
    """Return variables new or changed in ``after``, in ``after`` order.

    PATH is never part of the result; see :func:`path_additions`.
    """
    return [
        (name, value)
        for name, value in after.items()
        if name != "PATH" and before.get(name) != value
    ]


def compile_denylist(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile denylist patterns, rejecting invalid regular expressions."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ValueError(f"Invalid denylist pattern {pattern!r}: {e}") from None
    return compiled


def filter_denied(
    pairs: Iterable[tuple[str, str]],
    patterns: Iterable[str],
) -> list[tuple[str, str]]:
    """Drop pairs whose name fully matches one of the denylist patterns."""
    compiled = compile_denylist(patterns)
    return [
        (name, value)
        for name, value in pairs
        if not any(p.fullmatch(name) for p in compiled)
    ]


def path_additions(
    before: Mapping[str, str],
    after: Mapping[str, str],
    sep: str = ":",
) -> list[str]:
    """Return PATH components present in ``after`` but not in ``before``.

    Order follows ``after``; duplicates and empty components are dropped.
    """
    known = set(before.get("PATH", "").split(sep))
    added: list[str] = []
    for component in after.get("PATH", "").split(sep):
        if component and component not in known and component not in added:
            added.append(component)
    return added


def reconcile_snapshots(
    before: Mapping[str, str],
    after: Mapping[str, str],
    denylist: Iterable[str] = (),
    sep: str = ":",
) -> list[str]:
    """Compute the ``NAME=value`` assignments introduced between snapshots.

    Regular variables come first in diff order, followed by a single
    ``PATH_ADDITIONS`` entry when PATH gained components.
    """
    pairs = filter_denied(diff_snapshots(before, after), denylist)

    entries: list[str] = []
    seen: set[str] = set()
    for name, value in pairs:
        name = name.strip()
        if not name or name in seen or name == PATH_ADDITIONS:
            continue
        seen.add(name)
        entries.append(f"{name}={value}".strip())

    added = path_additions(before, after, sep)
    if added:
        entries.append(f"{PATH_ADDITIONS}={sep.join(added)}")

    return entries
