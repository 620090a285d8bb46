# File: schemaforge/utils.py
"""
SchemaForge - Utility Functions & Helpers
==========================================
Identifier conversion, naive English number inflection, identifier
generation, file I/O and timing utilities used throughout the pipeline.

Case conversions operate on snake-style identifiers: the input is split on
``_`` and every word is re-cased.  Conversions are cached with
``@lru_cache`` because the renderers call them repeatedly for the same names.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.utils")

_LAST_CAMEL_WORD_RE: re.Pattern[str] = re.compile(r"[A-Z][^A-Z]*$")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def split_words(name: str) -> Tuple[str, ...]:
    """Split a snake-style identifier on underscores, dropping empty parts."""
    return tuple(part for part in name.split("_") if part)


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert a snake-style identifier to PascalCase.

    Examples:
        >>> to_pascal_case("user_profiles")
        'UserProfiles'
        >>> to_pascal_case("createdAt")
        'Createdat'
    """
    return "".join(_capitalize(word) for word in split_words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    PascalCase the identifier, then lower-case its first character.

    Examples:
        >>> to_camel_case("user_id")
        'userId'
        >>> to_camel_case("OrderItem")
        'orderitem'
    """
    pascal: str = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


@functools.lru_cache(maxsize=None)
def lower_first(name: str) -> str:
    """Lower-case only the first character (``OrderItem`` → ``orderItem``)."""
    return name[:1].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def to_singular(word: str) -> str:
    """
    Singularise one word with a fixed suffix cascade.

    Rules, first match wins:

    1. one character or less, or ending in ``ss``: unchanged
    2. ``-ies`` → ``-y``     (categories → category)
    3. ``-ves`` → ``-f``     (shelves → shelf)
    4. ``-ses``, ``-xes``, ``-ches``, ``-shes``: drop the last two characters
    5. ``-s``: drop it       (users → user)
    6. otherwise unchanged

    Irregular nouns are not handled (people stays people).
    """
    if len(word) <= 1 or word.endswith("ss"):
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("ves"):
        return word[:-3] + "f"
    if word.endswith(("ses", "xes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s"):
        return word[:-1]
    return word


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for code generation.

    Irregular forms apply only to the whole name or to its last camelCase
    word (``salesPerson`` → ``salesPeople``), never to a bare suffix, so
    ``human`` becomes ``humans``.

    First call: O(n).  Subsequent: O(1).
    """
    if not name:
        return ""

    lower: str = name.lower()

    # Irregular common words in DB schemas
    irregulars: Dict[str, str] = {
        "person": "people",
        "child": "children",
        "man": "men",
        "woman": "women",
        "mouse": "mice",
        "datum": "data",
        "index": "indices",
        "matrix": "matrices",
        "vertex": "vertices",
        "analysis": "analyses",
        "status": "statuses",
        "address": "addresses",
    }

    last_word: Optional[re.Match[str]] = _LAST_CAMEL_WORD_RE.search(name)
    start: int = last_word.start() if last_word else 0
    plural: Optional[str] = irregulars.get(name[start:].lower())
    if plural is not None:
        if name[start].isupper():
            plural = plural[0].upper() + plural[1:]
        return name[:start] + plural

    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f") and not lower.endswith("ff"):
        return name[:-1] + "ves"
    if lower.endswith("s"):
        return name + "es"

    return name + "s"


@functools.lru_cache(maxsize=None)
def to_model_name(table_name: str) -> str:
    """
    Derive a singular PascalCase model name from a snake-style table name.

    Each word is singularised *before* casing, so ``order_items`` becomes
    ``OrderItem`` and ``categories`` becomes ``Category``.
    """
    return "".join(_capitalize(to_singular(word)) for word in split_words(table_name))


# ---------------------------------------------------------------------------
# Identifier generation
# ---------------------------------------------------------------------------


def new_id() -> str:
    """Fresh random identifier for editor entities (UUID4 string)."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file first then renames, so
    a crash never leaves a half-written artifact behind.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
            shutil.move(tmp_path, str(path))
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("render sql") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "split_words",
    "to_pascal_case",
    "to_camel_case",
    "lower_first",
    "to_singular",
    "to_plural",
    "to_model_name",
    "new_id",
    "ensure_directory",
    "write_file",
    "read_file",
    "count_lines",
    "Timer",
]

logger.debug("schemaforge.utils loaded - %d public symbols.", len(__all__))
