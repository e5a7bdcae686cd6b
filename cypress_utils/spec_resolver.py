"""Resolve user-supplied identifiers into the spec files to execute."""

import fnmatch
import glob
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

log = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[")


class SpecResolutionError(Exception):
    """Raised when no spec files can be resolved."""


class SpecRootNotFoundError(SpecResolutionError):
    """Raised when the spec root directory does not exist."""

    def __init__(self, spec_root: Path) -> None:
        self.spec_root = spec_root
        super().__init__(
            f"Spec root '{spec_root}' does not exist. Pass --spec-root or set "
            "integrationFolder in the config file to point at your spec files."
        )


class NoMatchingSpecsError(SpecResolutionError):
    """Raised when the spec root exists but nothing matched."""

    def __init__(self, spec_root: Path, identifiers: Sequence[str]) -> None:
        self.spec_root = spec_root
        self.identifiers = tuple(identifiers)
        wanted = ", ".join(f"'{i}'" for i in identifiers) if identifiers else "any"
        super().__init__(f"No spec files matching {wanted} found in '{spec_root}'")


def resolve_specs(
    spec_root: Path,
    test_files: str,
    identifiers: Iterable[str] = (),
    exclude_patterns: Iterable[str] = (),
) -> Sequence[str]:
    """Resolve the spec files matching identifiers under a root directory.

    Args:
        spec_root: Directory holding the spec files
        test_files: Glob of candidate spec files, relative to spec_root
        identifiers: Case-insensitive substrings or glob fragments; a spec is
            kept when its path below spec_root matches any of them (all specs
            when empty)
        exclude_patterns: Globs removing specs, matched against the basename
            when the pattern has no slash and against the path below
            spec_root otherwise

    Returns:
        Spec paths in file-system enumeration order, without duplicates.

    Raises:
        SpecRootNotFoundError: If spec_root is not an existing directory
        NoMatchingSpecsError: If no spec file is left after filtering

    """
    if not spec_root.is_dir():
        raise SpecRootNotFoundError(spec_root)

    supplied = tuple(dict.fromkeys(i for i in identifiers if i))
    wanted = tuple(i.lower() for i in supplied)
    excludes = tuple(dict.fromkeys(exclude_patterns))

    candidates = list_candidates(spec_root, test_files)
    log.debug("Found %d candidate spec file(s) in %s", len(candidates), spec_root)

    specs = [
        str(spec_root / relative)
        for relative in candidates
        if matches_identifier(relative, wanted)
        and not is_excluded(relative, excludes)
    ]

    if not specs:
        raise NoMatchingSpecsError(spec_root, supplied)

    return specs


def list_candidates(spec_root: Path, test_files: str) -> Sequence[str]:
    """List files matching the test file glob, relative to spec_root.

    Glob characters in spec_root itself are taken literally.
    """
    paths = glob.iglob(
        test_files, root_dir=spec_root, recursive=True, include_hidden=True
    )
    return list(dict.fromkeys(p for p in paths if (spec_root / p).is_file()))


def matches_identifier(path: str, identifiers: Sequence[str]) -> bool:
    """Check whether a path matches any lower-cased identifier."""
    if not identifiers:
        return True

    lowered = path.lower()
    for identifier in identifiers:
        if GLOB_CHARS.intersection(identifier):
            if fnmatch.fnmatchcase(lowered, f"*{identifier}*"):
                return True
        elif identifier in lowered:
            return True
    return False


def is_excluded(path: str, exclude_patterns: Sequence[str]) -> bool:
    """Check whether a path matches any exclude pattern.

    Leading dots get no special treatment, so ``*`` matches dot files.
    """
    basename = Path(path).name
    for pattern in exclude_patterns:
        target = path if "/" in pattern else basename
        if fnmatch.fnmatchcase(target, pattern):
            return True
        if "/" in pattern and fnmatch.fnmatchcase(target, f"*/{pattern}"):
            return True
    return False
