"""Project name validation against npm package naming rules.

``validate_name`` is a pure function: it reports every rule a candidate name
breaks, in a stable order, so callers can show all problems or only the
first one.
"""

from __future__ import annotations

import re

from .models import NameValidation


MAX_NAME_LENGTH = 214

BLACKLISTED_NAMES: frozenset[str] = frozenset({"node_modules", "favicon.ico"})

# Node.js built-in modules; a package named after one would shadow it.
CORE_MODULE_NAMES: frozenset[str] = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})

_SPECIAL_CHARS = "~'!()*"
_SCOPED_RE = re.compile(r"^(?:@([^/]+?)/)?([^/]+?)$")
_PART_RE = re.compile(r"^[a-z0-9._-]+$")


def validate_name(name: str) -> NameValidation:
    """Validate *name* as a project/package name.

    Returns:
        A ``NameValidation`` whose ``problems`` lists every violated rule.
    """
    problems: list[str] = []

    if not name:
        problems.append("name length must be greater than zero")
        return NameValidation(valid=False, problems=tuple(problems))

    if name.startswith("."):
        problems.append("name cannot start with a period")
    if name.startswith("_"):
        problems.append("name cannot start with an underscore")
    if name.strip() != name:
        problems.append("name cannot contain leading or trailing spaces")

    if name.lower() in BLACKLISTED_NAMES:
        problems.append(f"{name} is a blacklisted name")
    if name.lower() in CORE_MODULE_NAMES:
        problems.append(f"{name} is a core module name")

    if len(name) > MAX_NAME_LENGTH:
        problems.append(
            f"name can no longer contain more than {MAX_NAME_LENGTH} characters"
        )
    if name.lower() != name:
        problems.append("name can no longer contain capital letters")

    # Only the final segment matters for special characters (scope included).
    if any(ch in name.split("/")[-1] for ch in _SPECIAL_CHARS):
        problems.append(
            f'name can no longer contain special characters ("{_SPECIAL_CHARS}")'
        )

    if not _is_url_friendly(name):
        problems.append("name can only contain URL-friendly characters")

    return NameValidation(valid=not problems, problems=tuple(problems))


def _is_url_friendly(name: str) -> bool:
    """Check that the name (and scope, if any) use lowercase URL-safe characters."""
    match = _SCOPED_RE.match(name)
    if match is None:
        return False
    scope, package = match.groups()
    parts = [package] if scope is None else [scope, package]
    return all(_PART_RE.match(part) for part in parts)
