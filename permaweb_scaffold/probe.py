"""Capability probe for globally installed npm tools.

Deploying a permaweb app needs a global CLI (``arkb`` by default).  The
probe answers "is it installed?" and can install it; both run outside the
scaffolding core and are only used by the CLI.
"""

from __future__ import annotations

from .utils import run_command


async def is_installed_globally(tool: str, timeout: int = 60) -> bool:
    """Return ``True`` if ``npm list -g <tool>`` finds the package."""
    returncode, _, _ = await run_command(["npm", "list", "-g", tool], timeout=timeout)
    return returncode == 0


async def install_globally(tool: str, timeout: int = 600) -> tuple[bool, str]:
    """Run ``npm install -g <tool>``.

    Returns:
        ``(success, stderr)``.
    """
    returncode, _, stderr = await run_command(["npm", "install", "-g", tool], timeout=timeout)
    return returncode == 0, stderr
