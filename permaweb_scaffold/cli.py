"""Command line entry point: ``create-permaweb-app``.

Non-interactive front end for the scaffolder.  Every choice comes from a
flag; the defaults match the recommended stack (Svelte, vanilla CSS,
JavaScript, no Bundlr).

Usage::

    create-permaweb-app my-app
    create-permaweb-app my-app --framework next --ts --css tailwind --bundlr node2
    create-permaweb-app my-app --use-yarn --install
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import Config
from .probe import install_globally, is_installed_globally
from .scaffolder import (
    ErrorKind,
    Framework,
    ProjectSpec,
    ScaffoldOrchestrator,
    ScaffoldResult,
    Styling,
    TemplateRegistry,
    validate_name,
)
from .utils import (
    console,
    detect_package_manager,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-permaweb-app",
        description="Create a permaweb app from Svelte, Next.js or Vite templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-permaweb-app my-app\n"
            "  create-permaweb-app my-app --framework next --ts --css chakra\n"
            "  create-permaweb-app my-app --bundlr node1 --use-yarn --install\n"
        ),
    )
    parser.add_argument("project_directory", help="Directory to create the app in")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--framework",
        choices=[f.value for f in Framework],
        default=Framework.SVELTE.value,
        help="Framework (default: svelte)",
    )
    parser.add_argument(
        "--css",
        choices=[s.value for s in Styling],
        default=Styling.NONE.value,
        help="CSS framework (default: none, i.e. vanilla CSS)",
    )
    parser.add_argument(
        "--ts", "--typescript",
        dest="typescript",
        action="store_true",
        help="Initialize as a TypeScript project",
    )
    parser.add_argument(
        "--bundlr",
        choices=["node1", "node2", "no"],
        default="no",
        help="Deploy through a Bundlr node (default: no)",
    )

    pm = parser.add_mutually_exclusive_group()
    pm.add_argument("--use-npm", dest="package_manager", action="store_const", const="npm")
    pm.add_argument("--use-yarn", dest="package_manager", action="store_const", const="yarn")
    pm.add_argument("--use-pnpm", dest="package_manager", action="store_const", const="pnpm")

    parser.add_argument(
        "--force", action="store_true", help="Scaffold into a non-empty directory"
    )
    parser.add_argument(
        "--install", action="store_true", help="Install dependencies after scaffolding"
    )
    parser.add_argument(
        "--install-deploy-tool",
        action="store_true",
        help="Install the deploy tool globally if it is missing",
    )
    parser.add_argument(
        "--skip-probe",
        action="store_true",
        help="Do not check whether the deploy tool is installed",
    )
    return parser


def spec_from_args(args: argparse.Namespace, config: Config) -> ProjectSpec:
    """Turn parsed arguments into the immutable ``ProjectSpec``."""
    manager = (
        args.package_manager
        or detect_package_manager()
        or config.package_manager.value
    )
    return ProjectSpec.create(
        args.project_directory.strip(),
        framework=args.framework,
        language="typescript" if args.typescript else "javascript",
        styling=args.css,
        package_manager=manager,
        extras={"bundlr": args.bundlr},
    )


async def check_deploy_tool(tool: str, install: bool) -> bool:
    """Report whether *tool* is installed globally, optionally installing it."""
    if await is_installed_globally(tool):
        console.print(f"[green]+[/green] {tool} is already installed globally")
        return True
    if not install:
        print_warning(
            f"{tool} must be installed to deploy permaweb apps. "
            f"To install it later, run `npm install -g {tool}`"
        )
        return False
    console.print(f"Installing {tool}...")
    ok, stderr = await install_globally(tool)
    if ok:
        print_success(f"{tool} installed")
    else:
        print_error(f"Failed to install {tool}: {stderr}")
    return ok


def print_name_problems(name: str, problems: Sequence[str]) -> None:
    print_error(f"Could not create a project called \"{name}\" because of npm naming restrictions:")
    for problem in problems:
        console.print(f"    [bold red]*[/bold red] {problem}")


def report_result(result: ScaffoldResult) -> None:
    """Print the outcome of a scaffold run."""
    error = result.error
    if error is None:
        print_summary_table(
            {
                "Project": result.destination.name,
                "Location": str(result.destination),
                "Templates": ", ".join(result.applied_templates),
                "Files": str(len(result.written_files)),
            },
            title="Scaffold complete",
        )
        return

    if error.kind is ErrorKind.VALIDATION:
        print_name_problems(result.destination.name, error.details.get("problems", []))
    elif error.kind is ErrorKind.DESTINATION_EXISTS:
        print_error(error.message)
        for entry in error.details.get("entries", []):
            console.print(f"  {entry}")
        console.print("Either try using a new directory name, or pass --force.")
    else:
        console.print(f"[bold red]Error:[/bold red] {error.message}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for ``create-permaweb-app``."""
    args = build_parser().parse_args(argv)
    config = Config.from_env()

    name = Path(args.project_directory.strip()).resolve().name
    validation = validate_name(name)
    if not validation.valid:
        print_name_problems(name, validation.problems)
        return 1

    if not args.skip_probe:
        asyncio.run(check_deploy_tool(config.deploy_tool, args.install_deploy_tool))

    spec = spec_from_args(args, config)
    started = time.monotonic()
    orchestrator = ScaffoldOrchestrator(
        TemplateRegistry(config.templates_dir),
        overwrite=args.force or config.overwrite,
    )
    console.print(f"Creating a new permaweb app in [green]{spec.target_path}[/green]")
    result = orchestrator.scaffold(spec)
    report_result(result)
    if not result.success:
        console.print("Aborting installation.")
        return 1

    if args.install:
        console.print(f"Installing dependencies with [cyan]{result.install_command}[/cyan]...")
        returncode, _, _ = asyncio.run(
            run_command(
                result.install_command,
                cwd=spec.target_path,
                timeout=config.install_timeout,
                capture=False,
            )
        )
        if returncode != 0:
            print_error(f"`{result.install_command}` has failed.")
            return 1

    print_success(
        f"Success! Created {spec.project_name} in {format_duration(time.monotonic() - started)}"
    )
    console.print("Next steps:")
    console.print(f"  [cyan]cd {spec.target_path}[/cyan]")
    if not args.install:
        console.print(f"  [cyan]{result.install_command}[/cyan]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
