from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from ops_common.errors import NoCandidatesFound, OpsError, ToolNotFoundError, UserCanceled
from ops_runner.api import (
    TestCatalog,
    TestRunSummary,
    build_catalog,
    cleanup_patterns,
    cleanup_workspace,
)
from ops_runner.pester import VERBOSITY_LEVELS
from ops_ui.flows.errors import UIFlowError
from ops_ui.flows.selection import select_tests
from ops_ui.tui.core import theme
from ops_ui.tui.system.models import TableModel
from ops_ui.wiring.dependencies import UIContext


def _summary_table(summary: TestRunSummary) -> TableModel:
    return TableModel(
        title="Pester Summary",
        columns=["Result", "Passed", "Failed", "Skipped", "Not run", "Total", "Duration"],
        rows=[
            [
                theme.status_text(summary.result) if summary.result else "-",
                str(summary.passed),
                str(summary.failed),
                str(summary.skipped),
                str(summary.not_run),
                str(summary.total),
                f"{summary.duration_seconds:.1f}s",
            ]
        ],
    )


def _catalog_table(catalog: TestCatalog) -> TableModel:
    rows = [
        [escape(catalog.display_path(path)), escape(", ".join(catalog.tags_by_file.get(path, []))) or "-"]
        for path in catalog.files
    ]
    return TableModel(title=escape(f"Tests under {catalog.root}"), columns=["File", "Tags"], rows=rows)


def create_test_app(ctx: UIContext) -> typer.Typer:
    """Build the test Typer app, wired to the given context."""
    app = typer.Typer(help="Discover and run Pester tests.", no_args_is_help=True)

    @app.command("list")
    def test_list(
        root: Path = typer.Option(
            Path("."),
            "--root",
            "-r",
            envvar="OPS_TESTS_ROOT",
            help="Directory searched for *.Tests.ps1 files.",
        ),
    ) -> None:
        """Show discovered test files and the tags they declare."""
        catalog = build_catalog(root)
        if not catalog.files:
            ctx.ui.present.warning(f"No test files found under {root}.")
            return
        ctx.ui.tables.show(_catalog_table(catalog))
        if catalog.tags:
            ctx.ui.present.info("Tags: " + ", ".join(catalog.tags))

    @app.command("run")
    def test_run(
        path: Optional[str] = typer.Option(
            None,
            "--path",
            "-p",
            help="Test file path or (partial) file name to resolve.",
        ),
        tag: List[str] = typer.Option(
            [],
            "--tag",
            "-t",
            help="Only run tests with this tag (repeatable).",
        ),
        exclude_tag: List[str] = typer.Option(
            [],
            "--exclude-tag",
            "-x",
            help="Skip tests with this tag (repeatable).",
        ),
        run_all: bool = typer.Option(False, "--all", "-a", help="Run every discovered test file."),
        interactive: bool = typer.Option(
            False,
            "--interactive",
            "-i",
            help="Choose files and tags from menus.",
        ),
        root: Path = typer.Option(
            Path("."),
            "--root",
            "-r",
            envvar="OPS_TESTS_ROOT",
            help="Directory searched for *.Tests.ps1 files.",
        ),
        output: Optional[Path] = typer.Option(
            None,
            "--output",
            "-o",
            help="Write NUnit XML results to this file.",
        ),
        verbosity: str = typer.Option(
            "Detailed",
            "--verbosity",
            help=f"Pester output verbosity ({', '.join(VERBOSITY_LEVELS)}).",
        ),
        cleanup: bool = typer.Option(
            True,
            "--cleanup/--no-cleanup",
            help="Remove transient result folders after the run.",
        ),
        cleanup_pattern: List[str] = typer.Option(
            [],
            "--cleanup-pattern",
            help="Folder glob removed by cleanup (repeatable; default from OPS_CLEANUP_PATTERNS).",
        ),
    ) -> None:
        """Resolve a test selection and run it with Pester."""
        if verbosity not in VERBOSITY_LEVELS:
            ctx.ui.present.error(f"Unknown verbosity '{verbosity}'.")
            raise typer.Exit(1)

        root = root.expanduser()
        catalog = build_catalog(root)
        try:
            selection = select_tests(
                ctx.ui,
                catalog,
                search=path,
                tags=tag,
                exclude_tags=exclude_tag,
                interactive=interactive and ctx.can_prompt,
                can_prompt=ctx.can_prompt,
                run_all=run_all,
            )
        except UserCanceled:
            ctx.ui.present.info("Selection canceled; nothing to run.")
            return
        except NoCandidatesFound:
            ctx.ui.present.warning(f"No test file matches '{path}'.")
            return
        except UIFlowError as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(exc.exit_code)

        ctx.ui.present.info(f"Running {selection.describe()}")
        for selected in selection.paths:
            ctx.ui.present.info(f"  {catalog.display_path(selected)}")
        if interactive and ctx.can_prompt and not ctx.ui.form.confirm("Run these tests?", default=True):
            ctx.ui.present.info("Selection canceled; nothing to run.")
            return

        ctx.ui.present.rule("Pester")

        ctx.pester.verbosity = verbosity
        try:
            summary = ctx.pester.run(selection, result_path=output, on_output=typer.echo)
        except ToolNotFoundError as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(1)
        except OpsError as exc:
            ctx.ui.present.error(f"Pester run failed: {exc}")
            raise typer.Exit(1)
        finally:
            if cleanup:
                removed = cleanup_workspace(root, cleanup_patterns(cleanup_pattern))
                if removed:
                    ctx.ui.present.info(f"Cleaned {len(removed)} transient folder(s).")

        ctx.ui.tables.show(_summary_table(summary))
        for name in summary.failed_tests:
            ctx.ui.present.error(f"FAILED: {name}")
        if output is not None:
            ctx.ui.present.info(f"Results written to {output}")
        if not summary.ok:
            if summary.failed:
                ctx.ui.present.error(f"{summary.failed} test(s) failed.")
            else:
                ctx.ui.present.error(f"pwsh exited with {summary.returncode}.")
            raise typer.Exit(summary.returncode or 1)
        ctx.ui.present.success(f"{summary.passed} passed, {summary.skipped} skipped.")

    return app
