"""
pulsar_deploy.reporting - Report Rendering
============================================

Renders a RunReport (and the status listing) for stdout, either as a rich
table or as JSON. Tables are rendered to a string so the CLI decides where
they go.
"""

from __future__ import annotations

import io
import json
from typing import Any, Mapping, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from pulsar_deploy.core.enums import Outcome
from pulsar_deploy.core.models import RunReport


OUTCOME_STYLES: dict[Outcome, str] = {
    Outcome.OK: "green",
    Outcome.SKIPPED: "yellow",
    Outcome.FAILED: "red",
}


def report_to_dict(report: RunReport) -> dict[str, Any]:
    """JSON-ready form of a report."""
    return {
        "network": report.network,
        "dry_run": report.dry_run,
        "succeeded": report.succeeded,
        "started_at": report.started_at.isoformat(),
        "completed_at": report.completed_at.isoformat() if report.completed_at else None,
        "counts": report.counts(),
        "entries": [
            {
                "artifact": e.artifact_name,
                "phase": e.phase.value,
                "outcome": e.outcome.value,
                "note": e.note,
            }
            for e in report.entries
        ],
    }


def _render(table: Table) -> str:
    # Width is fixed so output does not depend on the terminal it lands in
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, highlight=False)
    console.print(table)
    return "\n".join(line.rstrip() for line in buffer.getvalue().splitlines())


def format_report(report: RunReport, as_json: bool = False) -> str:
    """Render ``report`` as a table (default) or as indented JSON."""
    if as_json:
        return json.dumps(report_to_dict(report), indent=2)

    title = f"Network: {report.network}"
    if report.dry_run:
        title += " (dry run)"
    lines = [title, ""]

    if report.entries:
        table = Table(show_header=True, header_style="bold", box=None)
        table.add_column("ARTIFACT", style="cyan", no_wrap=True)
        table.add_column("PHASE", no_wrap=True)
        table.add_column("OUTCOME", no_wrap=True)
        table.add_column("NOTE", overflow="fold")
        for e in report.entries:
            # Text() keeps notes literal: stellar payloads contain [brackets]
            table.add_row(
                Text(e.artifact_name),
                e.phase.value,
                Text(e.outcome.value, style=OUTCOME_STYLES[e.outcome]),
                Text(e.note),
            )
        lines.append(_render(table))
    else:
        lines.append("(no entries)")

    counts = report.counts()
    lines += [
        "",
        (
            f"deployed={counts['deployed']} initialized={counts['initialized']} "
            f"skipped={counts['skipped']} failed={counts['failed']}"
        ),
        "Result: " + ("OK" if report.succeeded else "FAILED"),
    ]
    return "\n".join(lines)


def format_status(
    network: str, addresses: Mapping[str, Optional[str]], as_json: bool = False
) -> str:
    """Render the recorded address of every artifact."""
    if as_json:
        return json.dumps({"network": network, "contracts": dict(addresses)}, indent=2)

    lines = [f"Network: {network}", ""]
    if addresses:
        table = Table(show_header=True, header_style="bold", box=None)
        table.add_column("ARTIFACT", style="cyan", no_wrap=True)
        table.add_column("ADDRESS", no_wrap=True)
        for name, address in addresses.items():
            table.add_row(Text(name), Text(address) if address else Text("-", style="dim"))
        lines.append(_render(table))
    else:
        lines.append("(no artifacts)")

    deployed = sum(1 for address in addresses.values() if address)
    lines += ["", f"{deployed}/{len(addresses)} deployed"]
    return "\n".join(lines)
