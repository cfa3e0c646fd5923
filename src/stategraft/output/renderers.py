"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from stategraft.output.console import create_console, get_output, style_for_fate

if TYPE_CHECKING:
    from rich.console import Console

    from stategraft.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False, width: int | None = None) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console(width=width)

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    # For list results, return addresses only
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item["address"]) for item in items if "address" in item)

    if result.op == "explain":
        return str(result.data.get("explanation", ""))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line, flagging dry runs."""
    label = Text("OK", style="graft.ok")
    op = Text(f"  {result.op}", style="graft.op")
    console.print(label, op, end="")
    if result.data.get("dry_run"):
        console.print(Text("  (dry run, nothing written)", style="graft.warning"), end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="graft.key")
    if key == "address" or key.endswith("_address"):
        v = Text(str(value), style="graft.address")
    elif key in ("path", "module", "output", "source", "state"):
        v = Text(str(value), style="graft.path")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(Text(f"    {k}: {v}"))


def _address_table(items: list[dict[str, Any]], *, position: bool = False) -> Table:
    """Build a Rich Table for a list of resources."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    if position:
        table.add_column("#", justify="right", style="dim")
    table.add_column("Address", style="graft.address", no_wrap=True)
    table.add_column("Type")
    table.add_column("Module", style="graft.path")
    for item in items:
        row = [str(item.get("address", "")), str(item.get("type", "")), str(item.get("module", ""))]
        if position:
            row.insert(0, str(item.get("position", "")))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="graft.error")
    op = Text(f"  {result.op}", style="graft.op")
    code = Text(f" [{err.code}]" if err else "", style="dim")
    console.print(label, op, code, Text(": "), Text(msg), sep="")
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── State renderers ───────────────────────────────────────────────────


def _render_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the resource list of a state file."""
    d = result.data
    items = d.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Address", style="graft.address", no_wrap=True)
    table.add_column("Type")
    table.add_column("ID")
    table.add_column("Dependencies", style="dim")
    for item in items:
        table.add_row(
            str(item.get("address", "")),
            str(item.get("type", "")),
            str(item.get("id", "")),
            ", ".join(item.get("dependencies", [])),
        )
    console.print(table)
    console.print(
        f"\n{d.get('count', len(items))} resources in {d.get('modules', 0)} module(s), "
        f"serial {d.get('serial', 0)}"
    )
    if verbose:
        _field(console, "lineage", d.get("lineage", ""))
        _render_meta(console, result)


def _render_resource(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one resource with its attributes."""
    d = result.data
    for key in ("address", "module", "key", "type", "provider", "id"):
        if d.get(key):
            _field(console, key, d[key])
    deps = d.get("dependencies", [])
    _field(console, "dependencies", ", ".join(deps) if deps else "(none)")
    attributes = d.get("attributes", {})
    if attributes:
        console.print(Text("  attributes:", style="graft.key"))
        for line in _json.dumps(attributes, indent=2, sort_keys=True).splitlines():
            console.print(Text(f"    {line}"))


def _render_transform(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render move/remove/transform/normalize/diff results as a change list."""
    _status_line(console, result)
    d = result.data
    moved = {k: v for k, v in d.get("moved", {}).items() if k != v}
    deleted = d.get("deleted", [])
    superseded = d.get("superseded", {})

    if not (moved or deleted or superseded):
        console.print("  No changes.")
    for src, dst in moved.items():
        console.print(
            Text.assemble("  ", ("moved", style_for_fate("moved")), f"      {src} -> {dst}")
        )
    for src, dst in superseded.items():
        console.print(
            Text.assemble("  ", ("replaced", style_for_fate("superseded")), f"   {src} by {dst}")
        )
    for src in deleted:
        console.print(Text.assemble("  ", ("deleted", style_for_fate("deleted")), f"    {src}"))

    console.print(
        f"\n{len(moved)} moved, {len(superseded)} replaced, {len(deleted)} deleted, "
        f"{d.get('kept', 0)} unchanged"
    )
    if "output" in d and "document" not in d:
        _field(console, "output", d["output"])
    if verbose:
        _render_meta(console, result)


def _render_counts(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render merge/subtract/clear_deps/init results."""
    _status_line(console, result)
    for key in ("path", "source", "lineage", "added", "removed"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_mapping(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render an inverted transform."""
    _status_line(console, result)
    mapping = result.data.get("mapping", {})
    width = max((len(k) for k in mapping), default=0)
    for src, dst in mapping.items():
        console.print(Text(f"  {src:<{width}}  ->  {dst}"))
    if "output" in result.data:
        _field(console, "output", result.data["output"])


# ── Inference renderer ────────────────────────────────────────────────


def _render_infer(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render inferred edges grouped by dependent resource."""
    _status_line(console, result)
    d = result.data
    added = d.get("added", {})
    for address, keys in added.items():
        console.print(Text(f"  {address}", style="graft.address"))
        for key in keys:
            console.print(Text.assemble("    ", ("+", "graft.added"), f" {key}"))
    for skip in d.get("skipped", []):
        console.print(
            Text.assemble(
                "  ",
                ("skipped", "graft.warning"),
                f" {skip.get('attr')} on {skip.get('address')}: {skip.get('reason')}",
            )
        )
    console.print(
        f"\n{d.get('edge_count', 0)} edge(s) added to {d.get('resources', 0)} resource(s)"
    )
    if verbose:
        _field(console, "policy", d.get("policy", ""))
        _field(console, "rules", ", ".join(d.get("rules", [])))
        _render_meta(console, result)


# ── Check renderer ────────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))

    if count == 0:
        console.print("[graft.ok]OK[/graft.ok]  No issues found.")
        return

    severity_styles = {"error": "graft.error", "warning": "graft.warning"}

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        cat = str(issue.get("category", "unknown"))
        by_category.setdefault(cat, []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            address = issue.get("address")
            where = f" [{address}]" if address else ""
            console.print(
                Text.assemble("  ", (sev, style), where, f": {issue.get('message', '')}")
            )

    errors = sum(1 for i in issues if i.get("severity") == "error")
    warnings = count - errors
    console.print(f"\n{errors} errors, {warnings} warnings")


# ── Graph renderers ───────────────────────────────────────────────────


def _render_order(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    console.print(_address_table(items, position=True))
    console.print(f"\n{result.data.get('count', len(items))} resources")


def _render_reach(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render dependents/dependencies of one resource."""
    d = result.data
    items = d.get("items", [])
    scope = "direct " if d.get("direct") else ""
    console.print(Text(f"{scope}{result.op} of {d.get('address', '')}", style="bold"))
    if items:
        console.print(_address_table(items))
    console.print(f"\n{d.get('count', len(items))} resources")


# ── Diff renderers ────────────────────────────────────────────────────


def _render_explain(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Print the diff explanation verbatim."""
    d = result.data
    if d.get("empty"):
        console.print("[graft.ok]OK[/graft.ok]  State matches the configuration.")
        return
    console.print(Text(str(d.get("explanation", ""))))
    console.print(
        f"\n{d.get('missing', 0)} missing, {d.get('extra', 0)} extra, "
        f"{d.get('mismatched', 0)} mismatched"
    )


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # State
    "show": _render_show,
    "show_resource": _render_resource,
    "init": _render_counts,
    "move": _render_transform,
    "remove": _render_transform,
    "transform": _render_transform,
    "normalize": _render_transform,
    "merge": _render_counts,
    "subtract": _render_counts,
    "clear_deps": _render_counts,
    "invert": _render_mapping,
    # Inference
    "infer": _render_infer,
    # Check
    "check": _render_check,
    # Graph
    "order": _render_order,
    "dependents": _render_reach,
    "dependencies": _render_reach,
    # Diff
    "diff_transform": _render_transform,
    "explain": _render_explain,
}
