"""Click CLI entry point for the gltfgraph decoder."""

from __future__ import annotations

import json
from pathlib import Path

import click
import numpy as np

from gltfgraph import __version__
from gltfgraph.asset import Asset, DecodeOptions, load_asset
from gltfgraph.errors import GltfGraphError
from gltfgraph.inspection import inspect_asset, render_text, render_yaml
from gltfgraph.storage import HeapAllocator, MemoryMapAllocator
from gltfgraph.warning_policy import WarningPolicy


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    """Parse CLI warning options into a WarningPolicy, or None if unset."""
    if warn_as_error is None and suppress_warning is None:
        return None
    try:
        return WarningPolicy.from_code_lists(warn_as_error, suppress_warning)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _load(
    input_file: Path,
    *,
    use_mmap: bool,
    deferred: bool,
    warn_as_error: str | None,
    suppress_warning: str | None,
) -> Asset:
    allocator_cls = MemoryMapAllocator if use_mmap else HeapAllocator
    options = DecodeOptions(
        allocator=allocator_cls(deferred=deferred),
        warning_policy=_build_warning_policy(warn_as_error, suppress_warning),
    )
    try:
        return load_asset(input_file, options)
    except GltfGraphError as e:
        raise click.ClickException(str(e))


def _decode_options(fn):
    fn = click.option(
        "--suppress-warning",
        "suppress_warning",
        type=str,
        default=None,
        help="Comma-separated W-codes to suppress (e.g. W01).",
    )(fn)
    fn = click.option(
        "--warn-as-error",
        "warn_as_error",
        type=str,
        default=None,
        help="Comma-separated W-codes to treat as errors (e.g. W01,W02).",
    )(fn)
    fn = click.option(
        "--deferred",
        is_flag=True,
        default=False,
        help="Load external buffer files on first access instead of up front.",
    )(fn)
    fn = click.option(
        "--mmap",
        "use_mmap",
        is_flag=True,
        default=False,
        help="Memory-map external buffer files instead of copying them.",
    )(fn)
    return fn


@click.group()
@click.version_option(version=__version__, prog_name="gltfgraph")
def main() -> None:
    """Decode glTF 2.0 and GLB files into a resolved scene graph."""


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "yaml"]),
    default="text",
    show_default=True,
    help="Inspection output format.",
)
@click.option(
    "--accessors",
    "include_accessors",
    is_flag=True,
    default=False,
    help="Include per-accessor layout details.",
)
@_decode_options
def inspect(
    input_file: Path,
    output_format: str = "text",
    include_accessors: bool = False,
    use_mmap: bool = False,
    deferred: bool = False,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Decode a .gltf/.glb file and print a summary of its scene graph."""
    asset = _load(
        input_file,
        use_mmap=use_mmap,
        deferred=deferred,
        warn_as_error=warn_as_error,
        suppress_warning=suppress_warning,
    )
    try:
        payload = inspect_asset(asset, include_accessors=include_accessors)
    except GltfGraphError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        click.echo(json.dumps(payload, indent=2))
    elif output_format == "yaml":
        click.echo(render_yaml(payload), nl=False)
    else:
        click.echo(render_text(payload), nl=False)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("accessor", type=int)
@click.option("--start", type=click.IntRange(min=0), default=0, show_default=True)
@click.option(
    "--count",
    type=click.IntRange(min=1),
    default=None,
    help="Number of elements to print. Defaults to all remaining elements.",
)
@_decode_options
def read(
    input_file: Path,
    accessor: int,
    start: int = 0,
    count: int | None = None,
    use_mmap: bool = False,
    deferred: bool = False,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Print decoded elements of ACCESSOR, one per line."""
    asset = _load(
        input_file,
        use_mmap=use_mmap,
        deferred=deferred,
        warn_as_error=warn_as_error,
        suppress_warning=suppress_warning,
    )
    if not 0 <= accessor < len(asset.accessors):
        raise click.UsageError(f"Accessor {accessor} out of range (asset has {len(asset.accessors)})")
    acc = asset.accessors[accessor]
    stop = acc.count if count is None else min(acc.count, start + count)
    try:
        for element in range(start, stop):
            value = acc.read(element)
            if isinstance(value, np.ndarray):
                text = json.dumps(value.tolist())
            else:
                text = json.dumps(value)
            click.echo(f"{element}: {text}")
    except GltfGraphError as e:
        raise click.ClickException(str(e))
