"""Command-line interface for Piano Pitch.

Provides commands for:
- analyze: Detect piano keys in an audio file (optionally export MIDI)
- play: Detect keys and replay them to a MIDI output port
- info: Show audio file information
- ports: List MIDI output ports
"""

import logging
import typer
import time
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.progress import Progress, BarColumn, TextColumn, TimeElapsedColumn

from .core import Accidental, StatusKind
from .core.constants import (
    DEFAULT_FFT_WIDTH,
    DEFAULT_STEP_FRACTION,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_FRACTION,
)

app = typer.Typer(
    name="piano-pitch",
    help="Piano key detection and MIDI playback",
    rich_markup_mode="markdown",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_options(fft_width, window_fraction, step_fraction, threshold):
    from .analysis import AnalysisOptions

    try:
        return AnalysisOptions(
            fft_width=fft_width,
            window_fraction=window_fraction,
            step_fraction=step_fraction,
            threshold=threshold,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _run_analysis(input_file: Path, options):
    """Decode and analyze on the worker thread, showing its status."""
    from .analysis import AnalysisWorker
    from .core import AnalysisError

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    with AnalysisWorker(options) as worker, Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Decoding", total=1.0)
        future = worker.submit(input_file)

        version = worker.status.version
        while not future.done():
            status = worker.status.wait_for_change(version, timeout=0.1)
            version = worker.status.version
            if status.kind is not StatusKind.NONE:
                progress.update(
                    task,
                    description=status.kind.value.replace("_", " ").capitalize(),
                    completed=status.progress if status.progress is not None else 1.0,
                )

        try:
            return future.result()
        except AnalysisError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Input audio file"),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write detected presses to this MIDI file"
    ),
    fft_width: int = typer.Option(
        DEFAULT_FFT_WIDTH, "--fft-width", help="FFT width (power of two, 2-16384)"
    ),
    window_fraction: float = typer.Option(
        DEFAULT_WINDOW_FRACTION, "--window-fraction", help="Window width as a fraction of the FFT width"
    ),
    step_fraction: float = typer.Option(
        DEFAULT_STEP_FRACTION, "--step-fraction", help="Hop as a fraction of the window width"
    ),
    threshold: float = typer.Option(
        DEFAULT_THRESHOLD, "-t", "--threshold", help="Minimum bucket amplitude"
    ),
    flats: bool = typer.Option(
        False, "--flats", help="Spell black keys with flats"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Detect piano keys in an audio file.

    **Examples:**

        piano-pitch analyze song.wav

        piano-pitch analyze song.flac -o song.mid --fft-width 4096
    """
    from .output import MIDIExporter

    _setup_logging(verbose)
    options = _build_options(fft_width, window_fraction, step_fraction, threshold)

    start = time.time()
    result = _run_analysis(input_file, options)
    elapsed = time.time() - start

    if output is not None:
        MIDIExporter().export(result.key_presses, str(output))

    preference = Accidental.FLAT if flats else Accidental.SHARP

    if json_output:
        console.print_json(
            data={
                "input": str(input_file),
                "output": str(output) if output else None,
                "windows": result.window_count,
                "spectrogram_error": result.spectrogram_error,
                "keys": {
                    str(key.as_note(preference)): [
                        [p.start, p.duration, p.intensity] for p in presses
                    ]
                    for key, presses in result.key_presses.items()
                },
            }
        )
        return

    console.print(
        f"[green]Analyzed {result.window_count} windows in {elapsed:.2f}s[/green]"
    )
    if result.spectrogram_error:
        console.print(f"[yellow]Spectrogram dropped: {result.spectrogram_error}[/yellow]")
    if output is not None:
        console.print(f"[blue]Exported to:[/blue] {output}")

    _show_keys_table(result.key_presses, preference)


@app.command()
def play(
    input_file: Path = typer.Argument(..., help="Input audio file"),
    port: Optional[str] = typer.Option(
        None, "-p", "--port", help="MIDI output port (default: the only port available)"
    ),
    fft_width: int = typer.Option(DEFAULT_FFT_WIDTH, "--fft-width"),
    window_fraction: float = typer.Option(DEFAULT_WINDOW_FRACTION, "--window-fraction"),
    step_fraction: float = typer.Option(DEFAULT_STEP_FRACTION, "--step-fraction"),
    threshold: float = typer.Option(DEFAULT_THRESHOLD, "-t", "--threshold"),
    velocity: int = typer.Option(127, "--velocity", help="Note velocity (0-127)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Detect piano keys and replay them to a MIDI output. Ctrl-C stops playback."""
    from .output import NoteScheduler, open_default_sink

    _setup_logging(verbose)
    options = _build_options(fft_width, window_fraction, step_fraction, threshold)
    result = _run_analysis(input_file, options)

    if not result.key_presses:
        console.print("[yellow]No keys detected; nothing to play[/yellow]")
        return

    sink = open_default_sink(port)
    try:
        with NoteScheduler(sink, velocity=velocity) as scheduler, Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total} notes"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            session = scheduler.play(result.key_presses)
            task = progress.add_task("Playing", total=session.total)

            try:
                while not session.wait(0.1):
                    progress.update(task, completed=session.notes_played)
            except KeyboardInterrupt:
                session.cancel()
                session.wait()

            progress.update(task, completed=session.notes_played)
            console.print(f"Playback {session.state.value}")
    finally:
        sink.close()


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Show information about an audio file."""
    from .input import AudioLoader

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    loader = AudioLoader()
    try:
        waveform = loader.load(str(input_file))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]Audio Info:[/bold] {input_file.name}")
    console.print(f"  Duration: {waveform.duration:.2f} seconds")
    console.print(f"  Sample rate: {waveform.sample_rate} Hz")
    console.print(f"  Samples: {len(waveform):,}")


@app.command()
def ports():
    """List MIDI output ports."""
    from .output import output_port_names

    names = output_port_names()
    if not names:
        console.print("[yellow]No MIDI output ports found[/yellow]")
    for name in names:
        console.print(f"  {name}")


def _show_keys_table(key_presses, preference: Accidental):
    """Display detected keys in a table."""
    table = Table(title="Detected Keys")
    table.add_column("Key", style="cyan")
    table.add_column("Note", style="green")
    table.add_column("Presses", style="yellow")
    table.add_column("Held (s)", style="magenta")
    table.add_column("First (s)", style="blue")

    for key, presses in key_presses.items():
        table.add_row(
            str(key.number),
            key.as_note(preference).format(unicode=True),
            str(len(presses)),
            f"{presses.total_duration / 1000:.3f}",
            f"{presses.first().start_secs:.3f}",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
